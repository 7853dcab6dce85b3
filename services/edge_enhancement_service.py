from __future__ import annotations

import logging

import numpy as np

from models.filter_kernel import GaussianKernel
from models.upscale_settings import UpscaleSettings
from services.color_service import ColorService
from services.window_service import WindowService

logger = logging.getLogger(__name__)


class EdgeEnhancementService:
    """
    Restores edge contrast lost during resampling, working on luma only.
    *   Unsharp-style detail boost, adaptive to detail magnitude.
    *   Global contrast normalisation: statistical clipping, then histogram stretch.
    *   Chroma and alpha are carried over untouched.
    """

    HISTOGRAM_BINS = 256

    def __init__(self,
                 settings: UpscaleSettings | None = None,
                 color_service: ColorService | None = None,
                 window_service: WindowService | None = None):
        self.settings = settings or UpscaleSettings()
        self.color = color_service or ColorService()
        self.window = window_service or WindowService()

    # ─── Public API ────────────────────────────────────────────────
    def enhance(self, rgba, width: int, height: int) -> np.ndarray:
        planes = self.color.decompose(rgba, width, height)
        blurred = self.gaussian_blur(planes.y)
        sharpened = self.sharpen(planes.y, blurred)
        normalized = self.contrast_normalize(sharpened)
        logger.debug(f"Edge enhancement done on {width}x{height}")
        return self.color.recompose(normalized, planes.cb, planes.cr, planes.alpha)

    # ─── Stages ────────────────────────────────────────────────────
    def gaussian_blur(self, plane: np.ndarray) -> np.ndarray:
        """Separable Gaussian low-pass, horizontal then vertical, clamp-to-edge."""
        kernel = GaussianKernel(self.settings.blur_radius, self.settings.blur_sigma)
        offsets, taps = kernel.offsets(), kernel.weights()
        temp = self.window.convolve_axis(plane, offsets, taps, axis=1)
        return self.window.convolve_axis(temp, offsets, taps, axis=0)

    def sharpen(self, original: np.ndarray, blurred: np.ndarray) -> np.ndarray:
        s = self.settings
        detail = original - blurred
        boost = np.where(np.abs(detail) > s.edge_threshold, s.strong_boost, s.weak_boost)
        value = original + boost * detail
        # pull back toward the original to protect colours
        return value + s.damping * (original - value)

    def contrast_normalize(self, plane: np.ndarray) -> np.ndarray:
        clipped = self.statistical_clip(plane)
        if self.settings.low_clip_ratio > 0:
            return self.histogram_stretch(clipped)
        return clipped

    def statistical_clip(self, plane: np.ndarray) -> np.ndarray:
        """
        Clamp to mean ± target_std, push away from the mean by (1 + strength),
        then hard-clamp to [0, 255].
        """
        s = self.settings
        mean = plane.mean()
        variance = np.mean((plane - mean) ** 2)
        std = np.sqrt(max(variance, 1e-5))

        target_std = max(std, s.min_std) * (1 + s.contrast_strength * s.std_spread)
        clipped = np.clip(plane, mean - target_std, mean + target_std)
        pushed = mean + (clipped - mean) * (1 + s.contrast_strength)
        return np.clip(pushed, 0, 255)

    def histogram(self, plane: np.ndarray) -> np.ndarray:
        buckets = np.clip(np.floor(plane + 0.5), 0, 255).astype(np.int64)
        return np.bincount(buckets.ravel(), minlength=self.HISTOGRAM_BINS)

    def stretch_bounds(self, histogram: np.ndarray):
        """
        (low, high) buckets of the stretch.

        low: first bucket whose cumulative count reaches floor(total·ratio).
        high: first bucket from the top whose cumulative count reaches
        total - floor(total·(1 - ratio)).
        """
        ratio = self.settings.low_clip_ratio
        total = int(histogram.sum())
        lower_target = int(np.floor(total * ratio))
        upper_target = int(np.floor(total * (1 - ratio)))

        from_bottom = np.cumsum(histogram)
        from_top = np.cumsum(histogram[::-1])
        low_hits = np.nonzero(from_bottom >= lower_target)[0]
        high_hits = np.nonzero(from_top >= total - upper_target)[0]

        low = int(low_hits[0]) if low_hits.size else 0
        high = self.HISTOGRAM_BINS - 1 - int(high_hits[0]) if high_hits.size else 255
        return low, high

    def histogram_stretch(self, plane: np.ndarray) -> np.ndarray:
        low, high = self.stretch_bounds(self.histogram(plane))
        if high - low <= 1:
            logger.debug(f"Histogram range [{low}, {high}] too narrow, stretch skipped")
            return plane
        scale = 255.0 / (high - low)
        return np.clip((plane - low) * scale, 0, 255)
