# services/denoise_service.py
from __future__ import annotations
import logging

import numpy as np

from models.filter_kernel import spatial_kernel_3x3
from services.window_service import WindowService

logger = logging.getLogger(__name__)


class DenoiseService:
    """
    Edge-preserving bilateral smoothing of the luma plane.

    *   3x3 neighbourhood, clamp-to-edge.
    *   Weight = fixed spatial Gaussian × exp(-(neighbour - centre)² / (2·range_sigma²)).
    *   Result is blended back with the original to limit over-smoothing.
    """

    def __init__(self, window_service: WindowService | None = None):
        self.window = window_service or WindowService()

    def bilateral(self, y: np.ndarray, spatial_sigma: float, range_sigma: float) -> np.ndarray:
        """Unblended bilateral filter of an (H, W) plane."""
        spatial = spatial_kernel_3x3(spatial_sigma)
        denom = 2 * range_sigma * range_sigma

        samples, weights = [], []
        for dy in (-1, 0, 1):
            for dx in (-1, 0, 1):
                neighbor = self.window.shift_2d(y, dy, dx)
                diff = neighbor - y
                samples.append(neighbor)
                weights.append(spatial[dy + 1, dx + 1] * np.exp(-(diff * diff) / denom))
        return self.window.weighted_reduce(samples, weights, fallback=y)

    def denoise(self, y, width: int, height: int,
                spatial_sigma: float = 1.25, range_sigma: float = 12.0,
                blend: float = 0.35) -> np.ndarray:
        """
        Args:
            y: luma plane, flat (W*H) or shaped (H, W).
            blend: share of the filtered result in the output (0.35 → 35 % filtered, 65 % original).

        Returns:
            np.ndarray: new (H, W) float64 plane; ``y`` is left untouched.
        """
        plane = np.asarray(y, dtype=np.float64).reshape(height, width)
        filtered = self.bilateral(plane, spatial_sigma, range_sigma)
        logger.debug(f"Bilateral denoise on {width}x{height} luma (blend={blend})")
        return plane * (1 - blend) + filtered * blend
