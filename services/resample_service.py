# services/resample_service.py
from __future__ import annotations
import logging
from typing import Callable, Optional

import numpy as np

from models.filter_kernel import LanczosKernel
from models.resample_weights import ResampleWeights
from services.window_service import WindowService

logger = logging.getLogger(__name__)


class ResampleService:
    """
    Separable Lanczos resampling of float RGBA buffers.

    Weights are computed once per axis, then applied horizontally
    (new_width × height) and vertically (new_width × new_height).
    All four channels, alpha included, are filtered identically.
    """

    def __init__(self, a: int = 3,
                 horizontal_progress_rows: int = 24,
                 vertical_progress_rows: int = 12,
                 window_service: WindowService | None = None):
        self.kernel = LanczosKernel(a)
        self.horizontal_progress_rows = horizontal_progress_rows
        self.vertical_progress_rows = vertical_progress_rows
        self.window = window_service or WindowService()

    # ─── Weights ───────────────────────────────────────────────────
    def compute_weights(self, source_size: int, target_size: int) -> ResampleWeights:
        """
        Tap lists for every destination coordinate along one axis.

        Source coordinate is ``(dst + 0.5) / scale``; each candidate ``j`` in
        ``floor(c - a) .. ceil(c + a)`` that lies in ``[0, source_size)`` is
        weighted by ``kernel(c - j - 0.5)``. Zero-weight taps are dropped.
        """
        a = self.kernel.a
        inv_scale = 1.0 / (target_size / source_size)
        centers = (np.arange(target_size) + 0.5) * inv_scale
        left = np.floor(centers - a).astype(np.int64)
        right = np.ceil(centers + a).astype(np.int64)

        candidates = left[:, None] + np.arange(2 * a + 2)[None, :]
        in_range = (candidates <= right[:, None]) & (candidates >= 0) & (candidates < source_size)
        raw = self.kernel(centers[:, None] - candidates - 0.5)
        mask = in_range & (raw != 0)
        weights = self.window.normalize_weights(raw, mask)

        # Nothing in bounds: single tap at the nearest clamped source index.
        empty = ~mask.any(axis=1)
        if empty.any():
            nearest = np.floor(centers[empty]).astype(np.int64)  # round(c - 0.5), half up
            fallback = self.window.clamp_to_edge(nearest, source_size)
            mask[empty] = False
            mask[empty, 0] = True
            candidates[empty, 0] = fallback
            weights[empty] = 0.0
            weights[empty, 0] = 1.0
            logger.debug(f"{int(empty.sum())} destination coords fell back to single-tap weights")

        # Compact real taps to the front, keeping source order.
        order = np.argsort(~mask, axis=1, kind="stable")
        indices = np.take_along_axis(candidates, order, axis=1)
        weights = np.take_along_axis(weights, order, axis=1)
        counts = mask.sum(axis=1)
        width = int(counts.max()) if target_size else 0

        indices = self.window.clamp_to_edge(indices[:, :width], source_size)
        weights = weights[:, :width]
        return ResampleWeights(source_size, target_size, indices, weights, counts)

    # ─── Public API ────────────────────────────────────────────────
    def resample(self, rgba, width: int, height: int, new_width: int, new_height: int,
                 on_progress: Optional[Callable[[float], None]] = None) -> np.ndarray:
        """
        Args:
            rgba: float RGBA buffer, flat or (H, W, 4).
            on_progress: receives the stage fraction in [0, 1]; the two passes count 50/50.

        Returns:
            np.ndarray: new (new_height, new_width, 4) float64 buffer.
        """
        src = np.asarray(rgba, dtype=np.float64).reshape(height, width, 4)
        weights_x = self.compute_weights(width, new_width)
        weights_y = self.compute_weights(height, new_height)
        logger.debug(f"Lanczos-{self.kernel.a} {width}x{height} → {new_width}x{new_height}")

        temp = np.empty((height, new_width, 4), dtype=np.float64)
        step = self.horizontal_progress_rows
        for y0 in range(0, height, step):
            if on_progress:
                on_progress(y0 / height * 0.5)
            temp[y0:y0 + step] = self.window.gather_axis(
                src[y0:y0 + step], weights_x.indices, weights_x.weights, axis=1)

        dst = np.empty((new_height, new_width, 4), dtype=np.float64)
        step = self.vertical_progress_rows
        for y0 in range(0, new_height, step):
            if on_progress:
                on_progress(0.5 + y0 / new_height * 0.5)
            rows = slice(y0, y0 + step)
            dst[rows] = self.window.gather_axis(
                temp, weights_y.indices[rows], weights_y.weights[rows], axis=0)

        if on_progress:
            on_progress(1.0)
        return dst
