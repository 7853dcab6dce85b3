# services/window_service.py
from __future__ import annotations
import numpy as np


class WindowService:
    """
    Windowed weighted reduction over clamp-to-edge neighbourhoods.

    Shared by the bilateral denoiser, the Gaussian blur and the Lanczos
    resampler so that boundary handling and degenerate weight sums behave
    the same everywhere.
    """

    @staticmethod
    def clamp_to_edge(indices, size: int) -> np.ndarray:
        return np.clip(indices, 0, size - 1)

    @staticmethod
    def shift(plane: np.ndarray, offset: int, axis: int) -> np.ndarray:
        """
        out[..., i, ...] = plane[..., clamp(i + offset), ...] along ``axis``.
        """
        size = plane.shape[axis]
        idx = WindowService.clamp_to_edge(np.arange(size) + offset, size)
        return np.take(plane, idx, axis=axis)

    @staticmethod
    def shift_2d(plane: np.ndarray, dy: int, dx: int) -> np.ndarray:
        return WindowService.shift(WindowService.shift(plane, dy, axis=0), dx, axis=1)

    @staticmethod
    def normalize_weights(weights: np.ndarray, mask: np.ndarray | None = None) -> np.ndarray:
        """
        Normalise each row of ``weights`` to sum 1.

        Rows whose weights sum to exactly zero get a uniform distribution over
        their ``mask`` entries instead. Entries outside ``mask`` are forced to 0.
        """
        weights = np.asarray(weights, dtype=np.float64)
        if mask is None:
            mask = np.ones(weights.shape, dtype=bool)
        weights = np.where(mask, weights, 0.0)
        totals = weights.sum(axis=-1, keepdims=True)
        counts = mask.sum(axis=-1, keepdims=True)

        degenerate = totals == 0
        safe_totals = np.where(degenerate, 1.0, totals)
        uniform = np.where(mask, 1.0 / np.maximum(counts, 1), 0.0)
        return np.where(degenerate, uniform, weights / safe_totals)

    @staticmethod
    def weighted_reduce(samples, weights, fallback: np.ndarray) -> np.ndarray:
        """
        sum_k(w_k * s_k) / sum_k(w_k) over the leading (tap) axis.
        Where the weights vanish, ``fallback`` passes through unchanged.
        """
        total = np.zeros_like(fallback, dtype=np.float64)
        weight_sum = np.zeros_like(fallback, dtype=np.float64)
        for sample, weight in zip(samples, weights):
            total += sample * weight
            weight_sum += weight
        out = fallback.astype(np.float64, copy=True)
        np.divide(total, weight_sum, out=out, where=weight_sum > 0)
        return out

    @staticmethod
    def convolve_axis(plane: np.ndarray, offsets: np.ndarray, taps: np.ndarray, axis: int) -> np.ndarray:
        """
        1-D symmetric filter along ``axis`` with clamp-to-edge boundaries,
        renormalised by the sum of the taps used for each output sample.
        """
        samples = (WindowService.shift(plane, int(o), axis) for o in offsets)
        weights = (np.full(plane.shape, w) for w in taps)
        return WindowService.weighted_reduce(samples, weights, fallback=plane)

    @staticmethod
    def gather_axis(data: np.ndarray, indices: np.ndarray, weights: np.ndarray, axis: int) -> np.ndarray:
        """
        out[.., i, ..] = sum_k weights[i, k] * data[.., indices[i, k], ..] along ``axis``.
        ``indices``/``weights`` have shape (n_out, K); all indices must be in range.
        """
        data = np.moveaxis(data, axis, 0)
        out = np.zeros((indices.shape[0],) + data.shape[1:], dtype=np.float64)
        extra = (slice(None),) + (None,) * (data.ndim - 1)
        for k in range(indices.shape[1]):
            out += data[indices[:, k]] * weights[:, k][extra]
        return np.moveaxis(out, 0, axis)
