# services/color_service.py
from __future__ import annotations
import numpy as np

from models.ycbcr_planes import YCbCrPlanes


class ColorService:
    """
    RGBA <-> planar Y/Cb/Cr conversion (ITU-R BT.601, full range 0-255).
    No clamping here; callers clamp when they quantise.
    """

    # Rows produce Y, Cb, Cr from R, G, B (Cb/Cr before the +128 offset).
    RGB_TO_YCBCR = np.array([
        [0.299, 0.587, 0.114],
        [-0.168736, -0.331264, 0.5],
        [0.5, -0.418688, -0.081312],
    ])
    CHROMA_OFFSET = 128.0

    @staticmethod
    def to_float(rgba, width: int, height: int) -> np.ndarray:
        """Interleaved RGBA (flat or shaped) → float64 working buffer (H, W, 4)."""
        return np.asarray(rgba, dtype=np.float64).reshape(height, width, 4)

    def decompose(self, rgba, width: int, height: int) -> YCbCrPlanes:
        arr = self.to_float(rgba, width, height)
        r, g, b = arr[..., 0], arr[..., 1], arr[..., 2]
        (yr, yg, yb), (br, bg, bb), (rr, rg, rb) = self.RGB_TO_YCBCR
        return YCbCrPlanes(
            y=yr * r + yg * g + yb * b,
            cb=br * r + bg * g + bb * b + self.CHROMA_OFFSET,
            cr=rr * r + rg * g + rb * b + self.CHROMA_OFFSET,
            alpha=arr[..., 3].copy(),
        )

    def recompose(self, y: np.ndarray, cb: np.ndarray, cr: np.ndarray,
                  alpha: np.ndarray | None = None) -> np.ndarray:
        """Planes (H, W) → float RGBA (H, W, 4). Missing alpha means fully opaque."""
        u = cb - self.CHROMA_OFFSET
        v = cr - self.CHROMA_OFFSET
        out = np.empty(y.shape + (4,), dtype=np.float64)
        out[..., 0] = y + 1.402 * v
        out[..., 1] = y - 0.344136 * u - 0.714136 * v
        out[..., 2] = y + 1.772 * u
        out[..., 3] = 255.0 if alpha is None else alpha
        return out

    def recompose_planes(self, planes: YCbCrPlanes) -> np.ndarray:
        return self.recompose(planes.y, planes.cb, planes.cr, planes.alpha)
