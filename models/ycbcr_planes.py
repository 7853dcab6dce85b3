from __future__ import annotations
from dataclasses import dataclass
import numpy as np


@dataclass
class YCbCrPlanes:
    """
    Planar luma/chroma decomposition of an RGBA buffer.
    Every plane is float64 with shape (H, W); ``plane.ravel()`` is the row-major sequence.
    """
    y: np.ndarray
    cb: np.ndarray
    cr: np.ndarray
    alpha: np.ndarray | None = None
