from __future__ import annotations
from dataclasses import dataclass
from pathlib import Path
import numpy as np


@dataclass
class Image:
    """
    Simple data object: flat RGBA pixels (+ optional source path for bookkeeping).
    No OpenCV logic outside the repository layer.
    """
    pixels: np.ndarray # Shape (H*W*4,), dtype uint8, RGBA order, row-major.
    width: int
    height: int
    path: Path | None = None # Source of the image.

    @property
    def expected_length(self) -> int:
        return self.width * self.height * 4

    def validate(self) -> None:
        """Raise ValueError when the buffer length disagrees with width/height."""
        if self.pixels.ndim != 1 or self.pixels.size != self.expected_length:
            raise ValueError(
                f"Pixel buffer holds {self.pixels.size} samples, "
                f"expected {self.width}x{self.height}x4 = {self.expected_length}"
            )

    def as_grid(self) -> np.ndarray:
        """(H, W, 4) view of the flat buffer."""
        return self.pixels.reshape(self.height, self.width, 4)
