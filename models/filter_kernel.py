from __future__ import annotations
from dataclasses import dataclass
import numpy as np


@dataclass(frozen=True)
class LanczosKernel:
    """
    Windowed-sinc reconstruction kernel with support radius ``a``.

        kernel(x) = sinc(x) * sinc(x / a)   for 0 < |x| < a
        kernel(0) = 1
        kernel(x) = 0                       for |x| >= a
    """
    a: int = 3

    def __call__(self, x) -> np.ndarray:
        x = np.asarray(x, dtype=np.float64)
        pi_x = np.pi * x
        with np.errstate(divide="ignore", invalid="ignore"):
            value = (np.sin(pi_x) / pi_x) * (np.sin(pi_x / self.a) / (pi_x / self.a))
        value = np.where(x == 0, 1.0, value)
        return np.where(np.abs(x) >= self.a, 0.0, value)


@dataclass(frozen=True)
class GaussianKernel:
    """Symmetric 1-D Gaussian taps over offsets ``-radius..radius``, normalised to sum 1."""
    radius: int = 2
    sigma: float = 1.2

    def offsets(self) -> np.ndarray:
        return np.arange(-self.radius, self.radius + 1)

    def weights(self) -> np.ndarray:
        offsets = self.offsets()
        taps = np.exp(-(offsets * offsets) / (2 * self.sigma * self.sigma))
        return taps / taps.sum()


def spatial_kernel_3x3(sigma: float) -> np.ndarray:
    """
    Gaussian weights over the 3x3 offsets, row-major (dy, dx) in {-1, 0, 1}, summing to 1.
    """
    coords = np.array([-1, 0, 1])
    dist_sq = coords[:, None] ** 2 + coords[None, :] ** 2
    kernel = np.exp(-dist_sq / (2 * sigma * sigma))
    return kernel / kernel.sum()
