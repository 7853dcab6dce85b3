from __future__ import annotations
from dataclasses import dataclass
from typing import List, Tuple
import numpy as np


@dataclass
class ResampleWeights:
    """
    Per-destination tap lists for one axis, stored as padded matrices.

    Row ``i`` describes destination coordinate ``i``: ``indices[i, k]`` is a valid
    source index and ``weights[i, k]`` its weight. Padding taps carry weight 0
    and are left out of ``taps()``.
    """
    source_size: int
    target_size: int
    indices: np.ndarray  # (target_size, K) int64
    weights: np.ndarray  # (target_size, K) float64
    counts: np.ndarray   # (target_size,) number of real taps per row

    def taps(self, dst: int) -> List[Tuple[int, float]]:
        """Ordered (source_index, weight) pairs for one destination coordinate."""
        n = int(self.counts[dst])
        return [(int(i), float(w)) for i, w in zip(self.indices[dst, :n], self.weights[dst, :n])]

    def __len__(self) -> int:
        return self.target_size
