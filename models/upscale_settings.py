from __future__ import annotations
from dataclasses import dataclass, fields
import os

from dotenv import load_dotenv

# Load environment variables
load_dotenv()


@dataclass(frozen=True)
class UpscaleSettings:
    """
    Value-object holding the tunable constants of the upscale pipeline.
    Defaults reproduce the reference output bit-for-bit; override per run
    or through ``UPSCALE_*`` environment variables.
    """
    # ── Bilateral denoise ───────────────────────────────────────────
    spatial_sigma: float = 1.25
    range_sigma: float = 12.0
    denoise_blend: float = 0.35      # share of the filtered result

    # ── Lanczos resampling ──────────────────────────────────────────
    lanczos_a: int = 3
    horizontal_progress_rows: int = 24
    vertical_progress_rows: int = 12

    # ── Edge enhancement ────────────────────────────────────────────
    blur_radius: int = 2
    blur_sigma: float = 1.2
    edge_threshold: float = 2.0
    strong_boost: float = 0.85
    weak_boost: float = 0.4
    damping: float = 0.12

    # ── Contrast normalisation ──────────────────────────────────────
    contrast_strength: float = 0.1
    min_std: float = 28.0
    std_spread: float = 2.2
    low_clip_ratio: float = 0.05

    @classmethod
    def from_env(cls, prefix: str = "UPSCALE_") -> "UpscaleSettings":
        """Build settings from environment variables, falling back to the defaults."""
        overrides = {}
        for f in fields(cls):
            raw = os.getenv(prefix + f.name.upper())
            if raw is None or raw == "":
                continue
            cast = int if f.type in ("int", int) else float
            overrides[f.name] = cast(raw)
        return cls(**overrides)
