import numpy as np
import pytest

from models.upscale_job import UpscaleRequest


@pytest.fixture
def solid_request():
    """Factory: uniform RGBA request of the given size/colour/scale."""
    def _make(width=4, height=4, scale=2, rgba=(128, 128, 128, 255)):
        pixels = np.tile(np.array(rgba, dtype=np.uint8), width * height)
        return UpscaleRequest(width, height, scale, pixels.tobytes())
    return _make


@pytest.fixture
def random_rgba():
    """Factory: deterministic random (H, W, 4) uint8 image."""
    def _make(width=9, height=7, seed=0):
        rng = np.random.default_rng(seed)
        return rng.integers(0, 256, size=(height, width, 4), dtype=np.uint8)
    return _make


@pytest.fixture
def png_bytes():
    """Factory: encode an (H, W, 4) uint8 array as PNG bytes."""
    from io import BytesIO
    from PIL import Image as PILImage

    def _make(arr):
        buffer = BytesIO()
        PILImage.fromarray(arr).save(buffer, format="PNG")
        return buffer.getvalue()
    return _make
