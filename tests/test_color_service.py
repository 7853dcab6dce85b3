import numpy as np

from services.color_service import ColorService
from services.image_service import ImageService


def test_decompose_matches_bt601():
    rgba = np.array([255, 0, 0, 200, 0, 0, 255, 10], dtype=np.uint8)
    planes = ColorService().decompose(rgba, 2, 1)

    assert planes.y.shape == (1, 2)
    assert np.allclose(planes.y[0], [0.299 * 255, 0.114 * 255])
    assert np.allclose(planes.cb[0], [-0.168736 * 255 + 128, 0.5 * 255 + 128])
    assert np.allclose(planes.cr[0], [0.5 * 255 + 128, -0.081312 * 255 + 128])
    assert np.array_equal(planes.alpha[0], [200, 10])


def test_gray_has_neutral_chroma():
    rgba = np.array([77, 77, 77, 255] * 3, dtype=np.uint8)
    planes = ColorService().decompose(rgba, 3, 1)
    assert np.allclose(planes.y, 77)
    assert np.allclose(planes.cb, 128)
    assert np.allclose(planes.cr, 128)


def test_round_trip_within_one_level(random_rgba):
    color = ColorService()
    original = random_rgba(13, 11, seed=3)
    planes = color.decompose(original.reshape(-1), 13, 11)
    restored = ImageService.quantize(color.recompose_planes(planes))

    diff = np.abs(restored.astype(int) - original.reshape(-1).astype(int))
    assert diff.max() <= 1


def test_recompose_defaults_alpha_to_opaque():
    y = np.full((2, 2), 50.0)
    chroma = np.full((2, 2), 128.0)
    out = ColorService().recompose(y, chroma, chroma)
    assert out.shape == (2, 2, 4)
    assert np.all(out[..., 3] == 255)
    assert np.allclose(out[..., :3], 50)


def test_recompose_does_not_clamp():
    y = np.array([[300.0, -20.0]])
    chroma = np.full((1, 2), 128.0)
    out = ColorService().recompose(y, chroma, chroma, np.zeros((1, 2)))
    assert out[0, 0, 0] > 255
    assert out[0, 1, 0] < 0
