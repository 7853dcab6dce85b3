import numpy as np
import pytest
from PIL import Image as PILImage

from repositories.image_repository import ImageRepository


def test_save_and_load_keep_rgba(tmp_path, random_rgba):
    repo = ImageRepository()
    arr = random_rgba(6, 5)
    image = repo.create_image(arr, 6, 5, tmp_path / "out" / "img.png")
    repo.save(image)

    loaded = repo.load(image.path)
    assert (loaded.width, loaded.height) == (6, 5)
    assert np.array_equal(loaded.pixels, arr.reshape(-1))


def test_grayscale_file_becomes_opaque_rgba(tmp_path):
    path = tmp_path / "gray.png"
    PILImage.fromarray(np.full((3, 4), 90, dtype=np.uint8)).save(path)
    image = ImageRepository().load(path)
    grid = image.as_grid()
    assert grid.shape == (3, 4, 4)
    assert np.all(grid[..., :3] == 90)
    assert np.all(grid[..., 3] == 255)


def test_rgb_channel_order(png_bytes):
    arr = np.zeros((1, 1, 4), dtype=np.uint8)
    arr[0, 0] = (200, 10, 30, 255)
    image = ImageRepository().decode(png_bytes(arr))
    assert list(image.pixels) == [200, 10, 30, 255]


def test_decode_rejects_garbage():
    with pytest.raises(ValueError):
        ImageRepository().decode(b"not an image")


def test_decode_rejects_empty_data():
    with pytest.raises(ValueError, match="could not be decoded"):
        ImageRepository().decode(b"")


def test_load_missing_file(tmp_path):
    with pytest.raises(FileNotFoundError):
        ImageRepository().load(tmp_path / "missing.png")


def test_iter_dir_filters_extensions(tmp_path, random_rgba):
    PILImage.fromarray(random_rgba(2, 2)).save(tmp_path / "a.png")
    (tmp_path / "notes.txt").write_text("skip me")
    images = ImageRepository().load_dir(tmp_path)
    assert [img.path.name for img in images] == ["a.png"]


def test_data_url(random_rgba):
    repo = ImageRepository()
    image = repo.create_image(random_rgba(2, 2), 2, 2)
    assert repo.to_data_url(image).startswith("data:image/png;base64,")


def test_validate_rejects_wrong_length():
    image = ImageRepository.create_image(np.zeros(15, dtype=np.uint8), 2, 2)
    with pytest.raises(ValueError):
        image.validate()
