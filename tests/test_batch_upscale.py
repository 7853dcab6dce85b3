import numpy as np
from PIL import Image as PILImage

from cli.batch_upscale import main


def test_cli_upscales_single_file(tmp_path, random_rgba):
    src = tmp_path / "tiny.png"
    PILImage.fromarray(random_rgba(4, 3)).save(src)
    out_dir = tmp_path / "out"

    assert main([str(src), "--scale", "2", "--output", str(out_dir)]) == 0

    result = PILImage.open(out_dir / "tiny_x2.png")
    assert result.size == (8, 6)
    assert result.mode == "RGBA"


def test_cli_upscales_folder(tmp_path, random_rgba):
    gallery = tmp_path / "gallery"
    gallery.mkdir()
    for name in ("a.png", "b.png"):
        PILImage.fromarray(random_rgba(3, 3)).save(gallery / name)
    out_dir = tmp_path / "out"

    assert main([str(gallery), "-s", "1.5", "-o", str(out_dir)]) == 0
    assert sorted(p.name for p in out_dir.iterdir()) == ["a_x1.5.png", "b_x1.5.png"]
    assert np.asarray(PILImage.open(out_dir / "a_x1.5.png")).shape == (5, 5, 4)
