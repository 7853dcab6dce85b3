from __future__ import annotations

from pathlib import Path
from typing import Iterable, Iterator, Union

import numpy as np

from models.image import Image
from models.upscale_job import UpscaleRequest
from repositories.image_repository import ImageRepository


class ImageService:
    """I/O helpers and buffer conversions.  No filtering logic here."""
    def __init__(self, image_repository: ImageRepository | None = None):
        self.image_repository = image_repository or ImageRepository()

    def create_image(self, pixels: np.ndarray, width: int, height: int,
                     path: Union[str, Path] = None) -> Image:
        return self.image_repository.create_image(pixels, width, height, path)

    def load(self, path: str | Path) -> Image:
        """Load a single image from disk into an RGBA Image object."""
        return self.image_repository.load(path)

    def decode(self, data: bytes, path: Union[str, Path] = None) -> Image:
        return self.image_repository.decode(data, path)

    def stream_gallery(
        self,
        folder: Union[str, Path],
        *,
        recursive: bool = False,
        exts: Iterable[str] | None = None,
    ) -> Iterator[Image]:
        """
        Yield images lazily instead of returning a gigantic list.
        """
        return self.image_repository.iter_dir(folder,
                                              recursive=recursive,
                                              exts=exts)

    def save(self, image: Image) -> None:
        self.image_repository.save(image)

    def to_data_url(self, image: Image) -> str:
        return self.image_repository.to_data_url(image)

    # ─── Buffer conversions ───────────────────────────────────────────
    @staticmethod
    def to_request(img: Image, scale: float) -> UpscaleRequest:
        """Wrap a loaded image as a pipeline request; raises ValueError on a malformed buffer."""
        img.validate()
        return UpscaleRequest(img.width, img.height, scale, img.pixels)

    @staticmethod
    def quantize(rgba: np.ndarray) -> np.ndarray:
        """
        Float working buffer → flat uint8 RGBA: add 0.5, clamp to [0, 255], truncate.
        """
        return np.clip(np.asarray(rgba, dtype=np.float64) + 0.5, 0, 255).astype(np.uint8).reshape(-1)

    @staticmethod
    def upscaled_path(img: Image, directory: Union[str, Path], scale: float, ext: str = ".png") -> Path | None:
        if img.path is None:
            return None
        return Path(directory) / f"{img.path.stem}_x{scale:g}{ext}"

