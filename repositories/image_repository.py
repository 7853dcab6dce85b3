from __future__ import annotations

from pathlib import Path
from typing import Union, Iterable, List, Iterator
import base64
import logging
import os
from io import BytesIO

import numpy as np
import cv2
from PIL import Image as PILImage
from dotenv import load_dotenv

from models.image import Image

# Load environment variables
load_dotenv()

logger = logging.getLogger(__name__)


class ImageRepository:
    """
    Handles file I/O for Image entities: decode anything OpenCV reads into
    flat RGBA, encode back out through Pillow.
    """
    def __init__(self):
        self.VALID_EXTS = {
            ext.strip().lower()
            for ext in os.getenv("VALID_IMAGE_EXTENSIONS", ".png,.jpg,.jpeg,.bmp,.webp,.tif,.tiff").split(",")
        }

    @staticmethod
    def create_image(pixels: np.ndarray, width: int, height: int,
                     path: Union[str, Path] = None) -> Image:
        pixels = np.ascontiguousarray(pixels, dtype=np.uint8).reshape(-1)
        if path is None:
            return Image(pixels, width, height)
        return Image(pixels=pixels, width=width, height=height, path=Path(path))

    @staticmethod
    def _to_rgba(arr: np.ndarray) -> np.ndarray:
        """cv2 decode result (gray / BGR / BGRA, 8 or 16 bit) → uint8 RGBA (H, W, 4)."""
        if arr.dtype == np.uint16:
            arr = (arr // 257).astype(np.uint8)
        if arr.ndim == 2:
            return cv2.cvtColor(arr, cv2.COLOR_GRAY2RGBA)
        if arr.shape[2] == 4:
            return cv2.cvtColor(arr, cv2.COLOR_BGRA2RGBA)
        return cv2.cvtColor(arr, cv2.COLOR_BGR2RGBA)

    def decode(self, data: bytes, path: Union[str, Path] = None) -> Image:
        """Decode an encoded image (PNG, JPEG, ...) held in memory."""
        if not data:
            raise ValueError("Image data could not be decoded")
        try:
            arr = cv2.imdecode(np.frombuffer(data, dtype=np.uint8), cv2.IMREAD_UNCHANGED)
        except cv2.error as err:
            raise ValueError("Image data could not be decoded") from err
        if arr is None:
            raise ValueError("Image data could not be decoded")
        rgba = self._to_rgba(arr)
        height, width = rgba.shape[:2]
        return self.create_image(rgba, width, height, path)

    def load(self, path: Union[str, Path]) -> Image:
        path = Path(path)
        arr = cv2.imread(str(path), cv2.IMREAD_UNCHANGED)
        if arr is None:
            raise FileNotFoundError(f"Image not found or unreadable: {path}")

        rgba = self._to_rgba(arr)
        height, width = rgba.shape[:2]
        return self.create_image(rgba, width, height, path)

    @staticmethod
    def to_pil(image: Image) -> PILImage.Image:
        return PILImage.fromarray(image.as_grid())

    def save(self, image: Image) -> None:
        if image.path is None:
            raise ValueError("Image has no destination path")
        image.path.parent.mkdir(parents=True, exist_ok=True)
        self.to_pil(image).save(image.path)

    def encode_png(self, image: Image) -> bytes:
        buffer = BytesIO()
        self.to_pil(image).save(buffer, format="PNG")
        return buffer.getvalue()

    def to_data_url(self, image: Image) -> str:
        base64_string = base64.b64encode(self.encode_png(image)).decode("utf-8")
        return f"data:image/png;base64,{base64_string}"

    def iter_dir(
        self,
        folder: Union[str, Path],
        *,
        recursive: bool = False,
        exts: Iterable[str] | None = None,
    ) -> Iterator[Image]:
        """
        Yield Image objects one at a time.  Nothing accumulates in memory.
        """
        folder = Path(folder)
        if not folder.is_dir():
            raise NotADirectoryError(folder)

        allowed = {e.lower() for e in (exts or self.VALID_EXTS)}
        pattern = "**/*" if recursive else "*"

        for p in sorted(folder.glob(pattern)):
            if p.suffix.lower() not in allowed or not p.is_file():
                logger.debug(f"Skipping {p}")
                continue
            try:
                yield self.load(p)
            except FileNotFoundError as err:
                logger.warning(f"Skipping {p.name}: {err}")

    def load_dir(
        self, folder: Union[str, Path], *, recursive=False, exts=None
    ) -> List[Image]:
        return list(self.iter_dir(folder, recursive=recursive, exts=exts))
