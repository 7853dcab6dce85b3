import argparse
import logging
import os
import sys
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv
from tqdm import tqdm

# Load environment variables first
load_dotenv()

from models.errors import UpscaleError
from models.image import Image
from models.upscale_settings import UpscaleSettings
from pipeline.upscale_pipeline import upscale
from services.image_service import ImageService

logger = logging.getLogger(__name__)

UPSCALED_DIR = os.getenv("UPSCALED_DIR_PATH", "data/upscaled")
OUTPUT_EXT = os.getenv("OUTPUT_IMG_EXT", ".png")
DEFAULT_SCALE = float(os.getenv("DEFAULT_SCALE", "2"))


class TqdmProgressSink:
    """Feeds pipeline progress (0-100) into a tqdm bar."""

    def __init__(self, bar: tqdm):
        self.bar = bar

    def report(self, percent: float, label: Optional[str] = None) -> None:
        if label:
            self.bar.set_postfix_str(label.rstrip("…"), refresh=False)
        self.bar.update(percent - self.bar.n)


def upscale_image(img: Image, scale: float, out_dir: Path, *,
                  image_service: ImageService, settings: UpscaleSettings) -> Image:
    """Upscale one loaded image and save it next to its siblings in ``out_dir``."""
    desc = img.path.name if img.path else "image"
    with tqdm(total=100, desc=desc, ncols=90, leave=False) as bar:
        result = upscale(image_service.to_request(img, scale),
                         TqdmProgressSink(bar), settings)

    out_path = image_service.upscaled_path(img, out_dir, scale, OUTPUT_EXT) \
        or out_dir / f"upscaled_x{scale:g}{OUTPUT_EXT}"
    upscaled = image_service.create_image(result.buffer, result.width, result.height, out_path)
    image_service.save(upscaled)
    logger.info(f"{desc}: {img.width}x{img.height} → {result.width}x{result.height} "
                f"in {result.duration_ms:.0f} ms → {out_path}")
    return upscaled


def parse_args(argv=None):
    parser = argparse.ArgumentParser(description="Upscale images with denoise, Lanczos resampling and edge enhancement.")
    parser.add_argument("source", help="Image file or folder of images")
    parser.add_argument("-s", "--scale", type=float, default=DEFAULT_SCALE, help="Scale factor, e.g. 2, 3, 4 or 1.5")
    parser.add_argument("-o", "--output", default=UPSCALED_DIR, help="Output directory")
    parser.add_argument("-r", "--recursive", action="store_true", help="Recurse into sub-folders")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    return parser.parse_args(argv)


def main(argv=None) -> int:
    args = parse_args(argv)

    # --- Centralized Logging Configuration ---
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format='%(asctime)s - %(name)-25s - %(levelname)-8s - %(message)s',
        datefmt='%H:%M:%S'
    )

    image_service = ImageService()
    settings = UpscaleSettings.from_env()
    source = Path(args.source)
    out_dir = Path(args.output)

    if source.is_dir():
        gallery = image_service.stream_gallery(source, recursive=args.recursive)
    else:
        gallery = [image_service.load(source)]

    done = failed = 0
    for img in gallery:
        try:
            upscale_image(img, args.scale, out_dir, image_service=image_service, settings=settings)
            done += 1
        except UpscaleError as err:
            logger.error(f"Failed to upscale {img.path}: {err}")
            failed += 1

    print(f"\nUpscaled {done} image(s) ×{args.scale:g} into {out_dir}" + (f", {failed} failed" if failed else ""))
    return 1 if failed else 0


if __name__ == "__main__":
    sys.exit(main())
