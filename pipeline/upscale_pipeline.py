"""
Upscale Pipeline
Denoise → Lanczos resample → edge enhancement on one in-memory RGBA buffer.
Every run is a pure function of (buffer, width, height, scale, settings);
the only side channel is the injected progress sink.
"""

from __future__ import annotations

import logging
import math
import time
from typing import Optional

import numpy as np

from models.errors import InvalidInputError, PipelineError, UpscaleError
from models.upscale_job import UpscaleJob, UpscaleRequest, UpscaleResult
from models.upscale_settings import UpscaleSettings
from pipeline.progress import MonotonicProgressSink, ProgressSink
from services.color_service import ColorService
from services.denoise_service import DenoiseService
from services.edge_enhancement_service import EdgeEnhancementService
from services.image_service import ImageService
from services.resample_service import ResampleService

logger = logging.getLogger(__name__)

# Progress milestones (percent)
PROGRESS_START = 5
PROGRESS_DENOISED = 18
PROGRESS_RESAMPLED = 63
PROGRESS_ENHANCING = 68
PROGRESS_FINALIZING = 88
PROGRESS_DONE = 100


def target_size(width: int, height: int, scale: float):
    """round(width·scale), round(height·scale), rounding halves up."""
    return int(math.floor(width * scale + 0.5)), int(math.floor(height * scale + 0.5))


def validate_request(request: UpscaleRequest) -> np.ndarray:
    """
    Check dimensions, scale and buffer length.

    Returns:
        np.ndarray: the request's flat uint8 pixels.

    Raises:
        InvalidInputError: before any stage has run.
    """
    width, height, scale = request.width, request.height, request.scale
    if not isinstance(width, (int, np.integer)) or not isinstance(height, (int, np.integer)):
        raise InvalidInputError(f"Width and height must be integers, got {width!r}x{height!r}")
    if width <= 0 or height <= 0:
        raise InvalidInputError(f"Invalid image size {width}x{height}")
    if not isinstance(scale, (int, float, np.number)) or not math.isfinite(scale) or scale <= 0:
        raise InvalidInputError(f"Scale factor must be a positive number, got {scale!r}")

    try:
        pixels = request.pixels()
    except (TypeError, ValueError) as err:
        raise InvalidInputError(f"Unreadable pixel buffer: {err}") from err
    if pixels.dtype != np.uint8:
        raise InvalidInputError(f"Pixel buffer must be 8-bit unsigned, got {pixels.dtype}")
    expected = width * height * 4
    if pixels.size != expected:
        raise InvalidInputError(
            f"Buffer length {pixels.size} does not match {width}x{height}x4 = {expected}")

    new_width, new_height = target_size(width, height, scale)
    if new_width < 1 or new_height < 1:
        raise InvalidInputError(f"Scale {scale} shrinks {width}x{height} to nothing")
    return pixels


def _check_finite(stage: str, buffer: np.ndarray) -> None:
    if not np.isfinite(buffer).all():
        raise PipelineError(f"Non-finite values after {stage}")


def run_job(
    job: UpscaleJob,
    *,
    color_service: ColorService = ColorService(),
    image_service: ImageService = ImageService(),
) -> UpscaleResult:
    """
    Run one upscale job end-to-end.

    Steps:
    1. Validate the request (no progress is reported for rejected requests)
    2. Split into Y/Cb/Cr, bilateral-denoise Y, recombine
    3. Lanczos-resample all four channels to the target size
    4. Sharpen luma and normalise contrast
    5. Round and clamp to 8-bit RGBA

    Raises:
        InvalidInputError: the request is malformed.
        PipelineError: anything failed mid-run; no partial result exists.
    """
    request, settings = job.request, job.settings
    pixels = validate_request(request)
    width, height = request.width, request.height
    new_width, new_height = target_size(width, height, request.scale)

    progress = MonotonicProgressSink(job.progress)
    start = time.perf_counter()
    try:
        progress.report(PROGRESS_START, "Running adaptive denoise…")
        rgba = color_service.to_float(pixels, width, height)
        planes = color_service.decompose(rgba, width, height)
        planes.y = DenoiseService().denoise(
            planes.y, width, height,
            spatial_sigma=settings.spatial_sigma,
            range_sigma=settings.range_sigma,
            blend=settings.denoise_blend,
        )
        logger.debug(f"[{job.job_id}] denoised {width}x{height}")

        progress.report(PROGRESS_DENOISED, "Preparing high-fidelity resampling…")
        recombined = color_service.recompose_planes(planes)

        resampler = ResampleService(
            a=settings.lanczos_a,
            horizontal_progress_rows=settings.horizontal_progress_rows,
            vertical_progress_rows=settings.vertical_progress_rows,
        )
        scaled = resampler.resample(
            recombined, width, height, new_width, new_height,
            on_progress=progress.span(PROGRESS_DENOISED, PROGRESS_RESAMPLED,
                                      "Performing progressive Lanczos scaling…"),
        )
        _check_finite("resampling", scaled)

        progress.report(PROGRESS_ENHANCING, "Enhancing edges & micro-contrast…")
        enhancer = EdgeEnhancementService(settings, color_service=color_service)
        enhanced = enhancer.enhance(scaled, new_width, new_height)
        _check_finite("enhancement", enhanced)

        progress.report(PROGRESS_FINALIZING, "Finalizing color & output…")
        output = image_service.quantize(enhanced)
        duration_ms = (time.perf_counter() - start) * 1000.0
        progress.report(PROGRESS_DONE, "Done.")
    except UpscaleError:
        raise
    except Exception as err:
        logger.error(f"[{job.job_id}] upscale failed: {err}")
        raise PipelineError(str(err) or "Processing failed.") from err

    logger.info(f"[{job.job_id}] {width}x{height} → {new_width}x{new_height} in {duration_ms:.0f} ms")
    return UpscaleResult(new_width, new_height, output, duration_ms)


def upscale(
    request: UpscaleRequest,
    progress: Optional[ProgressSink] = None,
    settings: Optional[UpscaleSettings] = None,
) -> UpscaleResult:
    """Convenience wrapper building the job context for a single request."""
    job = UpscaleJob(request, settings or UpscaleSettings(), progress)
    return run_job(job)
