class UpscaleError(Exception):
    """Base class for every failure surfaced by an upscale run."""


class InvalidInputError(UpscaleError, ValueError):
    """Request rejected before any stage runs (bad buffer length, scale or size)."""


class PipelineError(UpscaleError, RuntimeError):
    """Unexpected fault inside a run; no partial output is produced."""
