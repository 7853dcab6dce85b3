from __future__ import annotations
from dataclasses import dataclass, field
from typing import Any, Dict, Optional
import uuid

import numpy as np

from models.upscale_settings import UpscaleSettings


@dataclass
class UpscaleRequest:
    """Raw input handed over by the caller: dimensions, scale and an RGBA byte buffer."""
    width: int
    height: int
    scale: float
    buffer: Any  # bytes / bytearray / memoryview / 1-D uint8 ndarray

    def pixels(self) -> np.ndarray:
        if isinstance(self.buffer, np.ndarray):
            return self.buffer.reshape(-1)
        return np.frombuffer(bytes(self.buffer), dtype=np.uint8)


@dataclass
class UpscaleResult:
    width: int
    height: int
    buffer: np.ndarray  # flat uint8 RGBA, length width*height*4
    duration_ms: float


@dataclass
class ProgressEvent:
    value: float
    label: Optional[str] = None


@dataclass
class WorkerMessage:
    """One-way notification emitted by the worker: progress, complete or error."""
    type: str
    job_id: str
    payload: Dict[str, Any] = field(default_factory=dict)


@dataclass
class UpscaleJob:
    """
    Explicit context threaded through every stage of one run.
    Jobs never share buffers; concurrent jobs are independent values.
    """
    request: UpscaleRequest
    settings: UpscaleSettings = field(default_factory=UpscaleSettings)
    progress: Any = None  # ProgressSink
    job_id: str = field(default_factory=lambda: uuid.uuid4().hex)
