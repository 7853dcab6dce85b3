"""
Progress sinks for the upscale pipeline.
The pipeline only ever calls ``report(percent, label)``; how the value
reaches the caller (inline callback, queue, progress bar) is up to the sink.
"""

from __future__ import annotations

import queue
from typing import Callable, Optional, Protocol

from models.upscale_job import ProgressEvent, WorkerMessage


class ProgressSink(Protocol):
    def report(self, percent: float, label: Optional[str] = None) -> None:
        ...


class NullProgressSink:
    def report(self, percent: float, label: Optional[str] = None) -> None:
        pass


class CallbackProgressSink:
    """Calls ``callback(ProgressEvent)`` inline on the pipeline thread."""

    def __init__(self, callback: Callable[[ProgressEvent], None]):
        self.callback = callback

    def report(self, percent: float, label: Optional[str] = None) -> None:
        self.callback(ProgressEvent(percent, label))


class QueueProgressSink:
    """Marshals progress onto a queue as ``WorkerMessage('progress', ...)``."""

    def __init__(self, messages: queue.Queue, job_id: str):
        self.messages = messages
        self.job_id = job_id

    def report(self, percent: float, label: Optional[str] = None) -> None:
        self.messages.put(WorkerMessage("progress", self.job_id, {"value": percent, "label": label}))


class MonotonicProgressSink:
    """
    Wraps another sink so values stay in [0, 100] and never go backwards.
    Labels are remembered so fine-grained updates without one keep the last stage name.
    """

    def __init__(self, inner: ProgressSink | None = None):
        self.inner = inner or NullProgressSink()
        self.value = 0.0
        self.label: Optional[str] = None

    def report(self, percent: float, label: Optional[str] = None) -> None:
        percent = min(max(float(percent), 0.0, self.value), 100.0)
        self.value = percent
        if label is not None:
            self.label = label
        self.inner.report(percent, self.label)

    def span(self, start: float, end: float, label: Optional[str] = None) -> Callable[[float], None]:
        """Map a stage fraction in [0, 1] onto [start, end]."""
        def _report(fraction: float) -> None:
            self.report(start + fraction * (end - start), label)
        return _report
