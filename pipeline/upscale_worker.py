"""
Background execution of upscale jobs.
Callers submit a request and read one-way messages from ``worker.messages``:
zero or more ``progress`` messages, then exactly one ``complete`` or ``error``.
"""

from __future__ import annotations

import logging
import os
import queue
from concurrent.futures import Future, ThreadPoolExecutor
from typing import Dict, Iterator, List, Optional

from dotenv import load_dotenv

from models.errors import UpscaleError
from models.upscale_job import UpscaleJob, UpscaleRequest, WorkerMessage
from models.upscale_settings import UpscaleSettings
from pipeline.progress import QueueProgressSink
from pipeline.upscale_pipeline import run_job

# Load environment variables
load_dotenv()

logger = logging.getLogger(__name__)


class UpscaleWorker:
    """
    Runs jobs off the caller's thread. Each job owns its buffers, so jobs
    share nothing but the outgoing message queue.
    """

    def __init__(self, max_workers: int | None = None,
                 settings: UpscaleSettings | None = None,
                 messages: queue.Queue | None = None):
        self.max_workers = max_workers or int(os.getenv("UPSCALE_WORKERS", "1"))
        self.settings = settings or UpscaleSettings.from_env()
        self.messages: queue.Queue = messages or queue.Queue()
        self._executor = ThreadPoolExecutor(max_workers=self.max_workers,
                                            thread_name_prefix="upscale")
        self._futures: Dict[str, Future] = {}

    # ─── Public API ────────────────────────────────────────────────
    def submit(self, request: UpscaleRequest, settings: UpscaleSettings | None = None,
               messages: queue.Queue | None = None) -> str:
        """Queue a job; its messages go to ``messages`` (default: the shared queue)."""
        job = UpscaleJob(request, settings or self.settings)
        outbox = messages if messages is not None else self.messages
        job.progress = QueueProgressSink(outbox, job.job_id)
        future = self._executor.submit(self._run, job, outbox)
        self._futures[job.job_id] = future
        future.add_done_callback(lambda _f, job_id=job.job_id: self._futures.pop(job_id, None))
        logger.info(f"Submitted job {job.job_id} ({request.width}x{request.height} ×{request.scale})")
        return job.job_id

    def done(self, job_id: str) -> bool:
        """Finished jobs are forgotten, so an unknown id counts as done."""
        future = self._futures.get(job_id)
        return future is None or future.done()

    @property
    def pending(self) -> int:
        return len(self._futures)

    @staticmethod
    def drain(messages: queue.Queue, timeout: Optional[float] = None) -> Iterator[WorkerMessage]:
        """Yield messages until a terminal ``complete``/``error`` one."""
        while True:
            message = messages.get(timeout=timeout)
            yield message
            if message.type in ("complete", "error"):
                return

    def run_sync(self, request: UpscaleRequest, timeout: Optional[float] = None) -> List[WorkerMessage]:
        """Submit on a private queue and block until the job finishes; returns all its messages."""
        outbox: queue.Queue = queue.Queue()
        self.submit(request, messages=outbox)
        return list(self.drain(outbox, timeout=timeout))

    def shutdown(self, wait: bool = True) -> None:
        self._executor.shutdown(wait=wait)

    # ─── Internal helpers ──────────────────────────────────────────
    def _run(self, job: UpscaleJob, outbox: queue.Queue) -> None:
        try:
            result = run_job(job)
        except UpscaleError as err:
            logger.error(f"Job {job.job_id} failed: {err}")
            outbox.put(WorkerMessage("error", job.job_id,
                                       {"message": str(err) or "Processing failed."}))
            return
        except Exception as err:
            # every job must end with a terminal message or drain() never returns
            logger.exception(f"Job {job.job_id} crashed: {err}")
            outbox.put(WorkerMessage("error", job.job_id, {"message": "Processing failed."}))
            return
        outbox.put(WorkerMessage("complete", job.job_id, {
            "width": result.width,
            "height": result.height,
            "buffer": result.buffer,
            "duration": result.duration_ms,
        }))
