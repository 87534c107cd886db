"""
In-process transcription queue.

Jobs are held in memory and processed strictly one at a time in the
order they were added.  The outcome of each job is written to its
meeting document; the job itself is discarded once it reaches a
terminal state and does not survive a restart.

The queue is created with its meeting repository and bound to the
running event loop by ``start()`` (see the FastAPI lifespan in
``main.py``).  ``add_job`` must be called from that loop.
"""

import asyncio
import logging
from collections import deque
from typing import Any, Awaitable, Callable, Deque, Dict, Optional

from src.database.meeting_repository import MeetingRepository
from src.transcription.models import (
    NewTranscriptionJob,
    TranscriptionJob,
    TranscriptionResult,
    TranscriptionStatus,
)
from src.transcription.processor import process_transcription

logger = logging.getLogger(__name__)

Processor = Callable[[TranscriptionJob], Awaitable[TranscriptionResult]]


class TranscriptionQueue:
    """Serial FIFO queue that drives transcription jobs to completion."""

    def __init__(
        self,
        meetings: MeetingRepository,
        processor: Processor = process_transcription,
    ) -> None:
        self._meetings = meetings
        self._processor = processor
        self._jobs: Deque[TranscriptionJob] = deque()
        self._is_processing = False
        self._accepting = True
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._drain_task: Optional[asyncio.Task] = None

    # ── Lifecycle ────────────────────────────────────────────────────────

    def start(self) -> None:
        """Bind to the running event loop and drain anything already queued."""
        self._loop = asyncio.get_running_loop()
        self._accepting = True
        logger.info("Transcription queue started (%d pending)", len(self._jobs))
        self._schedule_drain()

    async def stop(self) -> None:
        """Stop accepting jobs and wait for the in-flight drain to finish."""
        self._accepting = False
        task = self._drain_task
        if task is not None and not task.done():
            logger.info(
                "Waiting for transcription queue to drain (%d jobs)", len(self._jobs)
            )
            await task
        self._loop = None
        logger.info("Transcription queue stopped")

    # ── Public API ───────────────────────────────────────────────────────

    def add_job(self, new_job: NewTranscriptionJob) -> TranscriptionJob:
        """Append a job to the tail of the queue and start draining if idle."""
        if not self._accepting:
            raise RuntimeError("Transcription queue is stopped")

        job = TranscriptionJob(**new_job.model_dump())
        self._jobs.append(job)
        logger.info(
            "Added new transcription job %s for meeting %s (provider=%s)",
            job.id, job.meeting_id, job.provider.value,
        )

        if not self._is_processing:
            self._schedule_drain()
        return job

    def get_queue_status(self) -> Dict[str, Any]:
        """Read-only snapshot of the queue for diagnostics."""
        current = self._jobs[0] if self._jobs else None
        return {
            "queue_length": len(self._jobs),
            "is_processing": self._is_processing,
            "current_job": current.model_dump(mode="json") if current else None,
        }

    # ── Draining ─────────────────────────────────────────────────────────

    def _schedule_drain(self) -> None:
        if self._loop is None or not self._jobs:
            return
        if self._drain_task is not None and not self._drain_task.done():
            return
        self._drain_task = self._loop.create_task(self._process_queue())

    async def _process_queue(self) -> None:
        """Process queued jobs one at a time until the queue is empty."""
        if self._is_processing or not self._jobs:
            return

        self._is_processing = True
        try:
            while self._jobs:
                job = self._jobs[0]
                try:
                    await self._process_job(job)
                except Exception as exc:
                    logger.error(
                        "Error processing transcription queue at job %s: %s",
                        job.id, exc, exc_info=True,
                    )
                finally:
                    self._jobs.popleft()
        finally:
            self._is_processing = False

    async def _process_job(self, job: TranscriptionJob) -> None:
        job.mark(TranscriptionStatus.PROCESSING)
        try:
            marked = await asyncio.to_thread(
                self._meetings.update_transcription_status,
                job.meeting_id,
                TranscriptionStatus.PROCESSING,
            )
            if not marked:
                logger.warning(
                    "Could not mark meeting %s as processing", job.meeting_id
                )

            result = await self._processor(job)

            saved = await asyncio.to_thread(
                self._meetings.save_transcription_result, job.meeting_id, result
            )
            if not saved:
                raise RuntimeError(
                    f"Failed to save transcription result for meeting {job.meeting_id}"
                )
            job.mark(TranscriptionStatus.COMPLETED)
            logger.info("Successfully processed transcription job: %s", job.id)
        except Exception as exc:
            logger.error(
                "Failed to process transcription job %s: %s", job.id, exc
            )
            job.mark(TranscriptionStatus.FAILED, error=str(exc))
            await asyncio.to_thread(
                self._meetings.mark_transcription_failed, job.meeting_id, str(exc)
            )
