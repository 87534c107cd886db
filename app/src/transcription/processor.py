"""
Transcription processor: backend dispatch plus the retry policy.

Every attempt normalises the audio to WAV and hands the job to the
backend selected by ``job.provider``.  Failed attempts are retried with
exponential backoff (``RETRY_DELAY_MS * 2**attempt``) until
``MAX_RETRIES`` attempts have been made.  All errors are treated as
retryable.
"""

import asyncio
import logging
import os
from typing import Callable, Dict, Mapping, Optional

import backoff

from configs.config import get_config
from src.transcription.audio import convert_to_wav
from src.transcription.local_backend import transcribe_with_local_whisper
from src.transcription.models import (
    TranscriptionJob,
    TranscriptionProvider,
    TranscriptionResult,
)
from src.transcription.openai_backend import transcribe_with_openai

logger = logging.getLogger(__name__)
cfg = get_config()

Backend = Callable[[TranscriptionJob], TranscriptionResult]

BACKENDS: Dict[TranscriptionProvider, Backend] = {
    TranscriptionProvider.LOCAL: transcribe_with_local_whisper,
    TranscriptionProvider.OPENAI: transcribe_with_openai,
}

_unmapped = set(TranscriptionProvider) - set(BACKENDS)
if _unmapped:
    raise ImportError(f"No transcription backend registered for: {sorted(_unmapped)}")


class TranscriptionFailedError(RuntimeError):
    """Raised once every transcription attempt for a job has failed."""

    def __init__(self, attempts: int, last_error: BaseException) -> None:
        super().__init__(
            f"Failed to transcribe after {attempts} attempts. "
            f"Last error: {last_error}"
        )
        self.attempts = attempts
        self.last_error = last_error


def select_backend(
    provider: TranscriptionProvider, backends: Mapping[TranscriptionProvider, Backend]
) -> Backend:
    """Return the backend registered for ``provider``."""
    try:
        return backends[TranscriptionProvider(provider)]
    except (KeyError, ValueError):
        raise ValueError(f"Unsupported transcription provider: {provider!r}") from None


def transcribe_once(
    job: TranscriptionJob, backends: Mapping[TranscriptionProvider, Backend]
) -> TranscriptionResult:
    """Run a single, blocking transcription attempt."""
    audio_path = os.path.abspath(job.audio_file_path)
    wav_path = convert_to_wav(audio_path)
    backend = select_backend(job.provider, backends)
    return backend(job.model_copy(update={"audio_file_path": wav_path}))


async def process_transcription(
    job: TranscriptionJob,
    backends: Optional[Mapping[TranscriptionProvider, Backend]] = None,
    max_retries: int = cfg.TRANSCRIPTION_MAX_RETRIES,
    retry_delay_ms: int = cfg.TRANSCRIPTION_RETRY_DELAY_MS,
) -> TranscriptionResult:
    """
    Transcribe a job, retrying failed attempts with exponential backoff.

    Blocking backend work runs in a worker thread so the event loop keeps
    accepting new jobs while this one is in flight.

    Raises:
        TranscriptionFailedError: after ``max_retries`` failed attempts.
    """
    backends = backends if backends is not None else BACKENDS

    def _log_retry(details: dict) -> None:
        logger.info(
            "Retrying job %s in %dms...", job.id, round(details["wait"] * 1000)
        )

    @backoff.on_exception(
        backoff.expo,
        Exception,
        max_tries=max_retries,
        jitter=None,
        on_backoff=_log_retry,
        logger=None,
        factor=retry_delay_ms / 1000,
    )
    async def _attempt() -> TranscriptionResult:
        job.attempts += 1
        logger.info(
            "Processing transcription job %s, attempt %d", job.id, job.attempts
        )
        try:
            return await asyncio.to_thread(transcribe_once, job, backends)
        except Exception as exc:
            job.error = str(exc)
            logger.error(
                "Transcription attempt %d failed for job %s: %s",
                job.attempts, job.id, exc,
            )
            raise

    try:
        result = await _attempt()
    except Exception as exc:
        raise TranscriptionFailedError(job.attempts, exc) from exc

    logger.info("Successfully transcribed job %s", job.id)
    return result
