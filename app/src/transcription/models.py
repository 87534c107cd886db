"""
Data models for the transcription module.

Jobs live only in memory for the lifetime of the queue; the meeting
document is the durable record of a transcription's outcome.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field


class TranscriptionStatus(str, Enum):
    """Possible states of a transcription job (and of a meeting)."""

    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"


class TranscriptionProvider(str, Enum):
    """Backend used to turn audio into text."""

    LOCAL = "local"
    OPENAI = "openai"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class NewTranscriptionJob(BaseModel):
    """Caller-supplied part of a job; the queue fills in the rest."""

    id: str
    audio_file_path: str
    meeting_id: str
    user_id: str
    provider: TranscriptionProvider = TranscriptionProvider.OPENAI


class TranscriptionJob(NewTranscriptionJob):
    """A queued unit of work: transcribe this audio for this meeting."""

    status: TranscriptionStatus = TranscriptionStatus.PENDING
    attempts: int = Field(default=0, ge=0)
    error: Optional[str] = None
    created_at: datetime = Field(default_factory=_utcnow)
    updated_at: datetime = Field(default_factory=_utcnow)

    def mark(self, status: TranscriptionStatus, error: Optional[str] = None) -> None:
        """Move the job to ``status`` and bump ``updated_at``."""
        self.status = status
        if error is not None:
            self.error = error
        self.updated_at = _utcnow()


class TranscriptionResult(BaseModel):
    """Normalised output of any transcription backend."""

    model_config = ConfigDict(populate_by_name=True)

    text: str = ""
    srt: Optional[str] = None
    vtt: Optional[str] = None
    json_data: Optional[Dict[str, Any]] = Field(default=None, alias="json")
