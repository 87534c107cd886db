import os
import tempfile

# Must be set before any application module reads its configuration
os.environ.setdefault("ENVIRONMENT", "development")
os.environ.setdefault("UPLOAD_DIR", tempfile.mkdtemp(prefix="meetscribe-tests-"))

import mongomock
import pytest

from src.database import meeting_repository, todo_repository, user_repository
from src.database.connection import ensure_indexes
from src.database.meeting_repository import MeetingRepository
from src.transcription.models import TranscriptionResult, TranscriptionStatus


@pytest.fixture
def mongo_db(monkeypatch):
    """A fresh in-memory database wired into every repository module."""
    db = mongomock.MongoClient().get_database("meetscribe_test")
    ensure_indexes(db)
    for module in (meeting_repository, todo_repository, user_repository):
        monkeypatch.setattr(module, "get_db", lambda: db)
    return db


@pytest.fixture
def meetings(mongo_db):
    return MeetingRepository(mongo_db)


class RecordingMeetings:
    """Meeting repository double that records every status written."""

    def __init__(self):
        self.records = {}
        self.history = {}

    def add(self, meeting_id):
        self.records[meeting_id] = {
            "transcription_status": TranscriptionStatus.PENDING.value,
            "transcript": "",
            "transcription_error": None,
        }
        self.history[meeting_id] = [TranscriptionStatus.PENDING.value]

    def _set(self, meeting_id, **fields):
        self.records[meeting_id].update(fields)
        if "transcription_status" in fields:
            self.history[meeting_id].append(fields["transcription_status"])
        return True

    def update_transcription_status(self, meeting_id, status):
        return self._set(meeting_id, transcription_status=TranscriptionStatus(status).value)

    def save_transcription_result(self, meeting_id, result: TranscriptionResult):
        return self._set(
            meeting_id,
            transcript=result.text,
            transcript_srt=result.srt,
            transcript_vtt=result.vtt,
            transcript_json=result.json_data,
            transcription_status=TranscriptionStatus.COMPLETED.value,
            transcription_error=None,
        )

    def mark_transcription_failed(self, meeting_id, error):
        return self._set(
            meeting_id,
            transcription_status=TranscriptionStatus.FAILED.value,
            transcription_error=error,
        )


@pytest.fixture
def recording_meetings():
    return RecordingMeetings()
