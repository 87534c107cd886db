"""
Repository for meeting documents.

The meeting document is the durable source of truth for a recording's
transcription status; the in-memory transcription queue only ever
writes terminal outcomes here.  Each method wraps a single MongoDB
operation and, like the other repositories, logs and swallows
``PyMongoError`` so a flaky database never crashes a background job.
"""

import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from pymongo import DESCENDING
from pymongo.collection import Collection
from pymongo.database import Database
from pymongo.errors import PyMongoError

from configs.config import get_config
from src.database.connection import get_db
from src.transcription.models import TranscriptionResult, TranscriptionStatus

logger = logging.getLogger(__name__)

cfg = get_config()


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class MeetingRepository:
    """Thin wrapper around the ``meetings`` collection."""

    def __init__(self, db: Optional[Database] = None) -> None:
        self._db = db if db is not None else get_db()
        self._collection: Collection = self._db[cfg.MEETINGS_COLLECTION]

    # ── Create ───────────────────────────────────────────────────────────

    def create_meeting(
        self,
        meeting_id: str,
        user_id: str,
        audio_file_path: str,
        title: str,
        duration: float = 0.0,
    ) -> Dict[str, Any]:
        """Insert a new meeting awaiting transcription."""
        now = _utcnow()
        meeting_doc = {
            "meeting_id": meeting_id,
            "user_id": user_id,
            "title": title,
            "audio_file_path": audio_file_path,
            "duration": duration,
            "transcript": "",
            "transcript_srt": None,
            "transcript_vtt": None,
            "transcript_json": None,
            "transcription_status": TranscriptionStatus.PENDING.value,
            "transcription_error": None,
            "created_at": now,
            "updated_at": now,
        }
        self._collection.insert_one(meeting_doc)
        meeting_doc.pop("_id", None)
        logger.debug("Meeting %s created for user %s", meeting_id, user_id)
        return meeting_doc

    # ── Read ─────────────────────────────────────────────────────────────

    def get_meeting(
        self, meeting_id: str, user_id: Optional[str] = None
    ) -> Optional[Dict[str, Any]]:
        """Retrieve a single meeting, optionally enforcing ownership."""
        query = {"meeting_id": meeting_id}
        if user_id:
            query["user_id"] = user_id
        try:
            meeting = self._collection.find_one(query, {"_id": 0})
        except PyMongoError as exc:
            logger.error(
                "Error getting meeting %s: %s", meeting_id, exc, exc_info=True
            )
            return None
        if meeting is None:
            logger.warning("Meeting %s not found", meeting_id)
        return meeting

    def list_meetings(
        self, user_id: str, limit: int = cfg.RECENT_MEETINGS_LIMIT
    ) -> List[Dict[str, Any]]:
        """Return the user's most recent meetings, newest first."""
        projection = {
            "_id": 0,
            "meeting_id": 1,
            "title": 1,
            "created_at": 1,
            "duration": 1,
            "transcription_status": 1,
        }
        try:
            cursor = (
                self._collection.find({"user_id": user_id}, projection)
                .sort("created_at", DESCENDING)
                .limit(limit)
            )
            return list(cursor)
        except PyMongoError as exc:
            logger.error("Error listing meetings: %s", exc, exc_info=True)
            return []

    # ── Update ───────────────────────────────────────────────────────────

    def _update(self, meeting_id: str, fields: Dict[str, Any], action: str) -> bool:
        fields["updated_at"] = _utcnow()
        try:
            result = self._collection.update_one(
                {"meeting_id": meeting_id}, {"$set": fields}
            )
        except PyMongoError as exc:
            logger.error(
                "Error during %s for meeting %s: %s",
                action, meeting_id, exc, exc_info=True,
            )
            return False
        if result.matched_count == 0:
            logger.warning("Meeting %s %s failed — no match", meeting_id, action)
            return False
        return True

    def update_transcription_status(
        self, meeting_id: str, status: TranscriptionStatus
    ) -> bool:
        """Set the transcription status of a meeting."""
        updated = self._update(
            meeting_id,
            {"transcription_status": TranscriptionStatus(status).value},
            "status update",
        )
        if updated:
            logger.info(
                "Meeting %s transcription status set to %s",
                meeting_id, TranscriptionStatus(status).value,
            )
        return updated

    def save_transcription_result(
        self, meeting_id: str, result: TranscriptionResult
    ) -> bool:
        """Store the transcript outputs and mark the meeting completed."""
        return self._update(
            meeting_id,
            {
                "transcript": result.text,
                "transcript_srt": result.srt,
                "transcript_vtt": result.vtt,
                "transcript_json": result.json_data,
                "transcription_status": TranscriptionStatus.COMPLETED.value,
                "transcription_error": None,
            },
            "transcript save",
        )

    def mark_transcription_failed(self, meeting_id: str, error: str) -> bool:
        """Mark the meeting failed and record the last error message."""
        updated = self._update(
            meeting_id,
            {
                "transcription_status": TranscriptionStatus.FAILED.value,
                "transcription_error": error,
            },
            "failure update",
        )
        if updated:
            logger.error("Meeting %s transcription failed: %s", meeting_id, error)
        return updated

    def reset_transcription(self, meeting_id: str) -> bool:
        """Clear previous transcript output ahead of a retry."""
        return self._update(
            meeting_id,
            {
                "transcript": "",
                "transcript_srt": None,
                "transcript_vtt": None,
                "transcript_json": None,
                "transcription_status": TranscriptionStatus.PENDING.value,
                "transcription_error": None,
            },
            "transcription reset",
        )

    # ── Delete ───────────────────────────────────────────────────────────

    def delete_meeting(self, meeting_id: str, user_id: Optional[str] = None) -> bool:
        """Remove a meeting document, optionally enforcing ownership."""
        query = {"meeting_id": meeting_id}
        if user_id:
            query["user_id"] = user_id
        try:
            result = self._collection.delete_one(query)
        except PyMongoError as exc:
            logger.error(
                "Error deleting meeting %s: %s", meeting_id, exc, exc_info=True
            )
            return False
        if result.deleted_count > 0:
            logger.info("Meeting %s deleted", meeting_id)
            return True
        logger.warning("Meeting %s delete failed — no match", meeting_id)
        return False
