from datetime import datetime, timedelta

import pytest
from fastapi import HTTPException

from configs.config import get_config
from src.database import todo_repository
from src.database.user_repository import UserRepository
from src.transcription.models import TranscriptionResult, TranscriptionStatus

cfg = get_config()


def create(meetings, meeting_id="m-1", user_id="user-1", **kwargs):
    return meetings.create_meeting(
        meeting_id=meeting_id,
        user_id=user_id,
        audio_file_path=f"/uploads/audio/{meeting_id}.webm",
        title=kwargs.pop("title", "Weekly sync"),
        **kwargs,
    )


# ── Meetings ─────────────────────────────────────────────────────────────


def test_new_meeting_is_pending_and_owned(meetings):
    doc = create(meetings, duration=42.0)

    assert "_id" not in doc
    stored = meetings.get_meeting("m-1", user_id="user-1")
    assert stored["transcription_status"] == TranscriptionStatus.PENDING.value
    assert stored["transcript"] == ""
    assert stored["duration"] == 42.0
    assert meetings.get_meeting("m-1", user_id="someone-else") is None


def test_saving_result_completes_meeting(meetings):
    create(meetings)
    meetings.mark_transcription_failed("m-1", "earlier failure")

    result = TranscriptionResult(
        text="hello", srt="1\n...", json_data={"text": "hello", "words": []}
    )
    assert meetings.save_transcription_result("m-1", result) is True

    stored = meetings.get_meeting("m-1")
    assert stored["transcription_status"] == "completed"
    assert stored["transcript"] == "hello"
    assert stored["transcript_srt"] == "1\n..."
    assert stored["transcript_vtt"] is None
    assert stored["transcript_json"] == {"text": "hello", "words": []}
    assert stored["transcription_error"] is None


def test_failure_and_reset(meetings):
    create(meetings)
    meetings.update_transcription_status("m-1", TranscriptionStatus.PROCESSING)
    meetings.mark_transcription_failed("m-1", "Failed to transcribe after 3 attempts")

    stored = meetings.get_meeting("m-1")
    assert stored["transcription_status"] == "failed"
    assert stored["transcription_error"].startswith("Failed to transcribe")

    assert meetings.reset_transcription("m-1") is True
    stored = meetings.get_meeting("m-1")
    assert stored["transcription_status"] == "pending"
    assert stored["transcription_error"] is None


def test_updates_to_unknown_meeting_report_false(meetings):
    assert meetings.update_transcription_status("missing", "processing") is False
    assert meetings.mark_transcription_failed("missing", "boom") is False


def test_list_meetings_newest_first_and_scoped(meetings, mongo_db):
    base = datetime(2024, 5, 1, 9, 0)
    for i in range(3):
        create(meetings, meeting_id=f"m-{i}")
        mongo_db[cfg.MEETINGS_COLLECTION].update_one(
            {"meeting_id": f"m-{i}"}, {"$set": {"created_at": base + timedelta(hours=i)}}
        )
    create(meetings, meeting_id="other", user_id="user-2")

    listed = meetings.list_meetings("user-1", limit=2)

    assert [m["meeting_id"] for m in listed] == ["m-2", "m-1"]
    assert "transcript" not in listed[0]


def test_delete_meeting_enforces_owner(meetings):
    create(meetings)

    assert meetings.delete_meeting("m-1", user_id="user-2") is False
    assert meetings.delete_meeting("m-1", user_id="user-1") is True
    assert meetings.get_meeting("m-1") is None


# ── Todos ────────────────────────────────────────────────────────────────


@pytest.mark.parametrize(
    "raw, expected",
    [("high", "High"), (" LOW ", "Low"), ("urgent", "Medium"), (None, "Medium")],
)
def test_normalize_priority(raw, expected):
    assert todo_repository.normalize_priority(raw) == expected


def test_replace_todos_swaps_previous_set(mongo_db):
    todo_repository.replace_todos("m-1", [{"description": "old task", "priority": "Low"}])

    created = todo_repository.replace_todos(
        "m-1",
        [
            {"description": " Send notes ", "priority": "high"},
            {"description": "   ", "priority": "High"},
            {"description": "Book room", "priority": None},
        ],
    )

    assert [(t["description"], t["priority"]) for t in created] == [
        ("Send notes", "High"),
        ("Book room", "Medium"),
    ]
    assert all("_id" not in t for t in created)
    stored = todo_repository.get_todos("m-1")
    assert {t["description"] for t in stored} == {"Send notes", "Book room"}
    assert all(t["is_complete"] is False for t in stored)


def test_set_completion_and_bulk_lookup(mongo_db):
    first, _ = todo_repository.replace_todos(
        "m-1", [{"description": "a"}, {"description": "b"}]
    )
    todo_repository.replace_todos("m-2", [{"description": "c"}])

    updated = todo_repository.set_todo_completion(first["todo_id"], True)
    assert updated["is_complete"] is True
    assert todo_repository.get_todo(first["todo_id"])["is_complete"] is True
    assert todo_repository.set_todo_completion("missing", True) is None

    flags = todo_repository.get_todos_for_meetings(["m-1", "m-2"])
    assert len(flags) == 3
    assert sum(1 for t in flags if t["is_complete"]) == 1
    assert todo_repository.get_todos_for_meetings([]) == []


def test_delete_todos_for_meeting(mongo_db):
    todo_repository.replace_todos("m-1", [{"description": "a"}, {"description": "b"}])

    assert todo_repository.delete_todos_for_meeting("m-1") == 2
    assert todo_repository.get_todos("m-1") == []


# ── Users ────────────────────────────────────────────────────────────────


def test_user_emails_are_unique_and_case_insensitive(mongo_db):
    users = UserRepository(mongo_db)
    user = users.create_user("Ada@Example.com", "hash")

    assert user["email"] == "ada@example.com"
    assert users.get_user_by_email("ADA@example.com")["_id"] == user["_id"]
    with pytest.raises(HTTPException) as excinfo:
        users.create_user("ada@example.com", "other-hash")
    assert excinfo.value.status_code == 400
