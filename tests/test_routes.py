import os
import uuid

import pytest
from fastapi.testclient import TestClient

import main
from commons import limiter
from configs.config import get_config
from src.auth.tokens import get_current_user
from src.database import todo_repository
from src.routes import meeting_routes
from src.todos.extractor import TodoExtractionError
from src.transcription.models import TranscriptionProvider, TranscriptionResult
from src.transcription.queue import TranscriptionQueue

cfg = get_config()

USER = {"_id": "user-1", "email": "ada@example.com"}


@pytest.fixture
def queue(meetings):
    # Never started: jobs stay queued so tests can inspect them
    return TranscriptionQueue(meetings)


@pytest.fixture
def client(mongo_db, queue, monkeypatch):
    monkeypatch.setattr(limiter, "enabled", False)
    monkeypatch.setattr(meeting_routes, "get_audio_duration", lambda path: 12.5)
    main.app.state.transcription_queue = queue
    main.app.dependency_overrides[get_current_user] = lambda: USER
    yield TestClient(main.app)
    main.app.dependency_overrides.clear()


def seed_meeting(meetings, tmp_path, transcript=None, user_id=USER["_id"]):
    meeting_id = str(uuid.uuid4())
    audio_path = tmp_path / f"{meeting_id}.webm"
    audio_path.write_bytes(b"audio")
    meetings.create_meeting(meeting_id, user_id, str(audio_path), "Planning")
    if transcript is not None:
        meetings.save_transcription_result(
            meeting_id, TranscriptionResult(text=transcript, srt="1\n00:00:00,000 --> 00:00:01,000\nhi\n")
        )
    return meeting_id


# ── Upload ───────────────────────────────────────────────────────────────


def test_upload_creates_meeting_and_queues_job(client, meetings, queue):
    response = client.post(
        "/api/meetings",
        files={"audio": ("standup.webm", b"fake-audio", "audio/webm")},
        data={"title": "  Daily   stand-up ", "provider": "local"},
    )

    assert response.status_code == 200
    body = response.json()
    assert body["status"] == "pending"

    meeting = meetings.get_meeting(body["meeting_id"], user_id="user-1")
    assert meeting["title"] == "Daily stand-up"
    assert meeting["duration"] == 12.5
    assert os.path.exists(meeting["audio_file_path"])

    status = queue.get_queue_status()
    assert status["queue_length"] == 1
    assert status["current_job"]["meeting_id"] == body["meeting_id"]
    assert status["current_job"]["provider"] == TranscriptionProvider.LOCAL.value
    assert status["current_job"]["id"].startswith("job_")


def test_upload_rejects_unknown_extension(client, queue):
    response = client.post(
        "/api/meetings", files={"audio": ("notes.exe", b"MZ", "application/octet-stream")}
    )

    assert response.status_code == 400
    assert queue.get_queue_status()["queue_length"] == 0


def test_upload_rejects_unknown_provider(client):
    response = client.post(
        "/api/meetings",
        files={"audio": ("standup.mp3", b"ID3", "audio/mpeg")},
        data={"provider": "deepgram"},
    )

    assert response.status_code == 400
    assert "deepgram" in response.json()["detail"]


# ── Read ─────────────────────────────────────────────────────────────────


def test_list_includes_todo_counts(client, meetings, tmp_path):
    meeting_id = seed_meeting(meetings, tmp_path, transcript="hello")
    first, _ = todo_repository.replace_todos(
        meeting_id, [{"description": "a"}, {"description": "b"}]
    )
    todo_repository.set_todo_completion(first["todo_id"], True)

    response = client.get("/api/meetings")

    assert response.status_code == 200
    [item] = response.json()["meetings"]
    assert item["meeting_id"] == meeting_id
    assert item["todo_count"] == 2
    assert item["completed_todo_count"] == 1


def test_meeting_detail_is_scoped_to_owner(client, meetings, tmp_path):
    mine = seed_meeting(meetings, tmp_path, transcript="hello")
    theirs = seed_meeting(meetings, tmp_path, user_id="user-2")

    response = client.get(f"/api/meetings/{mine}")
    assert response.status_code == 200
    assert response.json()["transcript"] == "hello"
    assert response.json()["transcription_status"] == "completed"

    assert client.get(f"/api/meetings/{theirs}").status_code == 404
    assert client.get("/api/meetings/not-a-uuid").status_code == 400


def test_transcript_and_subtitle_downloads(client, meetings, tmp_path):
    meeting_id = seed_meeting(meetings, tmp_path, transcript="full transcript")

    transcript = client.get(f"/api/meetings/{meeting_id}/transcript")
    assert transcript.status_code == 200
    assert transcript.text == "full transcript"

    srt = client.get(f"/api/meetings/{meeting_id}/subtitles", params={"format": "srt"})
    assert srt.status_code == 200
    assert "00:00:00,000 --> 00:00:01,000" in srt.text

    vtt = client.get(f"/api/meetings/{meeting_id}/subtitles", params={"format": "vtt"})
    assert vtt.status_code == 404


def test_transcript_not_ready(client, meetings, tmp_path):
    meeting_id = seed_meeting(meetings, tmp_path)

    assert client.get(f"/api/meetings/{meeting_id}/transcript").status_code == 404


# ── Retry ────────────────────────────────────────────────────────────────


def test_retry_resets_meeting_and_queues_new_job(client, meetings, queue, tmp_path):
    meeting_id = seed_meeting(meetings, tmp_path)
    meetings.mark_transcription_failed(meeting_id, "Failed to transcribe after 3 attempts")

    response = client.post(f"/api/meetings/{meeting_id}/retry")

    assert response.status_code == 200
    assert response.json()["success"] is True
    meeting = meetings.get_meeting(meeting_id)
    assert meeting["transcription_status"] == "pending"
    assert meeting["transcription_error"] is None
    status = queue.get_queue_status()
    assert status["current_job"]["id"] == response.json()["job_id"]


# ── Todos ────────────────────────────────────────────────────────────────


def test_extract_then_toggle_todo(client, meetings, tmp_path, monkeypatch):
    meeting_id = seed_meeting(meetings, tmp_path, transcript="Bob sends the deck.")
    monkeypatch.setattr(
        meeting_routes,
        "extract_todos",
        lambda transcript: [{"description": "Send the deck", "priority": "high"}],
    )

    response = client.post(f"/api/meetings/{meeting_id}/todos/extract")

    assert response.status_code == 200
    [todo] = response.json()["todos"]
    assert todo["priority"] == "High"

    toggled = client.post(f"/api/todos/{todo['todo_id']}/toggle")
    assert toggled.status_code == 200
    assert toggled.json()["is_complete"] is True
    assert client.post(f"/api/todos/{todo['todo_id']}/toggle").json()["is_complete"] is False


def test_extract_requires_completed_transcript(client, meetings, tmp_path):
    meeting_id = seed_meeting(meetings, tmp_path)

    response = client.post(f"/api/meetings/{meeting_id}/todos/extract")

    assert response.status_code == 400


def test_extract_failure_maps_to_bad_gateway(client, meetings, tmp_path, monkeypatch):
    meeting_id = seed_meeting(meetings, tmp_path, transcript="hello")

    def broken(transcript):
        raise TodoExtractionError("Invalid response format from AI")

    monkeypatch.setattr(meeting_routes, "extract_todos", broken)

    response = client.post(f"/api/meetings/{meeting_id}/todos/extract")

    assert response.status_code == 502


# ── Delete ───────────────────────────────────────────────────────────────


def test_delete_removes_meeting_todos_and_files(client, meetings, tmp_path):
    meeting_id = seed_meeting(meetings, tmp_path, transcript="hello")
    audio_path = meetings.get_meeting(meeting_id)["audio_file_path"]
    (tmp_path / f"{meeting_id}.wav").write_bytes(b"wav")
    todo_repository.replace_todos(meeting_id, [{"description": "a"}])

    response = client.delete(f"/api/meetings/{meeting_id}")

    assert response.status_code == 200
    assert meetings.get_meeting(meeting_id) is None
    assert todo_repository.get_todos(meeting_id) == []
    assert not os.path.exists(audio_path)
    assert not (tmp_path / f"{meeting_id}.wav").exists()


# ── Admin ────────────────────────────────────────────────────────────────


def test_admin_queue_requires_key(client, queue, meetings, tmp_path):
    assert client.get("/api/admin/queue").status_code == 403

    response = client.get("/api/admin/queue", headers={"X-Admin-Key": cfg.ADMIN_API_KEY})

    assert response.status_code == 200
    assert response.json() == {"queue_length": 0, "is_processing": False, "current_job": None}


def test_health_and_security_headers(client):
    response = client.get("/health")

    assert response.json() == {"status": "ok"}
    assert response.headers["X-Content-Type-Options"] == "nosniff"
    assert "X-Request-ID" in response.headers


def test_failed_upload_removes_stored_recording(client, queue, monkeypatch):
    def broken_create(self, *args, **kwargs):
        raise RuntimeError("database unavailable")

    monkeypatch.setattr(meeting_routes.MeetingRepository, "create_meeting", broken_create)
    before = set(os.listdir(cfg.AUDIO_DIR)) if os.path.isdir(cfg.AUDIO_DIR) else set()

    response = client.post(
        "/api/meetings", files={"audio": ("standup.webm", b"fake-audio", "audio/webm")}
    )

    assert response.status_code == 500
    assert set(os.listdir(cfg.AUDIO_DIR)) == before
    assert queue.get_queue_status()["queue_length"] == 0
