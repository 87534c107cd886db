"""
Meeting API routes.

Endpoints:
    POST   /api/meetings                          — upload audio & queue transcription
    GET    /api/meetings                          — list recent meetings
    GET    /api/meetings/{meeting_id}             — meeting detail with todos
    GET    /api/meetings/{meeting_id}/transcript  — download plain-text transcript
    GET    /api/meetings/{meeting_id}/subtitles   — download SRT / VTT
    POST   /api/meetings/{meeting_id}/retry       — queue a fresh transcription
    POST   /api/meetings/{meeting_id}/todos/extract — extract action items
    POST   /api/todos/{todo_id}/toggle            — flip a todo's completion
    DELETE /api/meetings/{meeting_id}             — delete meeting, todos and audio
"""

import asyncio
import logging
from collections import Counter
from datetime import datetime, timezone
from typing import Any, Dict, Literal, Optional

from fastapi import (
    APIRouter,
    Depends,
    File,
    Form,
    HTTPException,
    Request,
    UploadFile,
)
from fastapi.responses import FileResponse, PlainTextResponse

from commons import generate_job_id, generate_meeting_id, limiter
from configs.config import get_config
from security import (
    safe_error_response,
    sanitize_title,
    validate_file_extension,
    validate_meeting_id,
    validate_todo_id,
)
from src.auth.tokens import get_current_user
from src.database import todo_repository
from src.database.meeting_repository import MeetingRepository
from src.todos.extractor import TodoExtractionError, extract_todos
from src.transcription.audio import get_audio_duration
from src.transcription.models import (
    NewTranscriptionJob,
    TranscriptionProvider,
    TranscriptionStatus,
)
from src.transcription.queue import TranscriptionQueue
from src.utils.file_storage import delete_audio_files, save_audio_file, save_transcript

logger = logging.getLogger(__name__)

cfg = get_config()

router = APIRouter(prefix="/api", tags=["meetings"])


# ── Dependencies ─────────────────────────────────────────────────────────


def get_meeting_repository() -> MeetingRepository:
    return MeetingRepository()


def get_transcription_queue(request: Request) -> TranscriptionQueue:
    return request.app.state.transcription_queue


def _parse_provider(provider: Optional[str]) -> TranscriptionProvider:
    value = (provider or cfg.DEFAULT_TRANSCRIPTION_PROVIDER).strip().lower()
    try:
        return TranscriptionProvider(value)
    except ValueError:
        raise HTTPException(
            status_code=400,
            detail=(
                f"Unknown provider '{value}'. Allowed: "
                f"{', '.join(p.value for p in TranscriptionProvider)}"
            ),
        )


def _get_owned_meeting(
    meetings: MeetingRepository, meeting_id: str, user: Dict[str, Any]
) -> Dict[str, Any]:
    validate_meeting_id(meeting_id)
    meeting = meetings.get_meeting(meeting_id, user_id=user["_id"])
    if not meeting:
        raise HTTPException(status_code=404, detail="Meeting not found")
    return meeting


def _enqueue(
    queue: TranscriptionQueue,
    meeting: Dict[str, Any],
    provider: TranscriptionProvider,
) -> str:
    job = queue.add_job(
        NewTranscriptionJob(
            id=generate_job_id(),
            audio_file_path=meeting["audio_file_path"],
            meeting_id=meeting["meeting_id"],
            user_id=meeting["user_id"],
            provider=provider,
        )
    )
    return job.id


# ── Upload & Create ──────────────────────────────────────────────────────


@router.post("/meetings")
@limiter.limit("10/hour")
async def create_meeting_endpoint(
    request: Request,
    audio: UploadFile = File(...),
    title: str = Form(default=""),
    provider: str = Form(default=""),
    current_user: dict = Depends(get_current_user),
    meetings: MeetingRepository = Depends(get_meeting_repository),
    queue: TranscriptionQueue = Depends(get_transcription_queue),
) -> dict:
    """Upload a meeting recording and queue it for transcription."""
    validate_file_extension(audio.filename)
    provider_enum = _parse_provider(provider)

    stored = None
    try:
        stored = await save_audio_file(audio)
        duration = await asyncio.to_thread(get_audio_duration, stored.path)

        meeting_title = sanitize_title(title) or (
            f"Meeting {datetime.now(timezone.utc):%Y-%m-%d %H:%M}"
        )
        meeting = meetings.create_meeting(
            meeting_id=generate_meeting_id(),
            user_id=current_user["_id"],
            audio_file_path=stored.path,
            title=meeting_title,
            duration=duration,
        )
        job_id = _enqueue(queue, meeting, provider_enum)
        logger.info(
            "Meeting %s created from %s, transcription job %s queued",
            meeting["meeting_id"], audio.filename, job_id,
        )

        return {
            "meeting_id": meeting["meeting_id"],
            "filename": stored.filename,
            "status": TranscriptionStatus.PENDING,
        }

    except HTTPException:
        raise
    except Exception as exc:
        if stored is not None:
            delete_audio_files(stored.path)
        safe_error_response(exc, context="create_meeting")


# ── Read ─────────────────────────────────────────────────────────────────


@router.get("/meetings")
@limiter.limit("60/minute")
def list_meetings(
    request: Request,
    current_user: dict = Depends(get_current_user),
    meetings: MeetingRepository = Depends(get_meeting_repository),
) -> dict:
    """List the current user's most recent meetings with todo counts."""
    items = meetings.list_meetings(current_user["_id"])
    todos = todo_repository.get_todos_for_meetings([m["meeting_id"] for m in items])

    totals = Counter(t["meeting_id"] for t in todos)
    done = Counter(t["meeting_id"] for t in todos if t.get("is_complete"))
    for item in items:
        item["todo_count"] = totals[item["meeting_id"]]
        item["completed_todo_count"] = done[item["meeting_id"]]

    return {"meetings": items, "total": len(items)}


@router.get("/meetings/{meeting_id}")
@limiter.limit("120/minute")
def get_meeting_endpoint(
    request: Request,
    meeting_id: str,
    current_user: dict = Depends(get_current_user),
    meetings: MeetingRepository = Depends(get_meeting_repository),
) -> dict:
    """Return a meeting's transcript, status and todos."""
    meeting = _get_owned_meeting(meetings, meeting_id, current_user)
    return {
        "meeting_id": meeting["meeting_id"],
        "title": meeting["title"],
        "transcript": meeting.get("transcript", ""),
        "transcription_status": meeting["transcription_status"],
        "transcription_error": meeting.get("transcription_error"),
        "created_at": meeting["created_at"],
        "duration": meeting.get("duration", 0),
        "todos": todo_repository.get_todos(meeting_id),
    }


@router.get("/meetings/{meeting_id}/transcript")
@limiter.limit("30/minute")
def download_transcript(
    request: Request,
    meeting_id: str,
    current_user: dict = Depends(get_current_user),
    meetings: MeetingRepository = Depends(get_meeting_repository),
) -> FileResponse:
    """Download the plain-text transcript of a completed meeting."""
    meeting = _get_owned_meeting(meetings, meeting_id, current_user)
    if meeting["transcription_status"] != TranscriptionStatus.COMPLETED:
        raise HTTPException(status_code=404, detail="Transcript not ready")

    stored = save_transcript(meeting_id, meeting.get("transcript") or "")
    return FileResponse(stored.path, media_type="text/plain", filename="transcript.txt")


@router.get("/meetings/{meeting_id}/subtitles")
@limiter.limit("30/minute")
def download_subtitles(
    request: Request,
    meeting_id: str,
    format: Literal["srt", "vtt"] = "srt",
    current_user: dict = Depends(get_current_user),
    meetings: MeetingRepository = Depends(get_meeting_repository),
) -> PlainTextResponse:
    """Download the SRT or WebVTT subtitles of a completed meeting."""
    meeting = _get_owned_meeting(meetings, meeting_id, current_user)
    content = meeting.get(f"transcript_{format}")
    if meeting["transcription_status"] != TranscriptionStatus.COMPLETED or not content:
        raise HTTPException(status_code=404, detail="Subtitles not ready or not available")

    media_type = "application/x-subrip" if format == "srt" else "text/vtt"
    return PlainTextResponse(
        content,
        media_type=media_type,
        headers={"Content-Disposition": f'attachment; filename="subtitles.{format}"'},
    )


# ── Retry ────────────────────────────────────────────────────────────────


@router.post("/meetings/{meeting_id}/retry")
@limiter.limit("10/minute")
async def retry_transcription(
    request: Request,
    meeting_id: str,
    provider: Optional[str] = None,
    current_user: dict = Depends(get_current_user),
    meetings: MeetingRepository = Depends(get_meeting_repository),
    queue: TranscriptionQueue = Depends(get_transcription_queue),
) -> dict:
    """Clear the previous result and queue a brand-new transcription job."""
    meeting = _get_owned_meeting(meetings, meeting_id, current_user)
    provider_enum = _parse_provider(provider)

    if not meetings.reset_transcription(meeting_id):
        raise HTTPException(status_code=500, detail="Failed to reset meeting")

    job_id = _enqueue(queue, meeting, provider_enum)
    logger.info("Retry for meeting %s queued as job %s", meeting_id, job_id)
    return {"success": True, "job_id": job_id}


# ── Todos ────────────────────────────────────────────────────────────────


@router.post("/meetings/{meeting_id}/todos/extract")
@limiter.limit("10/minute")
async def extract_meeting_todos(
    request: Request,
    meeting_id: str,
    current_user: dict = Depends(get_current_user),
    meetings: MeetingRepository = Depends(get_meeting_repository),
) -> dict:
    """Extract action items from a completed transcript, replacing old ones."""
    meeting = _get_owned_meeting(meetings, meeting_id, current_user)

    if meeting["transcription_status"] != TranscriptionStatus.COMPLETED:
        raise HTTPException(status_code=400, detail="Transcript is not yet complete")
    transcript = (meeting.get("transcript") or "").strip()
    if not transcript:
        raise HTTPException(status_code=400, detail="Transcript is empty")

    try:
        extracted = await asyncio.to_thread(extract_todos, transcript)
    except TodoExtractionError as exc:
        logger.error("Todo extraction failed for meeting %s: %s", meeting_id, exc)
        raise HTTPException(status_code=502, detail=str(exc))

    try:
        created = todo_repository.replace_todos(meeting_id, extracted)
    except Exception as exc:
        safe_error_response(exc, context="extract_todos")

    return {"success": True, "todos": created}


@router.post("/todos/{todo_id}/toggle")
@limiter.limit("60/minute")
def toggle_todo_completion(
    request: Request,
    todo_id: str,
    current_user: dict = Depends(get_current_user),
    meetings: MeetingRepository = Depends(get_meeting_repository),
) -> dict:
    """Flip the completion flag of a todo owned by the current user."""
    validate_todo_id(todo_id)
    todo = todo_repository.get_todo(todo_id)
    if not todo or not meetings.get_meeting(todo["meeting_id"], user_id=current_user["_id"]):
        raise HTTPException(status_code=404, detail="Todo not found")

    updated = todo_repository.set_todo_completion(todo_id, not todo["is_complete"])
    if updated is None:
        raise HTTPException(status_code=500, detail="Failed to update todo")
    return updated


# ── Delete ───────────────────────────────────────────────────────────────


@router.delete("/meetings/{meeting_id}")
@limiter.limit("10/minute")
def delete_meeting_endpoint(
    request: Request,
    meeting_id: str,
    current_user: dict = Depends(get_current_user),
    meetings: MeetingRepository = Depends(get_meeting_repository),
) -> dict:
    """Delete a meeting together with its todos and stored audio."""
    meeting = _get_owned_meeting(meetings, meeting_id, current_user)
    logger.info("Deleting meeting %s for user %s", meeting_id, current_user["email"])

    if not meetings.delete_meeting(meeting_id, user_id=current_user["_id"]):
        raise HTTPException(status_code=500, detail="Failed to delete meeting")

    todo_repository.delete_todos_for_meeting(meeting_id)
    delete_audio_files(meeting["audio_file_path"])
    return {"message": f"Meeting {meeting_id} deleted successfully", "meeting_id": meeting_id}
