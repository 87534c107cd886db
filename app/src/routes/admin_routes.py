"""
Admin / diagnostics API routes.

All endpoints require a valid ``X-Admin-Key`` header.

Endpoints:
    GET    /api/admin/queue — snapshot of the transcription queue
"""

import logging

from fastapi import APIRouter, Depends, Request

from commons import limiter
from security import require_admin_key
from src.routes.meeting_routes import get_transcription_queue
from src.transcription.queue import TranscriptionQueue

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/admin", tags=["admin"])


@router.get("/queue")
@limiter.limit("30/minute")
def transcription_queue_status(
    request: Request,
    _=Depends(require_admin_key),
    queue: TranscriptionQueue = Depends(get_transcription_queue),
) -> dict:
    """Return queue length, whether it is draining, and the head job."""
    status = queue.get_queue_status()
    logger.debug(
        "Queue status requested: %d jobs, processing=%s",
        status["queue_length"], status["is_processing"],
    )
    return status
