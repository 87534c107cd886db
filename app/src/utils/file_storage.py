"""
Filesystem storage for uploaded recordings and transcript exports.
"""

import logging
import os
import uuid
from typing import NamedTuple

from fastapi import HTTPException, UploadFile

from configs.config import get_config

logger = logging.getLogger(__name__)

cfg = get_config()

CHUNK_SIZE = 1024 * 1024


class StoredFile(NamedTuple):
    filename: str
    path: str


async def save_audio_file(upload: UploadFile, directory: str = cfg.AUDIO_DIR) -> StoredFile:
    """
    Stream an uploaded recording to disk under a random name.

    Raises HTTP 413 (and removes the partial file) once the upload grows
    past ``MAX_UPLOAD_SIZE``.
    """
    os.makedirs(directory, exist_ok=True)
    ext = os.path.splitext(upload.filename or "")[1].lower() or ".webm"
    filename = f"{uuid.uuid4()}{ext}"
    file_path = os.path.join(directory, filename)

    total_bytes = 0
    with open(file_path, "wb") as audio_file:
        while True:
            chunk = await upload.read(CHUNK_SIZE)
            if not chunk:
                break
            total_bytes += len(chunk)
            if total_bytes > cfg.MAX_UPLOAD_SIZE:
                audio_file.close()
                os.remove(file_path)
                raise HTTPException(
                    status_code=413,
                    detail=(
                        f"File too large. Maximum allowed size is "
                        f"{cfg.MAX_UPLOAD_SIZE // (1024 ** 2)} MB."
                    ),
                )
            audio_file.write(chunk)

    logger.debug("Audio saved to %s (%d bytes)", file_path, total_bytes)
    return StoredFile(filename=filename, path=file_path)


def save_transcript(
    meeting_id: str, transcript: str, directory: str = cfg.TRANSCRIPT_DIR
) -> StoredFile:
    """Write a plain-text transcript export for a meeting."""
    os.makedirs(directory, exist_ok=True)
    filename = f"{meeting_id}.txt"
    file_path = os.path.join(directory, filename)
    with open(file_path, "w", encoding="utf-8") as fh:
        fh.write(transcript)
    logger.debug("Transcript for meeting %s written to %s", meeting_id, file_path)
    return StoredFile(filename=filename, path=file_path)


def delete_audio_files(audio_path: str) -> int:
    """
    Remove a recording together with its converted WAV and Whisper outputs.

    Returns the number of files removed; missing files are ignored.
    """
    base_path = os.path.splitext(audio_path)[0]
    candidates = {audio_path} | {
        f"{base_path}.{ext}" for ext in ("wav", "txt", "srt", "vtt", "json")
    }
    removed = 0
    for path in candidates:
        try:
            os.remove(path)
            removed += 1
        except FileNotFoundError:
            continue
        except OSError as exc:
            logger.warning("Could not delete %s: %s", path, exc)
    logger.debug("Removed %d files for %s", removed, audio_path)
    return removed
