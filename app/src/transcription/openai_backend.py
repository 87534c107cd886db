"""
OpenAI Whisper API transcription backend.

Streams the WAV file to ``audio.transcriptions.create`` and normalises
whatever response format was requested into a ``TranscriptionResult``.
"""

import logging
from typing import Any, Dict, List, Literal, Optional

from openai import OpenAI
from pydantic import BaseModel, Field

from configs.config import get_config
from src.transcription.models import TranscriptionJob, TranscriptionResult

logger = logging.getLogger(__name__)
cfg = get_config()

ResponseFormat = Literal["json", "text", "srt", "verbose_json", "vtt"]


class OpenAIConfig(BaseModel):
    """Validated settings for the OpenAI transcription request."""

    api_key: str = Field(min_length=1)
    organization: Optional[str] = None
    model: Literal["whisper-1"] = "whisper-1"
    language: Optional[str] = None
    response_format: ResponseFormat = "verbose_json"
    temperature: float = Field(default=0.0, ge=0.0, le=1.0)
    timestamp_granularities: Optional[List[Literal["word", "segment"]]] = None


def default_openai_config() -> OpenAIConfig:
    """Build the request config from application settings."""
    return OpenAIConfig(
        api_key=cfg.OPENAI_API_KEY,
        organization=cfg.OPENAI_ORGANIZATION,
        model=cfg.OPENAI_TRANSCRIPTION_MODEL,
        language=cfg.OPENAI_LANGUAGE,
        response_format=cfg.OPENAI_RESPONSE_FORMAT,
        temperature=cfg.OPENAI_TEMPERATURE,
        timestamp_granularities=cfg.OPENAI_TIMESTAMP_GRANULARITIES,
    )


def _as_dict(response: Any) -> Dict[str, Any]:
    if isinstance(response, dict):
        return response
    if hasattr(response, "model_dump"):
        return response.model_dump()
    raise TypeError(f"Unexpected transcription response type: {type(response).__name__}")


def normalize_openai_response(response: Any, response_format: ResponseFormat) -> TranscriptionResult:
    """Map a raw API response onto the common result shape."""
    if response_format in ("json", "verbose_json"):
        payload = _as_dict(response)
        return TranscriptionResult(text=str(payload.get("text") or ""), json_data=payload)
    text = response if isinstance(response, str) else str(response)
    if response_format == "srt":
        return TranscriptionResult(text=text, srt=text)
    if response_format == "vtt":
        return TranscriptionResult(text=text, vtt=text)
    return TranscriptionResult(text=text)


def transcribe_with_openai(
    job: TranscriptionJob,
    config: Optional[OpenAIConfig] = None,
    client: Optional[OpenAI] = None,
) -> TranscriptionResult:
    """Transcribe ``job.audio_file_path`` using the OpenAI Whisper API."""
    config = config or default_openai_config()
    logger.info("Transcribing file using OpenAI Whisper API: %s", job.audio_file_path)

    client = client or OpenAI(api_key=config.api_key, organization=config.organization)

    request: Dict[str, Any] = {
        "model": config.model,
        "response_format": config.response_format,
        "temperature": config.temperature,
    }
    if config.language:
        request["language"] = config.language
    # Granularities are only accepted alongside verbose_json
    if config.timestamp_granularities and config.response_format == "verbose_json":
        request["timestamp_granularities"] = config.timestamp_granularities

    try:
        with open(job.audio_file_path, "rb") as audio_file:
            response = client.audio.transcriptions.create(file=audio_file, **request)
    except Exception as exc:
        logger.error("OpenAI transcription failed for job %s: %s", job.id, exc)
        raise

    logger.info("Transcription completed for job: %s", job.id)
    return normalize_openai_response(response, config.response_format)
