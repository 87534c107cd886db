"""
Local Whisper transcription backend.

Runs ``whisper_cli`` in a child process and reads back the sibling
output files it leaves next to the WAV input.  Missing outputs degrade
to an empty transcript / absent subtitle fields instead of failing.
"""

import json
import logging
import os
import subprocess
from typing import List, Optional

from pydantic import BaseModel, Field

from configs.config import get_config
from src.transcription.models import TranscriptionJob, TranscriptionResult

logger = logging.getLogger(__name__)
cfg = get_config()


class LocalWhisperConfig(BaseModel):
    """Options forwarded to the whisper_cli subprocess."""

    command: List[str] = Field(default_factory=lambda: list(cfg.WHISPER_CLI_COMMAND))
    model_name: str = cfg.WHISPER_DEFAULT_MODEL
    language: Optional[str] = None
    device: str = cfg.WHISPER_DEVICE
    compute_type: str = cfg.WHISPER_COMPUTE_TYPE
    # Working directory of the child; must contain the ``src`` package
    cwd: Optional[str] = None


def _read_text(path: str) -> Optional[str]:
    if not os.path.exists(path):
        return None
    try:
        with open(path, "r", encoding="utf-8") as fh:
            return fh.read()
    except (OSError, UnicodeDecodeError) as exc:
        logger.warning("Failed to read output file %s: %s", path, exc)
        return None


def _read_json(path: str) -> Optional[dict]:
    raw = _read_text(path)
    if raw is None:
        return None
    try:
        return json.loads(raw)
    except json.JSONDecodeError as exc:
        logger.warning("Ignoring malformed JSON output %s: %s", path, exc)
        return None


def read_sibling_outputs(wav_path: str) -> TranscriptionResult:
    """Collect the .txt/.srt/.vtt/.json files written next to ``wav_path``."""
    base_path = os.path.splitext(wav_path)[0]
    return TranscriptionResult(
        text=_read_text(f"{base_path}.txt") or "",
        srt=_read_text(f"{base_path}.srt"),
        vtt=_read_text(f"{base_path}.vtt"),
        json_data=_read_json(f"{base_path}.json"),
    )


def transcribe_with_local_whisper(
    job: TranscriptionJob, config: Optional[LocalWhisperConfig] = None
) -> TranscriptionResult:
    """Transcribe ``job.audio_file_path`` (a WAV file) with local Whisper."""
    config = config or LocalWhisperConfig()
    logger.info(
        "Transcribing file using local Whisper (%s): %s",
        config.model_name, job.audio_file_path,
    )

    command = [
        *config.command,
        job.audio_file_path,
        "--model", config.model_name,
        "--device", config.device,
        "--compute-type", config.compute_type,
    ]
    if config.language:
        command += ["--language", config.language]

    try:
        subprocess.run(
            command,
            check=True,
            capture_output=True,
            text=True,
            cwd=config.cwd or os.getcwd(),
        )
    except subprocess.CalledProcessError as exc:
        logger.error(
            "Local Whisper exited with %d for job %s: %s",
            exc.returncode, job.id, (exc.stderr or "").strip()[-500:],
        )
        raise

    result = read_sibling_outputs(job.audio_file_path)
    logger.info("Local transcription completed for job: %s", job.id)
    return result
