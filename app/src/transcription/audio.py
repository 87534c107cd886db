"""
Audio helpers built on the ffmpeg / ffprobe command-line tools.

Both transcription backends expect 16 kHz mono PCM WAV input.
"""

import logging
import os
import subprocess

from configs.config import get_config

logger = logging.getLogger(__name__)
cfg = get_config()


class AudioConversionError(RuntimeError):
    """ffmpeg exited non-zero while normalising an audio file."""

    def __init__(self, path: str, stderr: str) -> None:
        super().__init__(f"Failed to convert audio file {path}: {stderr.strip()}")
        self.path = path
        self.stderr = stderr


def wav_path_for(input_path: str) -> str:
    """Return the sibling ``.wav`` path for an audio file."""
    return os.path.splitext(input_path)[0] + ".wav"


def convert_to_wav(input_path: str) -> str:
    """
    Convert an audio file to mono 16 kHz PCM WAV next to the original.

    Files that already have a ``.wav`` extension are returned unchanged.
    """
    if input_path.lower().endswith(".wav"):
        return input_path

    output_path = wav_path_for(input_path)
    logger.info("Converting audio file %s to WAV", os.path.basename(input_path))
    result = subprocess.run(
        [
            "ffmpeg",
            "-i", input_path,
            "-ar", str(cfg.AUDIO_SAMPLE_RATE),
            "-ac", str(cfg.AUDIO_CHANNELS),
            "-c:a", "pcm_s16le",
            output_path,
            "-y",
        ],
        capture_output=True,
        text=True,
    )
    if result.returncode != 0:
        logger.error(
            "Audio conversion failed for %s (exit %d)",
            input_path, result.returncode,
        )
        raise AudioConversionError(input_path, result.stderr)

    logger.debug("Converted %s -> %s", input_path, output_path)
    return output_path


def get_audio_duration(audio_path: str) -> float:
    """Return audio duration in seconds via ffprobe, or 0 on failure."""
    try:
        result = subprocess.run(
            [
                "ffprobe", "-v", "error",
                "-show_entries", "format=duration",
                "-of", "default=noprint_wrappers=1:nokey=1",
                audio_path,
            ],
            capture_output=True,
            text=True,
            check=True,
        )
        duration = float(result.stdout.strip())
        logger.info("Audio duration: %.2f seconds", duration)
        return duration
    except (OSError, subprocess.CalledProcessError, ValueError) as exc:
        logger.warning("Could not get audio duration for %s: %s", audio_path, exc)
        return 0.0
