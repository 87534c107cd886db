"""
Local Whisper transcription entry point.

Runs faster-whisper against a WAV file and writes the outputs next to
it, sharing the input's base name::

    meeting.wav -> meeting.txt, meeting.srt, meeting.vtt, meeting.json

The local backend invokes this module as a subprocess so a crashing or
memory-hungry model never takes the API process down with it::

    python -m src.transcription.whisper_cli uploads/audio/meeting.wav --model base
"""

import argparse
import json
import logging
import os
import sys
from typing import Dict, List, Optional

from faster_whisper import WhisperModel

from configs.config import get_config
from src.transcription.srt_utils import render_srt, render_vtt

logger = logging.getLogger(__name__)
cfg = get_config()

# ── Model cache ──────────────────────────────────────────────────────────
_model_cache: dict = {}


def get_model(model_name: str, device: str, compute_type: str) -> WhisperModel:
    """Return a cached WhisperModel, loading it on first access."""
    key = (model_name, device, compute_type)
    if key not in _model_cache:
        logger.info("Loading WhisperModel '%s' on %s…", model_name, device)
        _model_cache[key] = WhisperModel(
            model_name,
            device=device,
            compute_type=compute_type,
            cpu_threads=4,
            num_workers=1,
        )
        logger.info("WhisperModel '%s' loaded successfully", model_name)
    return _model_cache[key]


def transcribe_file(
    audio_path: str,
    model_name: str,
    language: Optional[str] = None,
    device: str = cfg.WHISPER_DEVICE,
    compute_type: str = cfg.WHISPER_COMPUTE_TYPE,
) -> Dict:
    """Transcribe ``audio_path`` and return a JSON-serialisable transcript."""
    model = get_model(model_name, device, compute_type)
    segments, info = model.transcribe(
        audio_path,
        language=language,
        beam_size=5,
        word_timestamps=True,
        vad_filter=True,
        vad_parameters=dict(min_silence_duration_ms=500),
    )

    payload_segments: List[Dict] = []
    for seg in segments:
        payload_segments.append({
            "id": seg.id,
            "start": seg.start,
            "end": seg.end,
            "text": seg.text.strip(),
            "words": [
                {
                    "word": word.word.strip(),
                    "start": word.start,
                    "end": word.end,
                    "probability": word.probability,
                }
                for word in (seg.words or [])
            ],
        })

    logger.info(
        "Transcribed %s: %d segments, language=%s",
        audio_path, len(payload_segments), info.language,
    )
    return {
        "text": " ".join(s["text"] for s in payload_segments if s["text"]),
        "language": info.language,
        "duration": info.duration,
        "segments": payload_segments,
    }


def write_outputs(audio_path: str, transcript: Dict) -> Dict[str, str]:
    """Write .txt/.srt/.vtt/.json siblings of ``audio_path``."""
    base_path = os.path.splitext(audio_path)[0]
    cues = [(s["start"], s["end"], s["text"]) for s in transcript["segments"]]
    outputs = {
        "txt": transcript["text"],
        "srt": render_srt(cues),
        "vtt": render_vtt(cues),
        "json": json.dumps(transcript, ensure_ascii=False, indent=2),
    }

    written = {}
    for ext, content in outputs.items():
        path = f"{base_path}.{ext}"
        with open(path, "w", encoding="utf-8") as fh:
            fh.write(content)
        written[ext] = path
    logger.debug("Wrote transcription outputs for %s", audio_path)
    return written


def main(argv: Optional[List[str]] = None) -> int:
    parser = argparse.ArgumentParser(description="Transcribe a WAV file with faster-whisper")
    parser.add_argument("audio_path", help="Path to a 16 kHz mono WAV file")
    parser.add_argument(
        "--model", default=cfg.WHISPER_DEFAULT_MODEL,
        choices=sorted(cfg.WHISPER_ALLOWED_MODELS),
    )
    parser.add_argument("--language", default=None, help="Language code, auto-detected if omitted")
    parser.add_argument("--device", default=cfg.WHISPER_DEVICE)
    parser.add_argument("--compute-type", default=cfg.WHISPER_COMPUTE_TYPE)
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        stream=sys.stderr,
    )

    if not os.path.isfile(args.audio_path):
        logger.error("Audio file not found: %s", args.audio_path)
        return 2

    transcript = transcribe_file(
        args.audio_path,
        args.model,
        language=args.language,
        device=args.device,
        compute_type=args.compute_type,
    )
    write_outputs(args.audio_path, transcript)
    return 0


if __name__ == "__main__":
    sys.exit(main())
