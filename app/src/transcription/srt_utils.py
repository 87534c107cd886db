"""
Subtitle rendering utilities.

Turns ``(start_seconds, end_seconds, text)`` cues produced by the local
Whisper model into SRT and WebVTT documents.
"""

from typing import Iterable, List, Tuple

Cue = Tuple[float, float, str]


def _split_seconds(total_seconds: float) -> Tuple[int, int, int, int]:
    total_ms = int(round(max(total_seconds, 0.0) * 1000))
    hours, rem = divmod(total_ms, 3_600_000)
    minutes, rem = divmod(rem, 60_000)
    seconds, milliseconds = divmod(rem, 1000)
    return hours, minutes, seconds, milliseconds


def seconds_to_srt_timestamp(total_seconds: float) -> str:
    """Convert seconds to SRT timestamp format: HH:MM:SS,mmm"""
    hours, minutes, seconds, milliseconds = _split_seconds(total_seconds)
    return f"{hours:02d}:{minutes:02d}:{seconds:02d},{milliseconds:03d}"


def seconds_to_vtt_timestamp(total_seconds: float) -> str:
    """Convert seconds to WebVTT timestamp format: HH:MM:SS.mmm"""
    hours, minutes, seconds, milliseconds = _split_seconds(total_seconds)
    return f"{hours:02d}:{minutes:02d}:{seconds:02d}.{milliseconds:03d}"


def _clean(cues: Iterable[Cue]) -> List[Cue]:
    return [(start, end, text.strip()) for start, end, text in cues if text.strip()]


def render_srt(cues: Iterable[Cue]) -> str:
    """Render cues as a numbered SRT document."""
    blocks = []
    for idx, (start_s, end_s, text) in enumerate(_clean(cues), start=1):
        blocks.append(
            f"{idx}\n"
            f"{seconds_to_srt_timestamp(start_s)} --> {seconds_to_srt_timestamp(end_s)}\n"
            f"{text}\n"
        )
    return "\n".join(blocks)


def render_vtt(cues: Iterable[Cue]) -> str:
    """Render cues as a WebVTT document."""
    blocks = ["WEBVTT\n"]
    for start_s, end_s, text in _clean(cues):
        blocks.append(
            f"{seconds_to_vtt_timestamp(start_s)} --> {seconds_to_vtt_timestamp(end_s)}\n"
            f"{text}\n"
        )
    return "\n".join(blocks)
