"""
WebVTT / SRT conversion for captiontrack.

Turns raw text tracks into the pass-through JSON shape
(`containsTokens` + `subtitles`) that the normalizer already understands.

Responsibilities:
- Parse SRT with `srt` and WebVTT with `webvtt-py` (imported on first use)
- Report timings in integer milliseconds

Does NOT:
- Tokenize lines (TokenAligner does)
- Download anything (SubtitleFetcher does)
"""

from __future__ import annotations

import io
from typing import Any, Protocol

from captiontrack.domain.models import SubtitleFormat
from captiontrack.utils.checks import require_module
from captiontrack.utils.logging import get_logger

log = get_logger(__name__)


class TextTrackConverter(Protocol):
    def convert(self, text: str, fmt: SubtitleFormat) -> dict[str, Any]: ...


def _strip_bom(text: str) -> str:
    return text[1:] if text.startswith("\ufeff") else text


def _vtt_timestamp_to_ms(ts: str) -> int:
    # WebVTT allows MM:SS.mmm as well as HH:MM:SS.mmm
    parts = ts.strip().split(":")
    if len(parts) == 2:
        parts.insert(0, "0")
    if len(parts) != 3:
        return 0
    hours, minutes = int(parts[0]), int(parts[1])
    seconds = float(parts[2])
    return int(round((hours * 3600 + minutes * 60 + seconds) * 1000))


def _entry(text: str, start_ms: int, end_ms: int) -> dict[str, Any]:
    return {
        "text": text,
        "startMs": start_ms,
        "durationMs": max(0, end_ms - start_ms),
    }


def srt_to_json(text: str) -> dict[str, Any]:
    srt = require_module("srt", "srt")
    entries: list[dict[str, Any]] = []
    for item in srt.parse(_strip_bom(text)):
        content = (item.content or "").strip()
        if not content:
            continue
        start_ms = int(round(item.start.total_seconds() * 1000))
        end_ms = int(round(item.end.total_seconds() * 1000))
        entries.append(_entry(content, start_ms, end_ms))
    return {"containsTokens": False, "subtitles": entries}


def vtt_to_json(text: str) -> dict[str, Any]:
    webvtt = require_module("webvtt", "webvtt-py")
    entries: list[dict[str, Any]] = []
    for caption in webvtt.read_buffer(io.StringIO(_strip_bom(text))):
        content = (caption.text or "").strip()
        if not content:
            continue
        entries.append(
            _entry(
                content,
                _vtt_timestamp_to_ms(caption.start),
                _vtt_timestamp_to_ms(caption.end),
            )
        )
    return {"containsTokens": False, "subtitles": entries}


class LibraryTextTrackConverter:
    """Default converter backed by the `srt` and `webvtt-py` parsers."""

    def convert(self, text: str, fmt: SubtitleFormat) -> dict[str, Any]:
        if fmt is SubtitleFormat.SRT:
            parse_error = require_module("srt", "srt").SRTParseError
            try:
                result = srt_to_json(text)
            except parse_error as exc:
                raise ValueError(f"malformed SRT: {exc}") from exc
        elif fmt is SubtitleFormat.VTT:
            parse_error = require_module("webvtt.errors", "webvtt-py").MalformedFileError
            try:
                result = vtt_to_json(text)
            except parse_error as exc:
                raise ValueError(f"malformed WebVTT: {exc}") from exc
        else:
            raise ValueError(f"not a text track format: {fmt.value}")
        log.debug("Converted %s text track: %d cues", fmt.value, len(result["subtitles"]))
        return result
