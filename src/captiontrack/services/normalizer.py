"""
Format normalization for captiontrack.

Converts one provider's raw subtitle payload into the canonical
SubtitleDocument (plain line text + timing; alignment comes later).

Responsibilities:
- YouTube json3 events -> lines (duration clamping, segment timing)
- Pass-through JSON (Yandex, generic) -> lines, optional markup stripping
- WebVTT / SRT via a TextTrackConverter

Does NOT:
- Raise on malformed data (an empty document is returned and logged)
- Assign alignment ranges (TokenAligner does)
"""

from __future__ import annotations

import re
from typing import Any, Iterable, Mapping, Optional, Union

from captiontrack.domain.models import (
    Line,
    RawToken,
    SubtitleDocument,
    SubtitleFormat,
    TrackSource,
)
from captiontrack.services.texttrack import LibraryTextTrackConverter, TextTrackConverter
from captiontrack.utils.logging import get_logger

log = get_logger(__name__)

SourceKind = Union[TrackSource, SubtitleFormat]

MARKUP_RE = re.compile(r"<[^>]+>")


def _as_int(value: Any) -> Optional[int]:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value)
    return None


def strip_markup(text: str) -> str:
    return MARKUP_RE.sub("", text)


# ---------------------------------------------------------------------
# YouTube events
# ---------------------------------------------------------------------
def _effective_duration(event: Mapping[str, Any], next_event: Any) -> int:
    start = _as_int(event.get("tStartMs")) or 0
    duration = _as_int(event.get("dDurationMs")) or 0
    if isinstance(next_event, Mapping):
        next_start = _as_int(next_event.get("tStartMs"))
        if next_start is not None and start + duration > next_start:
            duration = next_start - start
    return max(0, duration)


def _kept_segments(segs: list) -> list[tuple[str, int]]:
    kept = []
    for seg in segs:
        if not isinstance(seg, Mapping):
            continue
        text = str(seg.get("utf8") or "").strip()
        if not text:
            # bare "\n" separators trim to nothing
            continue
        kept.append((text, _as_int(seg.get("tOffsetMs")) or 0))
    return kept


def _segment_tokens(segs: list, event_start: int, duration: int) -> list[RawToken]:
    kept = _kept_segments(segs)
    tokens: list[RawToken] = []
    remainder = duration
    for index, (text, offset) in enumerate(kept):
        if index == len(kept) - 1:
            seg_duration = remainder
        else:
            next_offset = kept[index + 1][1]
            seg_duration = duration
            if next_offset:
                # offsets may run past a clamped event end
                seg_duration = max(0, min(next_offset - offset, remainder))
                remainder -= seg_duration

        tokens.append(
            RawToken(
                text=text,
                start_ms=event_start + offset,
                duration_ms=seg_duration,
            )
        )
    return tokens


class YouTubeEventConverter:
    """Converts YouTube json3 `events` into lines."""

    def convert(self, payload: Any, *, is_auto_generated: bool = False) -> SubtitleDocument:
        events = payload.get("events") if isinstance(payload, Mapping) else None
        if not isinstance(events, list):
            log.warning("Malformed YouTube payload: no events list (%s)", type(payload).__name__)
            return SubtitleDocument.empty()

        lines: list[Line] = []
        for index, event in enumerate(events):
            if not isinstance(event, Mapping):
                continue
            segs = event.get("segs")
            if not isinstance(segs, list) or not segs:
                continue
            start = _as_int(event.get("tStartMs"))
            if start is None:
                log.debug("Skipping event %d without tStartMs", index)
                continue

            next_event = events[index + 1] if index + 1 < len(events) else None
            duration = _effective_duration(event, next_event)
            tokens = _segment_tokens(segs, start, duration)
            text = " ".join(t.text for t in tokens)
            if not text:
                continue
            lines.append(
                Line(
                    text=text,
                    start_ms=start,
                    duration_ms=duration,
                    raw_tokens=tuple(tokens) if is_auto_generated else None,
                )
            )
        return SubtitleDocument(contains_tokens=is_auto_generated, lines=tuple(lines))


# ---------------------------------------------------------------------
# Pass-through JSON
# ---------------------------------------------------------------------
def _raw_tokens(items: Any) -> Optional[tuple[RawToken, ...]]:
    if not isinstance(items, list):
        return None
    tokens = []
    for item in items:
        if not isinstance(item, Mapping):
            continue
        text = str(item.get("text") or "")
        if not text:
            continue
        start = _as_int(item.get("startMs"))
        # providers send startMs 0 for "unknown"; the aligner fills it from the previous token
        tokens.append(
            RawToken(
                text=text,
                start_ms=start or None,
                duration_ms=max(0, _as_int(item.get("durationMs")) or 0),
            )
        )
    return tuple(tokens) if tokens else None


class PassThroughJSONConverter:
    """Adopts payloads that already have the `subtitles` line shape."""

    def convert(self, payload: Any, *, strip_tags: bool = False) -> SubtitleDocument:
        entries = payload.get("subtitles") if isinstance(payload, Mapping) else None
        if not isinstance(entries, list):
            log.warning("Malformed subtitle JSON: no subtitles list (%s)", type(payload).__name__)
            return SubtitleDocument.empty()

        lines: list[Line] = []
        for entry in entries:
            if not isinstance(entry, Mapping):
                continue
            text = entry.get("text")
            if not isinstance(text, str):
                continue
            if strip_tags:
                text = strip_markup(text)
            if not text:
                continue
            lines.append(
                Line(
                    text=text,
                    start_ms=max(0, _as_int(entry.get("startMs")) or 0),
                    duration_ms=max(0, _as_int(entry.get("durationMs")) or 0),
                    raw_tokens=_raw_tokens(entry.get("tokens")),
                )
            )
        return SubtitleDocument(
            contains_tokens=bool(payload.get("containsTokens", False)),
            lines=tuple(lines),
        )


# ---------------------------------------------------------------------
# Facade
# ---------------------------------------------------------------------
class FormatNormalizer:
    """
    Single entry point: `normalize(payload, kind)`.

    `kind` is the track's source for JSON payloads, or its text format
    (vtt/srt) for raw text payloads.
    """

    def __init__(
        self,
        *,
        text_converter: TextTrackConverter | None = None,
        markup_sources: Iterable[str] = ("vk",),
    ) -> None:
        self.text_converter = text_converter or LibraryTextTrackConverter()
        self.markup_sources = frozenset(markup_sources)
        self._events = YouTubeEventConverter()
        self._json = PassThroughJSONConverter()

    def normalize(
        self,
        payload: Any,
        kind: SourceKind,
        *,
        is_auto_generated: bool = False,
    ) -> SubtitleDocument:
        if isinstance(kind, SubtitleFormat) and kind.is_text:
            return self._normalize_text(payload, kind)
        if kind is TrackSource.YOUTUBE:
            return self._events.convert(payload, is_auto_generated=is_auto_generated)
        strip_tags = isinstance(kind, TrackSource) and kind.value in self.markup_sources
        return self._json.convert(payload, strip_tags=strip_tags)

    def _normalize_text(self, payload: Any, fmt: SubtitleFormat) -> SubtitleDocument:
        if isinstance(payload, Mapping):
            # fetch failures surface as an already-empty document
            return self._json.convert(payload)
        if not isinstance(payload, str):
            log.warning("Malformed %s payload: expected text, got %s", fmt.value, type(payload).__name__)
            return SubtitleDocument.empty()
        try:
            converted = self.text_converter.convert(payload, fmt)
        except ValueError as exc:
            log.warning("Failed to convert %s track: %s", fmt.value, exc)
            return SubtitleDocument.empty()
        return self._json.convert(converted)


def normalize(payload: Any, kind: SourceKind, *, is_auto_generated: bool = False) -> SubtitleDocument:
    return FormatNormalizer().normalize(payload, kind, is_auto_generated=is_auto_generated)
