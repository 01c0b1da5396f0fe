"""
Token alignment for captiontrack.

Produces per-line token sequences with millisecond timing and character
alignment ranges, ready for word-by-word highlighting.

Two per-line strategies:
- reflow: the provider already timed each word (Yandex, YouTube ASR); keep
  the timings and insert timed single-space separators between words
- even split: split the plain text into words and whitespace, spread the
  line duration evenly with the last token absorbing the rounding remainder

Alignment ranges live in one document-wide coordinate space: the cursor
returned by one line seeds the next.
"""

from __future__ import annotations

import re
from typing import Sequence

from captiontrack.domain.models import (
    AlignRange,
    Line,
    RawToken,
    SubtitleDocument,
    Token,
    TrackSource,
)
from captiontrack.utils.logging import get_logger

log = get_logger(__name__)

SEPARATOR = " "
SPLIT_RE = re.compile(r"([\n \t])")


def uses_provider_tokens(line: Line, *, source: TrackSource, is_auto_generated: bool) -> bool:
    if not line.raw_tokens:
        return False
    return source is TrackSource.YANDEX or (source is TrackSource.YOUTUBE and is_auto_generated)


def reflow_tokens(line: Line, cursor: int) -> tuple[tuple[Token, ...], int]:
    """Assign ranges to provider tokens and fill the gaps with separators."""
    raw: Sequence[RawToken] = line.raw_tokens or ()
    tokens: list[Token] = []
    previous_end_ms = line.start_ms
    for index, item in enumerate(raw):
        start_ms = item.start_ms if item.start_ms is not None else previous_end_ms
        token = Token(
            text=item.text,
            start_ms=start_ms,
            duration_ms=item.duration_ms,
            align_range=AlignRange(cursor, cursor + len(item.text)),
        )
        tokens.append(token)
        cursor = token.align_range.end
        previous_end_ms = token.end_ms

        if index + 1 < len(raw):
            next_start = raw[index + 1].start_ms
            gap_end = next_start if next_start is not None else line.end_ms
            tokens.append(
                Token(
                    text=SEPARATOR,
                    start_ms=token.end_ms,
                    duration_ms=max(0, gap_end - token.end_ms),
                    align_range=AlignRange(cursor, cursor + 1),
                )
            )
            cursor += 1
    return tuple(tokens), cursor


def split_tokens(line: Line, cursor: int) -> tuple[tuple[Token, ...], int]:
    """Derive tokens from plain text and spread the line duration evenly."""
    pieces = [piece for piece in SPLIT_RE.split(line.text) if piece]
    if not pieces:
        return (), cursor

    step_ms = line.duration_ms // len(pieces)
    tokens: list[Token] = []
    for index, piece in enumerate(pieces):
        start_ms = line.start_ms + step_ms * index
        is_last = index == len(pieces) - 1
        tokens.append(
            Token(
                text=piece,
                start_ms=start_ms,
                duration_ms=line.end_ms - start_ms if is_last else step_ms,
                align_range=AlignRange(cursor, cursor + len(piece)),
            )
        )
        cursor += len(piece)
    return tuple(tokens), cursor


class TokenAligner:
    def align_line(
        self,
        line: Line,
        cursor: int,
        *,
        source: TrackSource,
        is_auto_generated: bool = False,
    ) -> tuple[Line, int]:
        if uses_provider_tokens(line, source=source, is_auto_generated=is_auto_generated):
            tokens, cursor = reflow_tokens(line, cursor)
        else:
            tokens, cursor = split_tokens(line, cursor)
        return line.with_tokens(tokens), cursor

    def align(
        self,
        document: SubtitleDocument,
        *,
        source: TrackSource,
        is_auto_generated: bool = False,
    ) -> SubtitleDocument:
        cursor = 0
        lines: list[Line] = []
        for line in document.lines:
            aligned, cursor = self.align_line(
                line,
                cursor,
                source=source,
                is_auto_generated=is_auto_generated,
            )
            lines.append(aligned)
        log.debug("Aligned %d lines (%d characters)", len(lines), cursor)
        return SubtitleDocument(contains_tokens=True, lines=tuple(lines))


def align(document: SubtitleDocument, *, source: TrackSource, is_auto_generated: bool = False) -> SubtitleDocument:
    return TokenAligner().align(document, source=source, is_auto_generated=is_auto_generated)
