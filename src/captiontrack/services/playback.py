from __future__ import annotations

from typing import Optional, Sequence

from captiontrack.domain.models import Line, SubtitleDocument, Token

SEPARATOR = " "
LEAD_IN_MS = 100
MIDPOINT_WINDOW_MS = 275


def find_active_line(document: SubtitleDocument, time_ms: float) -> Optional[Line]:
    """Last line strictly containing `time_ms`, if any."""
    for line in reversed(document.lines):
        if line.start_ms < time_ms < line.end_ms:
            return line
    return None


def _trim_chunk(tokens: list[Token]) -> list[Token]:
    if tokens and tokens[0].text == SEPARATOR:
        tokens = tokens[1:]
    if tokens and tokens[-1].text == SEPARATOR:
        tokens = tokens[:-1]
    return tokens


def _span(tokens: Sequence[Token]) -> int:
    first, last = tokens[0].align_range, tokens[-1].align_range
    if first is None or last is None:
        return sum(len(t.text) for t in tokens)
    return last.end - first.start


def chunk_tokens(tokens: Sequence[Token], max_length: int, time_ms: float) -> list[Token]:
    """
    Pick the slice of a long line to show at `time_ms`.

    Lines whose text fits in `max_length` are returned whole. Longer lines
    are cut into chunks that overflow `max_length` by at most one token,
    with edge separators trimmed; the chunk covering `time_ms` wins,
    otherwise the first one.
    """
    if not tokens:
        return []
    if _span(tokens) <= max_length:
        return list(tokens)

    chunks: list[list[Token]] = []
    current: list[Token] = []
    length = 0
    for token in tokens:
        length += len(token.text)
        current.append(token)
        if length > max_length:
            chunks.append(_trim_chunk(current))
            current, length = [], 0
    if current:
        chunks.append(_trim_chunk(current))
    chunks = [c for c in chunks if c]

    for chunk in chunks:
        if chunk[0].start_ms < time_ms < chunk[-1].end_ms:
            return chunk
    return chunks[0] if chunks else []


def is_token_passed(token: Token, time_ms: float) -> bool:
    """Highlight rule: past the midpoint, or about to reach it."""
    midpoint = token.start_ms + token.duration_ms / 2
    if time_ms > midpoint:
        return True
    return time_ms > token.start_ms - LEAD_IN_MS and midpoint - time_ms < MIDPOINT_WINDOW_MS
