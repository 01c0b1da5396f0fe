from __future__ import annotations

from captiontrack.domain.models import Line, SubtitleDocument, Token, TrackSource
from captiontrack.services.aligner import align
from captiontrack.services.playback import chunk_tokens, find_active_line, is_token_passed


def _doc(*lines: Line) -> SubtitleDocument:
    return align(SubtitleDocument(lines=lines), source=TrackSource.NATIVE)


def test_find_active_line_uses_open_interval() -> None:
    doc = _doc(
        Line(text="first", start_ms=0, duration_ms=1000),
        Line(text="second", start_ms=1000, duration_ms=1000),
    )
    assert find_active_line(doc, 500).text == "first"
    assert find_active_line(doc, 1500).text == "second"
    assert find_active_line(doc, 1000) is None
    assert find_active_line(doc, 5000) is None


def test_find_active_line_prefers_latest_overlap() -> None:
    doc = _doc(
        Line(text="long", start_ms=0, duration_ms=5000),
        Line(text="short", start_ms=1000, duration_ms=1000),
    )
    assert find_active_line(doc, 1500).text == "short"


def test_short_lines_are_not_chunked() -> None:
    doc = _doc(Line(text="a b c", start_ms=0, duration_ms=500))
    tokens = doc.lines[0].tokens
    assert chunk_tokens(tokens, max_length=300, time_ms=100) == list(tokens)


def test_short_line_late_in_document_is_not_chunked() -> None:
    doc = _doc(
        Line(text="x" * 50, start_ms=0, duration_ms=100),
        Line(text="tail words", start_ms=100, duration_ms=100),
    )
    tokens = doc.lines[1].tokens
    assert chunk_tokens(tokens, max_length=20, time_ms=150) == list(tokens)


def test_long_lines_are_chunked_by_time() -> None:
    doc = _doc(Line(text="aaaa bbbb cccc dddd", start_ms=0, duration_ms=700))
    tokens = doc.lines[0].tokens

    early = chunk_tokens(tokens, max_length=8, time_ms=10)
    late = chunk_tokens(tokens, max_length=8, time_ms=650)

    assert "".join(t.text for t in early) == "aaaa bbbb"
    assert "".join(t.text for t in late) == "cccc dddd"


def test_chunk_falls_back_to_first() -> None:
    doc = _doc(Line(text="aaaa bbbb cccc dddd", start_ms=1000, duration_ms=700))
    tokens = doc.lines[0].tokens
    chunk = chunk_tokens(tokens, max_length=8, time_ms=0)
    assert chunk[0].text == "aaaa"


def test_is_token_passed() -> None:
    token = Token(text="word", start_ms=1000, duration_ms=400)
    assert not is_token_passed(token, 500)
    assert is_token_passed(token, 1201)
    assert is_token_passed(token, 950)
    assert not is_token_passed(token, 899)
