from __future__ import annotations

from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, Mapping, Optional


class TrackSource(str, Enum):
    YANDEX = "yandex"
    YOUTUBE = "youtube"
    VK = "vk"
    NATIVE = "native"

    @property
    def is_translation_service(self) -> bool:
        return self is TrackSource.YANDEX


class SubtitleFormat(str, Enum):
    JSON = "json"
    VTT = "vtt"
    SRT = "srt"

    @property
    def is_text(self) -> bool:
        return self in (SubtitleFormat.VTT, SubtitleFormat.SRT)


@dataclass(frozen=True)
class AlignRange:
    """Half-open character interval in the document's text stream."""

    start: int
    end: int

    def __post_init__(self) -> None:
        if self.start < 0 or self.end <= self.start:
            raise ValueError(f"invalid align range [{self.start}, {self.end})")

    def to_dict(self) -> dict[str, int]:
        return {"start": self.start, "end": self.end}


@dataclass(frozen=True)
class Token:
    text: str
    start_ms: int
    duration_ms: int
    align_range: Optional[AlignRange] = None

    @property
    def end_ms(self) -> int:
        return self.start_ms + self.duration_ms

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "text": self.text,
            "startMs": self.start_ms,
            "durationMs": self.duration_ms,
        }
        if self.align_range is not None:
            data["alignRange"] = self.align_range.to_dict()
        return data

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Token":
        rng = data.get("alignRange")
        return cls(
            text=str(data["text"]),
            start_ms=int(data["startMs"]),
            duration_ms=int(data["durationMs"]),
            align_range=AlignRange(int(rng["start"]), int(rng["end"])) if rng else None,
        )


@dataclass(frozen=True)
class RawToken:
    """Provider-supplied word timing, before alignment. `start_ms` may be absent."""

    text: str
    start_ms: Optional[int]
    duration_ms: int

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"text": self.text, "durationMs": self.duration_ms}
        if self.start_ms is not None:
            data["startMs"] = self.start_ms
        return data


@dataclass(frozen=True)
class Line:
    text: str
    start_ms: int
    duration_ms: int
    tokens: Optional[tuple[Token, ...]] = None
    raw_tokens: Optional[tuple[RawToken, ...]] = None

    @property
    def end_ms(self) -> int:
        return self.start_ms + self.duration_ms

    def with_tokens(self, tokens: tuple[Token, ...]) -> "Line":
        return replace(self, tokens=tokens, raw_tokens=None)

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "text": self.text,
            "startMs": self.start_ms,
            "durationMs": self.duration_ms,
        }
        if self.tokens is not None:
            data["tokens"] = [t.to_dict() for t in self.tokens]
        elif self.raw_tokens is not None:
            data["tokens"] = [t.to_dict() for t in self.raw_tokens]
        return data

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Line":
        tokens = data.get("tokens")
        return cls(
            text=str(data["text"]),
            start_ms=int(data["startMs"]),
            duration_ms=int(data["durationMs"]),
            tokens=tuple(Token.from_dict(t) for t in tokens) if tokens is not None else None,
        )


@dataclass(frozen=True)
class SubtitleDocument:
    """
    Canonical subtitle model handed to the renderer.

    JSON form uses the pass-through shape: `containsTokens` + `subtitles`.
    """

    contains_tokens: bool = False
    lines: tuple[Line, ...] = ()

    @classmethod
    def empty(cls) -> "SubtitleDocument":
        return cls(contains_tokens=False, lines=())

    @property
    def is_empty(self) -> bool:
        return not self.lines

    def to_dict(self) -> dict[str, Any]:
        return {
            "containsTokens": self.contains_tokens,
            "subtitles": [line.to_dict() for line in self.lines],
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "SubtitleDocument":
        """Load an already aligned document (the output of `to_dict`)."""
        return cls(
            contains_tokens=bool(data.get("containsTokens", False)),
            lines=tuple(Line.from_dict(line) for line in data.get("subtitles") or []),
        )


@dataclass(frozen=True)
class TrackDescriptor:
    source: TrackSource
    language: str
    url: str
    is_auto_generated: bool = False
    translated_from_language: Optional[str] = None
    format: SubtitleFormat = SubtitleFormat.JSON

    @property
    def is_translated(self) -> bool:
        return self.translated_from_language is not None

    @property
    def identity(self) -> tuple[TrackSource, str, bool]:
        return (self.source, self.language, self.is_translated)

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "source": self.source.value,
            "language": self.language,
            "url": self.url,
            "isAutoGenerated": self.is_auto_generated,
            "format": self.format.value,
        }
        if self.translated_from_language is not None:
            data["translatedFromLanguage"] = self.translated_from_language
        return data

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "TrackDescriptor":
        return cls(
            source=TrackSource(data["source"]),
            language=str(data["language"]),
            url=str(data.get("url") or ""),
            is_auto_generated=bool(data.get("isAutoGenerated", False)),
            translated_from_language=data.get("translatedFromLanguage") or None,
            format=SubtitleFormat(data.get("format") or SubtitleFormat.JSON.value),
        )


@dataclass(frozen=True)
class ServiceSubtitle:
    language: str
    url: str
    translated_language: Optional[str] = None
    translated_url: Optional[str] = None


@dataclass(frozen=True)
class ServiceResponse:
    waiting: bool = False
    subtitles: tuple[ServiceSubtitle, ...] = ()

    @classmethod
    def from_dict(cls, data: Any) -> "ServiceResponse":
        if not isinstance(data, Mapping):
            return cls()
        raw = data.get("subtitles")
        entries = []
        if isinstance(raw, list):
            for item in raw:
                if not isinstance(item, Mapping):
                    continue
                entries.append(
                    ServiceSubtitle(
                        language=str(item.get("language") or ""),
                        url=str(item.get("url") or ""),
                        translated_language=item.get("translatedLanguage") or None,
                        translated_url=item.get("translatedUrl") or None,
                    )
                )
        return cls(waiting=bool(data.get("waiting", False)), subtitles=tuple(entries))


@dataclass(frozen=True)
class VideoRequest:
    host: str
    url: str
    video_id: str | None = None
    duration: float | None = None
    request_language: str = "en"
    response_language: str = "ru"
    subtitles: tuple[TrackDescriptor, ...] = field(default_factory=tuple)
