from __future__ import annotations

import asyncio
import json
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Iterator

import typer

from captiontrack.config.settings import Settings
from captiontrack.domain.models import (
    SubtitleDocument,
    SubtitleFormat,
    TrackDescriptor,
    TrackSource,
)
from captiontrack.exceptions import CaptionTrackError, ConfigurationError
from captiontrack.pipeline import SubtitlePipeline
from captiontrack.services.aligner import TokenAligner
from captiontrack.services.candidates import TrackCandidateBuilder
from captiontrack.services.normalizer import FormatNormalizer
from captiontrack.services.playback import chunk_tokens, find_active_line, is_token_passed
from captiontrack.services.ranking import TrackRanker
from captiontrack.utils.doctor import run_doctor
from captiontrack.utils.logging import configure_logging, get_logger

app = typer.Typer(add_completion=False)
log = get_logger(__name__)


@contextmanager
def _reported_errors() -> Iterator[None]:
    try:
        yield
    except CaptionTrackError as err:
        typer.echo(f"{err.label()}: {err.message}", err=True)
        raise typer.Exit(code=err.exit_code)


def _parse_source(source: str) -> TrackSource:
    try:
        return TrackSource(source.strip().lower())
    except ValueError:
        valid = ", ".join(s.value for s in TrackSource)
        raise ConfigurationError(f"Unknown source '{source}'. Use one of: {valid}.")


def _parse_format(fmt: str) -> SubtitleFormat:
    try:
        return SubtitleFormat(fmt.strip().lower())
    except ValueError:
        valid = ", ".join(f.value for f in SubtitleFormat)
        raise ConfigurationError(f"Unknown format '{fmt}'. Use one of: {valid}.")


def _read_payload(path: Path, fmt: SubtitleFormat) -> Any:
    if not path.exists():
        raise ConfigurationError(f"File not found: {path}")
    text = path.read_text(encoding="utf-8")
    if fmt.is_text:
        return text
    try:
        return json.loads(text)
    except json.JSONDecodeError as exc:
        raise ConfigurationError(f"{path} is not valid JSON: {exc}")


def _emit(data: Any, pretty: bool) -> None:
    typer.echo(json.dumps(data, indent=2 if pretty else None, ensure_ascii=False))


def _settings(log_level: str | None) -> Settings:
    settings = Settings()
    configure_logging(log_level or settings.log_level)
    return settings


@app.command()
def config() -> None:
    """Print resolved config."""
    s = Settings()
    typer.echo(json.dumps(s.to_public_dict(), indent=2))


@app.command()
def normalize(
    path: Path = typer.Argument(..., help="Raw subtitle payload (JSON, VTT or SRT)."),
    source: str = typer.Option("native", help="Track source: yandex, youtube, vk, native."),
    fmt: str = typer.Option("json", "--format", help="Payload format: json, vtt, srt."),
    auto_generated: bool = typer.Option(False, help="Track was produced by speech recognition."),
    pretty: bool = typer.Option(False, help="Indent JSON output."),
    log_level: str = typer.Option(None, help="Log level (overrides config)."),
) -> None:
    """Normalize and align a local subtitle file."""
    with _reported_errors():
        settings = _settings(log_level)
        track_source = _parse_source(source)
        track_format = _parse_format(fmt)
        payload = _read_payload(path, track_format)

        normalizer = FormatNormalizer(markup_sources=settings.markup_sources)
        kind = track_format if track_format.is_text else track_source
        document = normalizer.normalize(payload, kind, is_auto_generated=auto_generated)
        document = TokenAligner().align(
            document,
            source=track_source,
            is_auto_generated=auto_generated,
        )
        _emit(document.to_dict(), pretty)


@app.command()
def rank(
    path: Path = typer.Argument(..., help="JSON file with 'service' response and host 'tracks'."),
    request_lang: str = typer.Option(None, help="Video language (overrides config)."),
    ui_lang: str = typer.Option(None, help="Preferred UI language (overrides config)."),
    pretty: bool = typer.Option(False, help="Indent JSON output."),
    log_level: str = typer.Option(None, help="Log level (overrides config)."),
) -> None:
    """Build and rank track candidates from a saved service response."""
    with _reported_errors():
        settings = _settings(log_level)
        data = _read_payload(path, SubtitleFormat.JSON)
        if not isinstance(data, dict):
            raise ConfigurationError(f"{path} must contain a JSON object.")

        try:
            tracks = [TrackDescriptor.from_dict(t) for t in data.get("tracks") or []]
        except (KeyError, TypeError, ValueError) as exc:
            raise ConfigurationError(f"Invalid host track in {path}: {exc}")

        candidates = TrackCandidateBuilder().build(data.get("service"), tracks)
        ranked = TrackRanker().rank(
            candidates,
            request_language=request_lang or settings.request_language,
            preferred_ui_language=ui_lang or settings.ui_language,
        )
        _emit([t.to_dict() for t in ranked], pretty)


@app.command()
def fetch(
    url: str = typer.Argument(..., help="Subtitle track URL."),
    source: str = typer.Option("native", help="Track source: yandex, youtube, vk, native."),
    fmt: str = typer.Option("json", "--format", help="Payload format: json, vtt, srt."),
    language: str = typer.Option("en", help="Track language."),
    auto_generated: bool = typer.Option(False, help="Track was produced by speech recognition."),
    pretty: bool = typer.Option(False, help="Indent JSON output."),
    log_level: str = typer.Option(None, help="Log level (overrides config)."),
) -> None:
    """Download a track and print its aligned document."""
    with _reported_errors():
        settings = _settings(log_level)
        track = TrackDescriptor(
            source=_parse_source(source),
            language=language,
            url=url,
            is_auto_generated=auto_generated,
            format=_parse_format(fmt),
        )
        pipeline = SubtitlePipeline(settings=settings)
        document = asyncio.run(pipeline.load(track))
        _emit(document.to_dict(), pretty)


@app.command()
def show(
    path: Path = typer.Argument(..., help="Aligned document produced by `normalize` or `fetch`."),
    at: int = typer.Option(..., "--at", help="Playback time in milliseconds."),
    max_length: int = typer.Option(None, help="Visible characters (overrides config)."),
) -> None:
    """Print the visible caption at a playback time; highlighted words in [brackets]."""
    with _reported_errors():
        settings = Settings()
        data = _read_payload(path, SubtitleFormat.JSON)
        if not isinstance(data, dict):
            raise ConfigurationError(f"{path} must contain a JSON object.")
        try:
            document = SubtitleDocument.from_dict(data)
        except (KeyError, TypeError, ValueError) as exc:
            raise ConfigurationError(f"{path} is not an aligned document: {exc}")
        if not document.contains_tokens:
            raise ConfigurationError(f"{path} has no tokens; run `captiontrack normalize` first.")

        line = find_active_line(document, at)
        if line is None or not line.tokens:
            typer.echo("")
            return
        visible = chunk_tokens(line.tokens, max_length or settings.max_line_length, at)
        typer.echo(
            "".join(f"[{t.text}]" if is_token_passed(t, at) and t.text.strip() else t.text for t in visible)
        )


@app.command()
def doctor() -> None:
    """Run environment diagnostics."""
    with _reported_errors():
        code = run_doctor(Settings())
    raise typer.Exit(code=code)


def _main() -> None:
    app()


if __name__ == "__main__":
    _main()
