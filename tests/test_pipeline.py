from __future__ import annotations

import asyncio
from dataclasses import dataclass, field

import pytest

from captiontrack.config.settings import Settings
from captiontrack.domain.models import (
    SubtitleFormat,
    TrackDescriptor,
    TrackSource,
    VideoRequest,
)
from captiontrack.exceptions import CandidateTimeoutError, NoSubtitlesError
from captiontrack.pipeline import SubtitlePipeline, first_settled

VIDEO = VideoRequest(host="youtube", url="https://youtu.be/abc", video_id="abc", request_language="en")


# -----------------------
# Fake collaborators
# -----------------------
@dataclass
class FakeService:
    response: dict
    delay_s: float = 0.0

    async def get_subtitles(self, video: VideoRequest) -> dict:
        if self.delay_s:
            await asyncio.sleep(self.delay_s)
        return self.response


@dataclass
class FakeNative:
    tracks: list
    delay_s: float = 0.0

    async def get_tracks(self, video: VideoRequest) -> list:
        if self.delay_s:
            await asyncio.sleep(self.delay_s)
        return self.tracks


@dataclass
class FakeFetcher:
    payloads: dict
    requested: list = field(default_factory=list)

    async def fetch(self, track: TrackDescriptor):
        self.requested.append(track.url)
        return self.payloads.get(track.url, {"containsTokens": False, "subtitles": []})


def _settings(**overrides) -> Settings:
    settings = Settings()
    settings.ui_language = "en"
    settings.candidates_timeout_s = 0.05
    for key, value in overrides.items():
        setattr(settings, key, value)
    return settings


def test_list_tracks_ranks_service_before_native(service_response, native_track) -> None:
    pipeline = SubtitlePipeline(
        service=FakeService(service_response),
        native=FakeNative([native_track]),
        settings=_settings(),
    )

    ranked = asyncio.run(pipeline.list_tracks(VIDEO))

    assert [(t.source, t.language, t.translated_from_language) for t in ranked] == [
        (TrackSource.YANDEX, "en", None),
        (TrackSource.YANDEX, "ru", "en"),
        (TrackSource.YOUTUBE, "en", None),
    ]


def test_native_timeout_falls_back_to_service(service_response, native_track, caplog) -> None:
    pipeline = SubtitlePipeline(
        service=FakeService(service_response),
        native=FakeNative([native_track], delay_s=1.0),
        settings=_settings(),
    )

    ranked = asyncio.run(pipeline.list_tracks(VIDEO))

    assert all(t.source is TrackSource.YANDEX for t in ranked)
    assert "Host subtitles timed out" in caplog.text


def test_service_timeout_keeps_host_tracks(service_response, native_track) -> None:
    pipeline = SubtitlePipeline(
        service=FakeService(service_response, delay_s=1.0),
        native=FakeNative([native_track]),
        settings=_settings(),
    )

    ranked = asyncio.run(pipeline.list_tracks(VIDEO))

    assert ranked == [native_track]


def test_waiting_response_is_logged_not_fatal(native_track, caplog) -> None:
    pipeline = SubtitlePipeline(
        service=FakeService({"waiting": True, "subtitles": []}),
        native=FakeNative([native_track]),
        settings=_settings(),
    )

    ranked = asyncio.run(pipeline.list_tracks(VIDEO))

    assert ranked == [native_track]
    assert "still preparing" in caplog.text


def test_no_candidates_raises() -> None:
    pipeline = SubtitlePipeline(
        service=FakeService({"waiting": True, "subtitles": []}),
        native=FakeNative([], delay_s=1.0),
        settings=_settings(),
    )

    with pytest.raises(NoSubtitlesError):
        asyncio.run(pipeline.list_tracks(VIDEO))


def test_host_supplied_tracks_are_candidates() -> None:
    host_track = TrackDescriptor(source=TrackSource.VK, language="ru", url="https://vk/ru.json")
    video = VideoRequest(host="vk", url="https://vk.com/video1", subtitles=(host_track,))
    pipeline = SubtitlePipeline(service=FakeService({"subtitles": []}), settings=_settings())

    assert asyncio.run(pipeline.list_tracks(video)) == [host_track]


def test_first_settled_returns_result() -> None:
    async def quick():
        return 42

    assert asyncio.run(first_settled(quick(), 1.0, label="quick")) == 42


def test_first_settled_does_not_cancel_loser() -> None:
    finished = []

    async def slow():
        await asyncio.sleep(0.05)
        finished.append(True)
        return "late"

    async def run():
        with pytest.raises(CandidateTimeoutError):
            await first_settled(slow(), 0.01, label="slow")
        await asyncio.sleep(0.1)

    asyncio.run(run())
    assert finished == [True]


def test_load_youtube_asr_track(youtube_events) -> None:
    track = TrackDescriptor(
        source=TrackSource.YOUTUBE,
        language="en",
        url="https://yt/asr",
        is_auto_generated=True,
    )
    fetcher = FakeFetcher({"https://yt/asr": youtube_events})
    pipeline = SubtitlePipeline(fetcher=fetcher, settings=_settings())

    doc = asyncio.run(pipeline.load(track))

    assert fetcher.requested == ["https://yt/asr"]
    assert doc.contains_tokens is True
    assert [line.text for line in doc.lines] == ["hello world", "one two three"]
    assert [t.text for t in doc.lines[0].tokens] == ["hello", " ", "world"]


def test_load_vk_track_strips_markup() -> None:
    track = TrackDescriptor(source=TrackSource.VK, language="ru", url="https://vk/ru")
    payload = {"containsTokens": False, "subtitles": [{"text": "<i>привет</i>", "startMs": 0, "durationMs": 100}]}
    pipeline = SubtitlePipeline(fetcher=FakeFetcher({"https://vk/ru": payload}), settings=_settings())

    doc = asyncio.run(pipeline.load(track))

    assert doc.lines[0].text == "привет"


def test_load_srt_track_uses_text_converter() -> None:
    track = TrackDescriptor(
        source=TrackSource.NATIVE,
        language="en",
        url="https://cdn/en.srt",
        format=SubtitleFormat.SRT,
    )
    srt_text = "1\n00:00:00,000 --> 00:00:01,000\nhi there\n"
    pipeline = SubtitlePipeline(fetcher=FakeFetcher({"https://cdn/en.srt": srt_text}), settings=_settings())

    doc = asyncio.run(pipeline.load(track))

    assert [t.text for t in doc.lines[0].tokens] == ["hi", " ", "there"]


def test_load_failed_fetch_yields_empty_document() -> None:
    track = TrackDescriptor(source=TrackSource.YANDEX, language="en", url="https://svc/missing")
    pipeline = SubtitlePipeline(fetcher=FakeFetcher({}), settings=_settings())

    doc = asyncio.run(pipeline.load(track))

    assert doc.lines == ()


def test_load_best_picks_top_ranked(service_response) -> None:
    payload = {"containsTokens": False, "subtitles": [{"text": "top", "startMs": 0, "durationMs": 10}]}
    fetcher = FakeFetcher({"https://svc/en.json": payload})
    pipeline = SubtitlePipeline(service=FakeService(service_response), fetcher=fetcher, settings=_settings())

    track, doc = asyncio.run(pipeline.load_best(VIDEO))

    assert track.url == "https://svc/en.json"
    assert doc.lines[0].text == "top"
