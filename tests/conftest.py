from __future__ import annotations

import pytest

from captiontrack.domain.models import TrackDescriptor, TrackSource


@pytest.fixture
def youtube_events() -> dict:
    return {
        "events": [
            {
                "tStartMs": 0,
                "dDurationMs": 5000,
                "segs": [{"utf8": "hello"}, {"utf8": " world", "tOffsetMs": 2000}],
            },
            {"tStartMs": 4000, "dDurationMs": 1000, "segs": [{"utf8": "\n"}]},
            {
                "tStartMs": 4000,
                "dDurationMs": 3000,
                "segs": [
                    {"utf8": "one", "tOffsetMs": 0},
                    {"utf8": " two", "tOffsetMs": 1000},
                    {"utf8": " three", "tOffsetMs": 2000},
                ],
            },
        ]
    }


@pytest.fixture
def service_response() -> dict:
    return {
        "waiting": False,
        "subtitles": [
            {"language": "en", "url": "https://svc/en.json"},
            {
                "language": "en",
                "url": "https://svc/en-2.json",
                "translatedLanguage": "ru",
                "translatedUrl": "https://svc/ru.json",
            },
        ],
    }


@pytest.fixture
def native_track() -> TrackDescriptor:
    return TrackDescriptor(
        source=TrackSource.YOUTUBE,
        language="en",
        url="https://yt/en.json3",
        is_auto_generated=True,
    )
