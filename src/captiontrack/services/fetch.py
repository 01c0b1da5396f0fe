"""
Track download for captiontrack.

Responsibilities:
- Download a track's payload over HTTP (httpx, fixed timeout)
- Decode JSON tracks, return raw text for VTT/SRT tracks

Does NOT:
- Retry or raise: every failure becomes an empty document payload so the
  pipeline keeps going ("no subtitles to show")
"""

from __future__ import annotations

from typing import Any, Protocol

import httpx

from captiontrack.domain.models import SubtitleDocument, TrackDescriptor
from captiontrack.utils.logging import get_logger

log = get_logger(__name__)


class PayloadFetcher(Protocol):
    async def fetch(self, track: TrackDescriptor) -> Any: ...


def empty_payload() -> dict[str, Any]:
    return SubtitleDocument.empty().to_dict()


class SubtitleFetcher:
    """httpx-backed fetcher. A shared client may be injected (tests use MockTransport)."""

    def __init__(self, *, timeout_s: float = 5.0, client: httpx.AsyncClient | None = None) -> None:
        self.timeout_s = timeout_s
        self._client = client

    async def fetch(self, track: TrackDescriptor) -> Any:
        if not track.url:
            log.error("Track %s/%s has no URL", track.source.value, track.language)
            return empty_payload()
        try:
            if self._client is not None:
                return await self._download(self._client, track)
            async with httpx.AsyncClient(timeout=self.timeout_s, follow_redirects=True) as client:
                return await self._download(client, track)
        except httpx.HTTPError as exc:
            log.error("Failed to fetch subtitles from %s: %s", track.url, exc)
        except ValueError as exc:
            log.error("Failed to decode subtitles from %s: %s", track.url, exc)
        return empty_payload()

    async def _download(self, client: httpx.AsyncClient, track: TrackDescriptor) -> Any:
        response = await client.get(track.url, timeout=self.timeout_s)
        response.raise_for_status()
        if track.format.is_text:
            return response.text
        return response.json()
