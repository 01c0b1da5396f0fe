"""
Pipeline orchestration for captiontrack.

Two entry points:

1) list_tracks(video): ask the translation service and the host for
   candidates (each raced against a deadline), flatten, rank
2) load(track): fetch -> normalize -> align

Responsibilities:
- Coordinate collaborators and the order of steps
- Turn timeouts and empty answers into logged, non-fatal conditions
- Raise NoSubtitlesError only when no candidate exists at all

Does NOT:
- Parse payloads (FormatNormalizer does)
- Know the translation service's wire protocol (injected client)
- Render anything
"""

from __future__ import annotations

import asyncio
from typing import Any, Awaitable, Protocol, TypeVar

import httpx

from captiontrack.config.settings import Settings
from captiontrack.domain.models import (
    ServiceResponse,
    SubtitleDocument,
    TrackDescriptor,
    VideoRequest,
)
from captiontrack.exceptions import CandidateTimeoutError, NoSubtitlesError
from captiontrack.services.aligner import TokenAligner
from captiontrack.services.candidates import TrackCandidateBuilder
from captiontrack.services.fetch import PayloadFetcher, SubtitleFetcher
from captiontrack.services.normalizer import FormatNormalizer
from captiontrack.services.ranking import TrackRanker
from captiontrack.utils.logging import get_logger
from captiontrack.utils.timing import StepTimer

log = get_logger(__name__)

T = TypeVar("T")


class TranslationServiceClient(Protocol):
    async def get_subtitles(self, video: VideoRequest) -> ServiceResponse | dict: ...


class NativeTrackProvider(Protocol):
    async def get_tracks(self, video: VideoRequest) -> list[TrackDescriptor]: ...


# Round-trips that lost the race. They are not cancelled; holding a reference
# keeps them alive until they settle on their own.
_abandoned: set[asyncio.Task] = set()


def _release_abandoned(task: asyncio.Task) -> None:
    _abandoned.discard(task)
    if task.cancelled():
        return
    exc = task.exception()
    if exc is not None:
        log.debug("Abandoned round-trip finished with %r", exc)


async def first_settled(awaitable: Awaitable[T], timeout_s: float, *, label: str) -> T:
    """
    Await `awaitable` or the deadline, whichever settles first.

    On timeout the pending operation is left running and its eventual
    result is dropped; CandidateTimeoutError is raised to the caller.
    """
    task = asyncio.ensure_future(awaitable)
    done, _pending = await asyncio.wait({task}, timeout=timeout_s)
    if task in done:
        return task.result()
    _abandoned.add(task)
    task.add_done_callback(_release_abandoned)
    raise CandidateTimeoutError(f"{label} timed out after {timeout_s:.1f}s")


class SubtitlePipeline:
    """
    Composes candidate selection and document loading.

    Collaborators are injected for testability; normalizer, aligner,
    builder and ranker default to the stock implementations.
    """

    def __init__(
        self,
        *,
        service: TranslationServiceClient | None = None,
        native: NativeTrackProvider | None = None,
        fetcher: PayloadFetcher | None = None,
        normalizer: FormatNormalizer | None = None,
        aligner: TokenAligner | None = None,
        builder: TrackCandidateBuilder | None = None,
        ranker: TrackRanker | None = None,
        settings: Settings | None = None,
    ) -> None:
        self.settings = settings or Settings()
        self.service = service
        self.native = native
        self.fetcher = fetcher or SubtitleFetcher(timeout_s=self.settings.fetch_timeout_s)
        self.normalizer = normalizer or FormatNormalizer(markup_sources=self.settings.markup_sources)
        self.aligner = aligner or TokenAligner()
        self.builder = builder or TrackCandidateBuilder()
        self.ranker = ranker or TrackRanker()

    # ------------------------------------------------------------------
    # Candidates
    # ------------------------------------------------------------------
    async def _service_response(self, video: VideoRequest) -> ServiceResponse:
        if self.service is None:
            return ServiceResponse()
        try:
            raw: Any = await first_settled(
                self.service.get_subtitles(video),
                self.settings.candidates_timeout_s,
                label="Translation service subtitles",
            )
        except CandidateTimeoutError as exc:
            log.warning("%s; continuing with host tracks only", exc.message)
            return ServiceResponse()
        except httpx.HTTPError as exc:
            log.error("Translation service request failed: %s", exc)
            return ServiceResponse()

        response = raw if isinstance(raw, ServiceResponse) else ServiceResponse.from_dict(raw)
        if response.waiting:
            log.warning("Translation service is still preparing subtitles")
        return response

    async def _native_tracks(self, video: VideoRequest) -> list[TrackDescriptor]:
        if self.native is None:
            return []
        try:
            tracks = await first_settled(
                self.native.get_tracks(video),
                self.settings.candidates_timeout_s,
                label="Host subtitles",
            )
        except CandidateTimeoutError as exc:
            log.warning("%s; treating host track list as empty", exc.message)
            return []
        except httpx.HTTPError as exc:
            log.error("Host subtitle request failed: %s", exc)
            return []
        return list(tracks or [])

    async def list_tracks(
        self,
        video: VideoRequest,
        *,
        ui_language: str | None = None,
    ) -> list[TrackDescriptor]:
        response, native = await asyncio.gather(
            self._service_response(video),
            self._native_tracks(video),
        )
        candidates = self.builder.build(response, [*video.subtitles, *native])
        if not candidates:
            raise NoSubtitlesError(f"No subtitles available for {video.url}")

        ranked = self.ranker.rank(
            candidates,
            request_language=video.request_language,
            preferred_ui_language=ui_language or self.settings.ui_language,
        )
        log.info("Found %d subtitle tracks for %s", len(ranked), video.url)
        return ranked

    # ------------------------------------------------------------------
    # Documents
    # ------------------------------------------------------------------
    async def load(self, track: TrackDescriptor) -> SubtitleDocument:
        timer = StepTimer()

        with timer.step("fetch"):
            payload = await self.fetcher.fetch(track)

        kind = track.format if track.format.is_text else track.source
        with timer.step("normalize"):
            document = self.normalizer.normalize(
                payload,
                kind,
                is_auto_generated=track.is_auto_generated,
            )

        with timer.step("align"):
            document = self.aligner.align(
                document,
                source=track.source,
                is_auto_generated=track.is_auto_generated,
            )

        log.info(
            "Loaded %d subtitle lines (%s/%s)",
            len(document.lines),
            track.source.value,
            track.language,
        )
        log.debug("Load timings: %s", timer.summary())
        return document

    async def load_best(self, video: VideoRequest) -> tuple[TrackDescriptor, SubtitleDocument]:
        tracks = await self.list_tracks(video)
        best = tracks[0]
        return best, await self.load(best)
