from __future__ import annotations

from typing import Any, Iterable

from captiontrack.domain.models import (
    ServiceResponse,
    TrackDescriptor,
    TrackSource,
)
from captiontrack.utils.logging import get_logger

log = get_logger(__name__)


class TrackCandidateBuilder:
    """
    Flattens a translation-service response into independent track candidates.

    Each service entry may carry an original-language track and a translated
    variant. Original-language tracks are kept once per language (first wins);
    translated variants are always kept. Host-provided tracks follow, as-is.
    """

    def build(
        self,
        response: ServiceResponse | Any,
        extra_local_tracks: Iterable[TrackDescriptor] = (),
    ) -> list[TrackDescriptor]:
        if not isinstance(response, ServiceResponse):
            response = ServiceResponse.from_dict(response)

        candidates: list[TrackDescriptor] = []
        seen: set[tuple[TrackSource, str, bool]] = set()
        for entry in response.subtitles:
            if entry.language:
                original = TrackDescriptor(
                    source=TrackSource.YANDEX,
                    language=entry.language,
                    url=entry.url,
                )
                if original.identity not in seen:
                    seen.add(original.identity)
                    candidates.append(original)
            if entry.translated_language:
                candidates.append(
                    TrackDescriptor(
                        source=TrackSource.YANDEX,
                        language=entry.translated_language,
                        url=entry.translated_url or "",
                        translated_from_language=entry.language or None,
                    )
                )

        log.debug("Service offered %d candidates", len(candidates))
        return [*candidates, *extra_local_tracks]


def build_candidates(
    response: ServiceResponse | Any,
    extra_local_tracks: Iterable[TrackDescriptor] = (),
) -> list[TrackDescriptor]:
    return TrackCandidateBuilder().build(response, extra_local_tracks)
