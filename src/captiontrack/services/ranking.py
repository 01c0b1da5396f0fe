"""
Track ranking for captiontrack.

Orders track candidates with a stable sort whose comparator is an ordered
list of tie-break predicates. Each predicate returns -1 (left first),
1 (right first) or 0 (no opinion); the first non-zero answer wins and a
full tie keeps the input order.

Order of precedence:
1) translation service before host-native tracks
2) tracks in the preferred UI language
3) service tracks: translation relationship, then request language
4) native tracks: human-authored before auto-generated
"""

from __future__ import annotations

from dataclasses import dataclass
from functools import cmp_to_key
from typing import Callable, Iterable, Sequence

from captiontrack.domain.models import TrackDescriptor


@dataclass(frozen=True)
class RankContext:
    request_language: str
    ui_language: str


Predicate = Callable[[TrackDescriptor, TrackDescriptor, RankContext], int]


def _prefer(left: bool, right: bool) -> int:
    if left and not right:
        return -1
    if right and not left:
        return 1
    return 0


def by_source(a: TrackDescriptor, b: TrackDescriptor, ctx: RankContext) -> int:
    if a.source is b.source:
        return 0
    return _prefer(a.source.is_translation_service, b.source.is_translation_service)


def by_ui_language(a: TrackDescriptor, b: TrackDescriptor, ctx: RankContext) -> int:
    if a.language == b.language:
        return 0
    return _prefer(a.language == ctx.ui_language, b.language == ctx.ui_language)


def by_translation_relation(a: TrackDescriptor, b: TrackDescriptor, ctx: RankContext) -> int:
    if not (a.source.is_translation_service and b.source.is_translation_service):
        return 0
    if a.is_translated == b.is_translated:
        return 0
    if a.language == b.language:
        return _prefer(not a.is_translated, not b.is_translated)
    return _prefer(a.is_translated, b.is_translated)


def by_translated_from_request(a: TrackDescriptor, b: TrackDescriptor, ctx: RankContext) -> int:
    if not (a.source.is_translation_service and b.source.is_translation_service):
        return 0
    if not (a.is_translated and b.is_translated):
        return 0
    if a.translated_from_language == b.translated_from_language:
        return 0
    return _prefer(
        a.translated_from_language == ctx.request_language,
        b.translated_from_language == ctx.request_language,
    )


def by_request_language(a: TrackDescriptor, b: TrackDescriptor, ctx: RankContext) -> int:
    if not (a.source.is_translation_service and b.source.is_translation_service):
        return 0
    if a.is_translated or b.is_translated:
        return 0
    return _prefer(a.language == ctx.request_language, b.language == ctx.request_language)


def by_authoring(a: TrackDescriptor, b: TrackDescriptor, ctx: RankContext) -> int:
    if a.source.is_translation_service or b.source.is_translation_service:
        return 0
    return _prefer(not a.is_auto_generated, not b.is_auto_generated)


DEFAULT_PREDICATES: tuple[Predicate, ...] = (
    by_source,
    by_ui_language,
    by_translation_relation,
    by_translated_from_request,
    by_request_language,
    by_authoring,
)


class TrackRanker:
    def __init__(self, predicates: Sequence[Predicate] = DEFAULT_PREDICATES) -> None:
        self.predicates = tuple(predicates)

    def compare(self, a: TrackDescriptor, b: TrackDescriptor, ctx: RankContext) -> int:
        for predicate in self.predicates:
            result = predicate(a, b, ctx)
            if result:
                return result
        return 0

    def rank(
        self,
        candidates: Iterable[TrackDescriptor],
        request_language: str,
        preferred_ui_language: str,
    ) -> list[TrackDescriptor]:
        ctx = RankContext(request_language=request_language, ui_language=preferred_ui_language)
        return sorted(candidates, key=cmp_to_key(lambda a, b: self.compare(a, b, ctx)))


def rank_tracks(
    candidates: Iterable[TrackDescriptor],
    request_language: str,
    preferred_ui_language: str,
) -> list[TrackDescriptor]:
    return TrackRanker().rank(candidates, request_language, preferred_ui_language)
