"""Final media coverage gate for validated plans."""

from __future__ import annotations

import logging
from collections.abc import Iterable

from .errors import MediaCoverageError
from .plan import ValidatedExercise

logger = logging.getLogger(__name__)


def find_media_gaps(entries: Iterable[ValidatedExercise]) -> list[str]:
    return [
        f"{e.section}[{e.position}] {e.name or e.exercise_id or '?'}"
        for e in entries
        if not (e.media_url or "").strip()
    ]


def enforce_media_coverage(entries: Iterable[ValidatedExercise]) -> None:
    """Raise MediaCoverageError if any entry lacks a media URL.

    A gap here means the provider fallback chain itself is broken, so it is
    never repaired or dropped.
    """
    gaps = find_media_gaps(entries)
    if gaps:
        logger.error("Media coverage violated: %s", ", ".join(gaps))
        raise MediaCoverageError(gaps)
