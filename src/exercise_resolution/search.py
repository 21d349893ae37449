"""Client for the out-of-process exercise search index.

Only the resolver's external-search tier talks to it. Any transport error,
timeout, bad status or malformed body counts as a miss; callers never see an
exception from search().
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Protocol

import httpx

from .catalog import ExerciseRecord
from .normalization import tokenize

logger = logging.getLogger(__name__)

DEFAULT_SEARCH_LIMIT = 5


@dataclass(frozen=True)
class SearchHit:
    record: ExerciseRecord
    similarity: float


class ExerciseSearchBackend(Protocol):
    async def search(self, query: str, limit: int = DEFAULT_SEARCH_LIMIT) -> list[SearchHit]: ...


def name_similarity(query: str, name: str) -> float:
    q, n = set(tokenize(query)), set(tokenize(name))
    if not q or not n:
        return 0.0
    return len(q & n) / len(q | n)


def parse_search_response(query: str, body: Any) -> list[SearchHit]:
    """Turn a ``{"success": true, "data": [...]}`` body into scored hits."""
    if not isinstance(body, dict) or not body.get("success"):
        return []
    rows = body.get("data")
    if not isinstance(rows, list):
        return []

    hits: list[SearchHit] = []
    for row in rows:
        if not isinstance(row, dict):
            continue
        try:
            record = ExerciseRecord.from_payload(row)
        except (KeyError, TypeError, ValueError):
            logger.debug("Skipping malformed search row: %r", row)
            continue
        score = row.get("score")
        if isinstance(score, (int, float)):
            similarity = max(0.0, min(1.0, float(score)))
        else:
            similarity = name_similarity(query, record.name)
        hits.append(SearchHit(record=record, similarity=similarity))
    return hits


class HttpExerciseSearch:
    """GET {base_url}/exercises/search?q=...&limit=N with a short timeout."""

    def __init__(
        self,
        base_url: str,
        timeout_seconds: float = 3.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.timeout_seconds = timeout_seconds
        self._client = httpx.AsyncClient(
            base_url=self.base_url,
            timeout=timeout_seconds,
            transport=transport,
            headers={"Accept": "application/json"},
        )

    async def search(self, query: str, limit: int = DEFAULT_SEARCH_LIMIT) -> list[SearchHit]:
        try:
            resp = await self._client.get("/exercises/search", params={"q": query, "limit": limit})
        except httpx.TimeoutException:
            logger.warning("Exercise search timed out after %.1fs for %r", self.timeout_seconds, query)
            return []
        except httpx.HTTPError as e:
            logger.warning("Exercise search failed for %r: %s", query, e)
            return []

        if resp.status_code != 200:
            logger.warning("Exercise search returned HTTP %d for %r", resp.status_code, query)
            return []
        try:
            body = resp.json()
        except ValueError:
            logger.warning("Exercise search returned a non-JSON body for %r", query)
            return []
        return parse_search_response(query, body)[:limit]

    async def aclose(self) -> None:
        await self._client.aclose()
