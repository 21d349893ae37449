"""Canonical exercise catalog and its normalized lookup index.

The catalog is loaded once (file, database or packaged seed) and is read-only
afterwards. All matching tiers query the same index built here.

The packaged seed (``data/exercises.json``) is a small hand-written fixture
catalog with illustrative media URLs, used by tests and local runs. Real
deployments load the full catalog (about 1,500 records) from
EXERCISE_CATALOG_PATH or from Postgres.
"""

from __future__ import annotations

import json
import logging
import threading
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from .errors import CatalogUnavailableError
from .normalization import normalize, tokenize

logger = logging.getLogger(__name__)

SEED_CATALOG_PATH = Path(__file__).parent / "data" / "exercises.json"
BODY_WEIGHT = "body weight"


@dataclass(frozen=True)
class MediaRef:
    provider: str
    asset_key: str


@dataclass(frozen=True)
class ExerciseRecord:
    exercise_id: str
    name: str
    target_muscles: tuple[str, ...] = ()
    body_parts: tuple[str, ...] = ()
    equipment: tuple[str, ...] = ()
    secondary_muscles: tuple[str, ...] = ()
    media_refs: tuple[MediaRef, ...] = ()
    instructions: tuple[str, ...] = field(default=(), compare=False)

    @property
    def tags(self) -> frozenset[str]:
        return frozenset((*self.target_muscles, *self.body_parts, *self.equipment))

    def media_ref(self, provider: str) -> MediaRef | None:
        for ref in self.media_refs:
            if ref.provider == provider and ref.asset_key:
                return ref
        return None

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> ExerciseRecord:
        """Build a record from a catalog row in camelCase or snake_case form."""
        exercise_id = str(_first(payload, "exerciseId", "exercise_id", "id") or "").strip()
        name = str(payload.get("name") or "").strip()
        if not exercise_id or not name:
            raise ValueError(f"Catalog row needs an id and a name: {dict(payload)!r}")

        media_refs: list[MediaRef] = []
        for ref in _first(payload, "mediaRefs", "media_refs") or ():
            if isinstance(ref, Mapping):
                media_refs.append(MediaRef(str(ref["provider"]), str(ref.get("asset_key") or ref.get("assetKey") or "")))
            else:
                provider, asset_key = ref
                media_refs.append(MediaRef(str(provider), str(asset_key)))
        gif_url = _first(payload, "gifUrl", "gif_url")
        if gif_url and not any(ref.provider == "exercisedb" for ref in media_refs):
            media_refs.insert(0, MediaRef("exercisedb", str(gif_url)))

        return cls(
            exercise_id=exercise_id,
            name=name,
            target_muscles=_tags(_first(payload, "targetMuscles", "target_muscles")),
            body_parts=_tags(_first(payload, "bodyParts", "body_parts")),
            equipment=_tags(_first(payload, "equipments", "equipment")),
            secondary_muscles=_tags(_first(payload, "secondaryMuscles", "secondary_muscles")),
            media_refs=tuple(media_refs),
            instructions=tuple(str(s) for s in payload.get("instructions") or ()),
        )


@dataclass(frozen=True)
class ExerciseHint:
    """Muscle/equipment context a plan entry was generated with."""

    target_muscles: tuple[str, ...] = ()
    body_parts: tuple[str, ...] = ()
    equipment: tuple[str, ...] = ()

    def __bool__(self) -> bool:
        return bool(self.target_muscles or self.body_parts or self.equipment)

    @classmethod
    def from_values(
        cls,
        target_muscles: Iterable[str] | str | None = None,
        body_parts: Iterable[str] | str | None = None,
        equipment: Iterable[str] | str | None = None,
    ) -> ExerciseHint:
        return cls(_tags(target_muscles), _tags(body_parts), _tags(equipment))

    @classmethod
    def from_record(cls, record: ExerciseRecord) -> ExerciseHint:
        return cls(record.target_muscles, record.body_parts, record.equipment)


def _first(payload: Mapping[str, Any], *keys: str) -> Any:
    for key in keys:
        if payload.get(key) is not None:
            return payload[key]
    return None


def _tags(values: Iterable[str] | str | None) -> tuple[str, ...]:
    if not values:
        return ()
    if isinstance(values, str):
        values = [values]
    out: list[str] = []
    for value in values:
        tag = " ".join(str(value).lower().split())
        if tag and tag not in out:
            out.append(tag)
    return tuple(out)


class ExerciseCatalog:
    """Immutable record collection with id, name and token indices."""

    def __init__(self, records: Iterable[ExerciseRecord]) -> None:
        self._records: tuple[ExerciseRecord, ...] = tuple(records)
        if not self._records:
            raise CatalogUnavailableError("Exercise catalog is empty")

        self._by_id: dict[str, ExerciseRecord] = {}
        self._position: dict[str, int] = {}
        self._by_name: dict[str, ExerciseRecord] = {}
        self._name_tokens: dict[str, tuple[str, ...]] = {}
        self._tag_tokens: dict[str, frozenset[str]] = {}
        self._token_index: dict[str, list[str]] = {}

        for position, record in enumerate(self._records):
            if record.exercise_id in self._by_id:
                raise CatalogUnavailableError(
                    f"Duplicate exercise id in catalog: {record.exercise_id!r}"
                )
            self._by_id[record.exercise_id] = record
            self._position[record.exercise_id] = position
            # First record wins for a shared normalized name.
            self._by_name.setdefault(normalize(record.name), record)

            name_tokens = tokenize(record.name)
            self._name_tokens[record.exercise_id] = name_tokens
            self._tag_tokens[record.exercise_id] = frozenset(
                token for tag in record.tags for token in tokenize(tag)
            )
            for token in name_tokens:
                self._token_index.setdefault(token, []).append(record.exercise_id)

        self._ids = frozenset(self._by_id)
        self._vocabulary = tuple(sorted(self._token_index))

    def __len__(self) -> int:
        return len(self._records)

    def __iter__(self):
        return iter(self._records)

    def __contains__(self, exercise_id: object) -> bool:
        return exercise_id in self._by_id

    @property
    def ids(self) -> frozenset[str]:
        return self._ids

    @property
    def vocabulary(self) -> tuple[str, ...]:
        return self._vocabulary

    def get(self, exercise_id: str) -> ExerciseRecord | None:
        return self._by_id.get(exercise_id)

    def by_normalized_name(self, key: str) -> ExerciseRecord | None:
        return self._by_name.get(key)

    def position(self, exercise_id: str) -> int:
        """Catalog order, used as the deterministic tie-break everywhere."""
        return self._position.get(exercise_id, len(self._records))

    def name_tokens(self, exercise_id: str) -> tuple[str, ...]:
        return self._name_tokens.get(exercise_id, ())

    def tag_tokens(self, exercise_id: str) -> frozenset[str]:
        return self._tag_tokens.get(exercise_id, frozenset())

    def ids_for_token(self, token: str) -> list[str]:
        return self._token_index.get(token, [])

    def in_catalog_order(self, exercise_ids: Iterable[str]) -> list[ExerciseRecord]:
        known = {i for i in exercise_ids if i in self._by_id}
        return sorted((self._by_id[i] for i in known), key=lambda r: self._position[r.exercise_id])

    def stats(self) -> dict[str, int]:
        return {
            "exercises": len(self._records),
            "with_media": sum(1 for r in self._records if r.media_refs),
            "tokens": len(self._vocabulary),
        }


def catalog_from_payload(payload: Any) -> ExerciseCatalog:
    """Accept either {"exercises": [...]} or a bare list of rows."""
    rows = payload.get("exercises") if isinstance(payload, Mapping) else payload
    if not isinstance(rows, list):
        raise CatalogUnavailableError("Catalog payload must contain a list of exercises")
    try:
        records = [ExerciseRecord.from_payload(row) for row in rows]
    except (KeyError, TypeError, ValueError) as exc:
        raise CatalogUnavailableError(f"Invalid catalog row: {exc}") from exc
    return ExerciseCatalog(records)


def load_catalog(path: str | Path | None = None) -> ExerciseCatalog:
    """Load a catalog from a JSON file (defaults to the packaged seed)."""
    catalog_path = Path(path) if path else SEED_CATALOG_PATH
    try:
        with catalog_path.open(encoding="utf-8") as f:
            payload = json.load(f)
    except (OSError, json.JSONDecodeError) as exc:
        raise CatalogUnavailableError(f"Cannot read catalog {catalog_path}: {exc}") from exc

    catalog = catalog_from_payload(payload)
    logger.info("Loaded exercise catalog from %s (%d exercises)", catalog_path, len(catalog))
    return catalog


_CATALOG: ExerciseCatalog | None = None
_CATALOG_LOCK = threading.Lock()


def get_default_catalog(path: str | Path | None = None) -> ExerciseCatalog:
    """Lazily load the process-wide catalog exactly once."""
    global _CATALOG  # noqa: PLW0603
    if _CATALOG is None:
        with _CATALOG_LOCK:
            if _CATALOG is None:
                _CATALOG = load_catalog(path)
    return _CATALOG
