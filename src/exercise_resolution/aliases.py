"""Curated alias table for names generators are known to mangle.

Aliases point at catalog display names rather than ids so the table survives
catalog re-imports that reassign ids. It can be extended without touching the
resolver; entries whose target is absent from the loaded catalog are skipped.
"""

import logging
from dataclasses import dataclass

from .catalog import ExerciseCatalog, ExerciseRecord
from .normalization import normalize

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AliasEntry:
    target_name: str
    variants: tuple[str, ...]
    note: str = ""


DEFAULT_ALIASES: tuple[AliasEntry, ...] = (
    AliasEntry("push-up", ("push ups", "pushups", "press ups", "liegestuetz", "liegestütze")),
    AliasEntry("jumping jack", ("jumping jacks", "star jumps", "hampelmann")),
    AliasEntry("mountain climber", ("mountain climbers", "climbers")),
    AliasEntry(
        "run",
        ("high knees", "butt kicks", "light jogging", "jogging", "running", "jog in place"),
        note="catalog has no dedicated high-knee or butt-kick entry",
    ),
    AliasEntry("squat", ("air squats", "bodyweight squats", "kniebeuge")),
    AliasEntry("wall squat", ("wall sits", "wall sit")),
    AliasEntry("chest dip", ("tricep dips", "triceps dips", "dips")),
    AliasEntry("glute bridge", ("glute bridges", "hip bridges", "bridges")),
    AliasEntry("step-up", ("box steps", "step ups")),
    AliasEntry("flutter kicks", ("scissors", "scissor kicks")),
    AliasEntry("pull-up", ("klimmzug", "pullups")),
    AliasEntry("barbell bench press", ("bench press", "bankdruecken", "bankdrücken")),
    AliasEntry("barbell full squat", ("back squat", "barbell squat")),
    AliasEntry("barbell deadlift", ("deadlift", "kreuzheben", "conventional deadlift")),
    AliasEntry("dumbbell shoulder press", ("shoulder press", "overhead press", "military press")),
    AliasEntry("barbell bent over row", ("bent over row", "barbell row", "rudern")),
    AliasEntry("crunch floor", ("crunches", "ab crunches")),
    AliasEntry("walking lunge", ("lunges", "forward lunges")),
)


class AliasIndex:
    """Normalized alias -> catalog record, built once per catalog."""

    def __init__(self, catalog: ExerciseCatalog, entries: tuple[AliasEntry, ...] = DEFAULT_ALIASES):
        self._by_key: dict[str, ExerciseRecord] = {}
        for entry in entries:
            record = catalog.by_normalized_name(normalize(entry.target_name))
            if record is None:
                logger.warning(
                    "Alias target %r not in catalog, skipping %d variant(s)",
                    entry.target_name,
                    len(entry.variants),
                )
                continue
            for variant in entry.variants:
                key = normalize(variant)
                # Catalog names always win over an alias with the same key.
                if key and catalog.by_normalized_name(key) is None:
                    self._by_key.setdefault(key, record)

    def __len__(self) -> int:
        return len(self._by_key)

    def lookup(self, key: str) -> ExerciseRecord | None:
        return self._by_key.get(key)
