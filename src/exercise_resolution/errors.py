"""Engine errors and a stable taxonomy for monitoring.

Recoverable drift (fabricated or out-of-filter references, search timeouts)
never raises; only the failures below abort a call.
"""

from __future__ import annotations

from typing import Literal

EngineErrorClass = Literal[
    "startup",
    "configuration",
    "invariant",
    "other",
]


class EngineError(Exception):
    """Base class for fatal engine failures."""

    code = "engine_error"

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message

    def to_dict(self) -> dict[str, str]:
        return {
            "code": self.code,
            "class": classify_error_code(self.code),
            "message": self.message,
        }


class CatalogUnavailableError(EngineError):
    """Catalog could not be loaded; the engine cannot initialize."""

    code = "catalog_unavailable"


class PlanConfigurationError(EngineError):
    """Caller-supplied inputs make a constraint-respecting plan impossible."""

    code = "plan_configuration_error"


class NoEligibleSubstituteError(PlanConfigurationError):
    code = "no_eligible_substitute"

    def __init__(self, unresolved: list[str]) -> None:
        self.unresolved = list(unresolved)
        message = "No eligible substitute: the filtered candidate set contains no catalog exercises"
        if self.unresolved:
            message += (
                f", cannot replace {len(self.unresolved)} reference(s) ({', '.join(self.unresolved)})"
            )
        super().__init__(message)


class MediaCoverageError(EngineError):
    """An output exercise lacks media after the full fallback chain."""

    code = "media_coverage_violation"

    def __init__(self, gaps: list[str]) -> None:
        self.gaps = list(gaps)
        super().__init__(
            f"Media coverage violated for {len(self.gaps)} exercise(s): {', '.join(self.gaps)}"
        )


ERROR_CLASS_BY_CODE: dict[str, EngineErrorClass] = {
    "catalog_unavailable": "startup",
    "plan_configuration_error": "configuration",
    "no_eligible_substitute": "configuration",
    "media_coverage_violation": "invariant",
}


def classify_error_code(error_code: str | None) -> EngineErrorClass:
    normalized = str(error_code or "").strip().lower()
    if not normalized:
        return "other"
    return ERROR_CLASS_BY_CODE.get(normalized, "other")


def engine_error_taxonomy_v1() -> dict[str, object]:
    return {
        "schema_version": "exercise_engine_error_taxonomy.v1",
        "classes": ["startup", "configuration", "invariant", "other"],
        "code_to_class": dict(ERROR_CLASS_BY_CODE),
        "caller_visible_classes": ["configuration"],
    }
