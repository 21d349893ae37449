"""Structured logging for the exercise engine.

Resolution and replacement log calls attach ``exercise_*`` extras (tier,
confidence, elapsed_ms, raw name, strategy). Both formatters carry them:
JSON as top-level keys, text as a trailing ``key=value`` list.

Controlled via EXERCISE_LOG_FORMAT env var: "json" (default) or "text".
"""

import json
import logging
import sys
import traceback
from datetime import datetime, timezone
from typing import Any, TextIO

EXTRA_PREFIX = "exercise_"


def _extras(record: logging.LogRecord, prefix: str) -> dict[str, Any]:
    return {key: value for key, value in record.__dict__.items() if key.startswith(prefix)}


class JSONFormatter(logging.Formatter):
    """Emit log records as single-line JSON objects."""

    def __init__(self, extra_prefix: str = EXTRA_PREFIX) -> None:
        super().__init__()
        self.extra_prefix = extra_prefix

    def format(self, record: logging.LogRecord) -> str:
        log_entry: dict = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        if record.exc_info and record.exc_info[1] is not None:
            log_entry["exception"] = "".join(traceback.format_exception(*record.exc_info))
        log_entry.update(_extras(record, self.extra_prefix))
        return json.dumps(log_entry, default=str)


class TextFormatter(logging.Formatter):
    """Plain lines for terminals, with exercise extras appended."""

    def __init__(self, extra_prefix: str = EXTRA_PREFIX) -> None:
        super().__init__("%(asctime)s %(levelname)s %(name)s: %(message)s")
        self.extra_prefix = extra_prefix

    def format(self, record: logging.LogRecord) -> str:
        line = super().format(record)
        extras = _extras(record, self.extra_prefix)
        if not extras:
            return line
        fields = " ".join(f"{key[len(self.extra_prefix):]}={value}" for key, value in extras.items())
        head, sep, tail = line.partition("\n")
        return f"{head} [{fields}]{sep}{tail}"


def setup_logging(log_format: str, level: int = logging.INFO, stream: TextIO | None = None) -> None:
    """Replace root handlers with one handler writing to ``stream`` (stderr)."""
    root = logging.getLogger()
    root.setLevel(level)

    for handler in root.handlers[:]:
        root.removeHandler(handler)

    handler = logging.StreamHandler(stream or sys.stderr)
    handler.setLevel(level)
    handler.setFormatter(JSONFormatter() if log_format == "json" else TextFormatter())
    root.addHandler(handler)
