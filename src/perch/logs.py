"""Logging setup for the perch process.

Modules log through named stdlib loggers (``perch.server``,
``perch.access``, ``perch.relay``). This module only installs the root
handler, in either a classic text format or one JSON object per line.
"""

import json
import logging
import sys
from datetime import UTC, datetime

_TEXT_FORMAT = "%(asctime)s %(levelname)-7s %(name)s: %(message)s"


class JSONFormatter(logging.Formatter):
    """Render each record as a single-line JSON object."""

    def format(self, record: logging.LogRecord) -> str:
        payload = {
            "ts": datetime.fromtimestamp(record.created, tz=UTC).isoformat(),
            "level": record.levelname.lower(),
            "logger": record.name,
            "message": record.getMessage(),
        }
        if record.exc_info:
            payload["exc"] = self.formatException(record.exc_info)
        return json.dumps(payload)


def configure_logging(level: str = "info", fmt: str = "text") -> None:
    """Install a stderr handler on the root logger.

    Args:
        level: Level name (debug, info, warning, error, critical).
        fmt: ``"text"`` or ``"json"``.

    Raises:
        ValueError: If *level* or *fmt* is not recognised.
    """
    numeric = logging.getLevelNamesMapping().get(level.upper())
    if numeric is None:
        msg = f"Unknown log level: {level!r}"
        raise ValueError(msg)

    handler = logging.StreamHandler(sys.stderr)
    if fmt == "json":
        handler.setFormatter(JSONFormatter())
    elif fmt == "text":
        handler.setFormatter(logging.Formatter(_TEXT_FORMAT))
    else:
        msg = f"Unknown log format: {fmt!r} (expected 'text' or 'json')"
        raise ValueError(msg)

    root = logging.getLogger()
    root.handlers[:] = [handler]
    root.setLevel(numeric)
