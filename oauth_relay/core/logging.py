"""Logging configuration for oauth-relay.

The relay has no database and no UI of its own, so logs are the main way
to answer "why did this user land on reason=storage_failed?".  Two
formatters are provided:

  _ContainerFormatter: single-line text for a developer's terminal.

  _JsonFormatter: JSON lines for a log aggregator.  Fields passed via
    ``extra=`` (request_id, has_code, oauth_step, ...) become top-level
    keys, so a query like ``oauth_outcome == "storage_failed"`` works
    without regex parsing.

Set LOG_JSON=true in production to switch to JSON output.

What never goes into a log line: authorization codes, the ``state`` value,
access/refresh tokens, the client secret and the internal API key.  Only
their presence (has_code, has_state) is recorded.
"""

from __future__ import annotations

import json
import logging
import sys
from datetime import UTC, datetime


def _utc_timestamp(record: logging.LogRecord) -> str:
    return datetime.fromtimestamp(record.created, tz=UTC).isoformat(timespec="milliseconds")


class _ContainerFormatter(logging.Formatter):
    """One line per record; WARNING and above also get [file:line].

    A request id stamped by the request-context filter is shown as
    ``rid=...`` so the lines of one callback can be grepped together.
    """

    def format(self, record: logging.LogRecord) -> str:
        parts = [_utc_timestamp(record), f"{record.levelname:<8}", record.name]
        request_id = getattr(record, "request_id", "-")
        if request_id != "-":
            parts.append(f"rid={request_id}")
        line = " ".join(parts) + "  " + record.getMessage()
        if record.levelno >= logging.WARNING:
            line += f"  [{record.filename}:{record.lineno}]"
        if record.exc_info and record.exc_info[0] is not None:
            line += "\n" + self.formatException(record.exc_info)
        return line


class _JsonFormatter(logging.Formatter):
    """JSON Lines formatter for machine-parseable log output."""

    # Request fields come from RequestContextMiddleware, oauth_* and has_*
    # fields from the callback flow.
    _CONTEXT_FIELDS = (
        "request_id",
        "method",
        "path",
        "status_code",
        "duration_ms",
        "has_code",
        "has_state",
        "has_error",
        "oauth_step",
        "oauth_outcome",
        "upstream_status",
    )

    def format(self, record: logging.LogRecord) -> str:
        log_entry: dict[str, object] = {
            "timestamp": _utc_timestamp(record),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        for key in self._CONTEXT_FIELDS:
            value = getattr(record, key, None)
            if value is not None:
                log_entry[key] = value

        if record.exc_info and record.exc_info[0] is not None:
            log_entry["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_entry, default=str)


def setup_logging(level_name: str, *, json_format: bool = False) -> None:
    """Configure the root logger for container environments.

    Args:
        level_name: Log level string (debug/info/warning/error)
        json_format: If True, emit JSON lines. If False, human-readable.
                     Controlled by LOG_JSON in Settings.
    """
    level = getattr(logging, level_name.upper(), logging.INFO)

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(_JsonFormatter() if json_format else _ContainerFormatter())

    root = logging.getLogger()
    root.setLevel(level)
    root.handlers.clear()
    root.addHandler(handler)

    # httpx logs full request URLs at INFO; keep it and uvicorn at WARNING+
    for name in ("uvicorn", "uvicorn.access", "uvicorn.error", "httpcore", "httpx"):
        logging.getLogger(name).setLevel(max(level, logging.WARNING))
