"""In-memory ring-buffer log handler behind the admin logs endpoint.

Captures log records from every Python logger in the process and keeps the
most recent *maxlen* entries, each tagged with the id of the request that was
being handled when it was emitted.
"""

from __future__ import annotations

import logging
from collections import deque
from contextvars import ContextVar
from datetime import datetime, timezone
from typing_extensions import TypedDict

request_id_ctx: ContextVar[str | None] = ContextVar("request_id", default=None)


class LogEntry(TypedDict):
    ts: str  # ISO-8601 timestamp
    level: str
    logger: str
    message: str
    request_id: str | None


class RingBufferHandler(logging.Handler):
    """Logging handler that stores formatted records in a bounded deque."""

    def __init__(self, maxlen: int = 2000) -> None:
        super().__init__()
        self.records: deque[LogEntry] = deque(maxlen=maxlen)

    def emit(self, record: logging.LogRecord) -> None:
        self.records.append(
            {
                "ts": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
                "level": record.levelname,
                "logger": record.name,
                "message": self.format(record),
                "request_id": request_id_ctx.get(),
            }
        )

    def get_entries(
        self,
        limit: int = 200,
        level: str | None = None,
        logger_name: str | None = None,
        request_id: str | None = None,
    ) -> list[LogEntry]:
        """Return the most recent entries (oldest first), optionally filtered."""
        out: list[LogEntry] = []
        for entry in reversed(self.records):
            if level and entry["level"] != level.upper():
                continue
            if logger_name and logger_name not in entry["logger"]:
                continue
            if request_id and entry["request_id"] != request_id:
                continue
            out.append(entry)
            if len(out) >= limit:
                break
        out.reverse()
        return out

    def clear(self) -> None:
        self.records.clear()


# Singleton, importable from anywhere.
log_handler = RingBufferHandler()
