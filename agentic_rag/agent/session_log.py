"""Append-only, timestamped trace of orchestration decisions."""

import logging
from dataclasses import dataclass, field
from datetime import datetime

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LogEntry:
    message: str
    timestamp: datetime = field(default_factory=datetime.now)

    def __str__(self) -> str:
        return f"{self.timestamp.strftime('%H:%M:%S')}: {self.message}"


class SessionLog:
    """Human-readable session trace, mirrored to the logging module.

    Entries are only ever appended; the whole log is cleared on a new session.
    """

    def __init__(self, entries: list[LogEntry] | None = None):
        self._entries: list[LogEntry] = list(entries or [])

    def append(self, message: str) -> LogEntry:
        entry = LogEntry(message=message)
        self._entries.append(entry)
        logger.info(message)
        return entry

    def entries(self) -> tuple[LogEntry, ...]:
        return tuple(self._entries)

    def lines(self) -> list[str]:
        return [str(e) for e in self._entries]

    def clear(self) -> None:
        self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)
