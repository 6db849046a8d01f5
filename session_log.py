"""
Operator-facing session log.
Append-only list of messages plus the background color the station UI shows.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Callable, List, Optional


class Severity(Enum):
    SUCCESS = "#00CC66"
    ERROR = "#FF6666"

    @property
    def color(self) -> str:
        return self.value


DEFAULT_BACKGROUND = "#ffffff"


@dataclass(frozen=True)
class LogEntry:
    text: str
    severity: Optional[Severity] = None

    def to_dict(self):
        return {
            "text": self.text,
            "severity": self.severity.name.lower() if self.severity else None,
            "color": self.severity.color if self.severity else None,
        }


class SessionLog:
    """In-memory sink; recording never fails."""

    def __init__(self):
        self._entries: List[LogEntry] = []
        self._background = DEFAULT_BACKGROUND
        self._listeners: List[Callable[[LogEntry], None]] = []

    @property
    def entries(self) -> List[LogEntry]:
        return list(self._entries)

    @property
    def messages(self) -> List[str]:
        return [e.text for e in self._entries]

    @property
    def background(self) -> str:
        return self._background

    def subscribe(self, listener: Callable[[LogEntry], None]) -> None:
        self._listeners.append(listener)

    def record(self, text: str, severity: Optional[Severity] = None) -> LogEntry:
        entry = LogEntry(text, severity)
        self._entries.append(entry)
        # Untagged progress messages keep the current color
        if severity is not None:
            self._background = severity.color
        for listener in list(self._listeners):
            try:
                listener(entry)
            except Exception as e:
                logging.warning(f"Session log listener failed: {e}")
        return entry

    def success(self, text: str) -> LogEntry:
        return self.record(text, Severity.SUCCESS)

    def error(self, message: str) -> LogEntry:
        return self.record(f"Error: {message} ❌", Severity.ERROR)

    def clear(self) -> None:
        self._entries.clear()
        self._background = DEFAULT_BACKGROUND
