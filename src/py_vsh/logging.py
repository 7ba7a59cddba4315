"""Session audit log for the shell.

A shell driven by an untrusted script deserves a record of what it did:
which top-level lines ran, which functions were defined, which resource
limits tripped, and which commands blew up.  That record stays in
memory and never reaches the shell's own stdout or stderr.

- **LogLevel** orders severities so ``min_level`` filtering is a plain
  comparison.
- **LogEntry** is one immutable record, tagged with the part of the
  shell that produced it (``shell``, ``guard`` or ``dispatch``) and the
  function call depth at the time.
- **Logger** is the buffer.  With a ``capacity`` it behaves like a ring
  and keeps only the newest entries.

Design choices:
    - **In memory, not ``logging``.**  The host reads entries back (the
      HTTP API serves them), so they stay as values rather than text
      handed to handlers.
    - **Bounded on request.**  A long-lived session can cap its memory
      use without changing any caller.
"""

from collections import deque
from dataclasses import dataclass
from enum import IntEnum


class LogLevel(IntEnum):
    """How serious an event is; higher values are more severe."""

    DEBUG = 0
    INFO = 1
    WARNING = 2
    ERROR = 3


@dataclass(frozen=True)
class LogEntry:
    """One audit record.

    Attributes:
        level: How serious the event is.
        message: What happened, in one line.
        source: Which part of the shell reported it.
        depth: Active function calls when it happened.

    """

    level: LogLevel
    message: str
    source: str
    depth: int = 0

    def __str__(self) -> str:
        """Render as ``[LEVEL] source: message``."""
        return f"[{self.level.name}] {self.source}: {self.message}"


class Logger:
    """Audit buffer shared by one shell session."""

    def __init__(self, *, capacity: int | None = None) -> None:
        """Create an empty buffer.

        Args:
            capacity: Keep at most this many of the newest entries;
                ``None`` keeps everything.

        """
        self._entries: deque[LogEntry] = deque(maxlen=capacity)

    @property
    def entries(self) -> list[LogEntry]:
        """Return a copy of every entry, oldest first."""
        return list(self._entries)

    def log(self, level: LogLevel, message: str, *, source: str, depth: int = 0) -> None:
        """Record one event, dropping the oldest entry when full."""
        self._entries.append(LogEntry(level, message, source, depth))

    def filter(
        self,
        *,
        min_level: LogLevel | None = None,
        source: str | None = None,
    ) -> list[LogEntry]:
        """Select entries by severity and origin.

        Args:
            min_level: Keep entries at this level or above.
            source: Keep entries reported by this part of the shell.

        Returns:
            The matching entries, oldest first, as a new list.

        """
        return [
            entry
            for entry in self._entries
            if (min_level is None or entry.level >= min_level)
            and (source is None or entry.source == source)
        ]

    def clear(self) -> None:
        """Forget every entry."""
        self._entries.clear()
