"""
Engine Logger

Bounded in-memory trace of engine events (descriptors created, accessors
compiled, resolution misses, conversion and construction failures) with
optional Rich console output and JSON/CSV export.
"""

import csv
import json
from collections import deque
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Any

from rich.console import Console


class LogLevel(Enum):
    """Log level for entries."""
    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"

    @property
    def rank(self) -> int:
        return list(LogLevel).index(self)

    @classmethod
    def from_string(cls, level_str: str) -> "LogLevel":
        try:
            return cls(level_str.strip().upper())
        except ValueError:
            raise ValueError(f"Unknown log level: {level_str}") from None


class TraceEvent(Enum):
    """Engine events recorded in the trace."""
    DESCRIPTOR_CREATED = "descriptor_created"
    ACCESSOR_COMPILED = "accessor_compiled"
    RESOLUTION_MISS = "resolution_miss"
    CONVERSION_FAILED = "conversion_failed"
    CONSTRUCTION_FAILED = "construction_failed"
    CACHE_CLEARED = "cache_cleared"


@dataclass
class TraceEntry:
    """A single trace entry."""

    timestamp: str
    level: LogLevel
    event: TraceEvent
    subject: str            # Type or member the event is about
    message: str = ""

    def to_dict(self) -> dict[str, Any]:
        return {
            "timestamp": self.timestamp,
            "level": self.level.value,
            "event": self.event.value,
            "subject": self.subject,
            "message": self.message,
        }


@dataclass
class CacheSummary:
    """Snapshot of engine counters."""

    taken_at: datetime
    caches: dict[str, dict[str, Any]] = field(default_factory=dict)
    events: dict[str, int] = field(default_factory=dict)

    @property
    def total_entries(self) -> int:
        return sum(c.get("entries", 0) for c in self.caches.values())

    def to_text(self) -> str:
        """Generate human-readable summary."""
        lines = [
            "=" * 60,
            "RUNTIME CACHE SUMMARY",
            "=" * 60,
            f"{'Taken:':<20} {self.taken_at.strftime('%Y-%m-%d %H:%M:%S')}",
            f"{'Cached entries:':<20} {self.total_entries:,}",
            "",
            "CACHES",
            "-" * 40,
        ]

        for name, info in sorted(self.caches.items()):
            lines.append(
                f"  {name:<18} {info.get('entries', 0):>6,} entries"
                f"  {info.get('hit_rate', 0.0):>5.1f}% hits"
            )

        if self.events:
            lines.extend([
                "",
                "EVENTS",
                "-" * 40,
            ])
            for event, count in sorted(self.events.items(), key=lambda x: -x[1]):
                lines.append(f"  {event}: {count}")

        lines.append("=" * 60)
        return "\n".join(lines)


class EngineLogger:
    """
    Trace buffer for engine diagnostics.

    Settings left as None are read from the active configuration on every
    call, so ``configure()`` takes effect immediately.

    Example:
        >>> logger = EngineLogger(buffer_size=100, console_output=False)
        >>> logger.trace(TraceEvent.RESOLUTION_MISS, "User.nickname")
        >>> logger.get_entries(TraceEvent.RESOLUTION_MISS)
    """

    def __init__(
        self,
        buffer_size: int | None = None,
        console_output: bool | None = None,
        level: LogLevel | None = None,
    ):
        """
        Initialize logger.

        Args:
            buffer_size: Maximum number of retained entries (oldest dropped first)
            console_output: Whether to print entries to the console
            level: Minimum level that is recorded
        """
        self._buffer_size = buffer_size
        self._console_output = console_output
        self._level = level
        self._entries: deque[TraceEntry] = deque(maxlen=self.buffer_size)
        self._counts: dict[str, int] = {}
        self._console = Console(stderr=True)

    # -------------------------------------------------------------------------
    # Settings
    # -------------------------------------------------------------------------

    @staticmethod
    def _settings():
        from runtime_stuff.config import get_config

        return get_config().logging

    @property
    def buffer_size(self) -> int:
        if self._buffer_size is not None:
            return self._buffer_size
        return self._settings().buffer_size

    @property
    def console_output(self) -> bool:
        if self._console_output is not None:
            return self._console_output
        return self._settings().console

    @property
    def level(self) -> LogLevel:
        if self._level is not None:
            return self._level
        return LogLevel.from_string(self._settings().level)

    @property
    def enabled(self) -> bool:
        return self._settings().trace_enabled

    # -------------------------------------------------------------------------
    # Recording
    # -------------------------------------------------------------------------

    def trace(
        self,
        event: TraceEvent,
        subject: str,
        message: str = "",
        level: LogLevel = LogLevel.DEBUG,
    ) -> None:
        """
        Record an engine event.

        Args:
            event: What happened
            subject: Type or member the event is about
            message: Optional detail
            level: Entry level; entries below the configured level are dropped
        """
        self._counts[event.value] = self._counts.get(event.value, 0) + 1
        if not self.enabled or level.rank < self.level.rank:
            return

        if self._entries.maxlen != self.buffer_size:
            self._entries = deque(self._entries, maxlen=self.buffer_size)

        entry = TraceEntry(
            timestamp=datetime.now().isoformat(),
            level=level,
            event=event,
            subject=subject,
            message=message,
        )
        self._entries.append(entry)
        self._log_message(entry)

    def warning(self, event: TraceEvent, subject: str, message: str = "") -> None:
        self.trace(event, subject, message, LogLevel.WARNING)

    def error(self, event: TraceEvent, subject: str, message: str = "") -> None:
        self.trace(event, subject, message, LogLevel.ERROR)

    # -------------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------------

    @property
    def entries(self) -> list[TraceEntry]:
        return list(self._entries)

    def get_entries(
        self,
        event: TraceEvent | None = None,
        level: LogLevel | None = None,
    ) -> list[TraceEntry]:
        """Entries filtered by event and/or exact level."""
        return [
            e for e in list(self._entries)
            if (event is None or e.event == event) and (level is None or e.level == level)
        ]

    def count(self, event: TraceEvent) -> int:
        """Occurrences of ``event`` since the last clear, including unrecorded ones."""
        return self._counts.get(event.value, 0)

    def summary(self) -> CacheSummary:
        from runtime_stuff.core.members.cache import registry

        return CacheSummary(
            taken_at=datetime.now(),
            caches=registry.get_cache_info(),
            events=dict(self._counts),
        )

    def clear(self) -> None:
        self._entries.clear()
        self._counts.clear()

    # -------------------------------------------------------------------------
    # Export
    # -------------------------------------------------------------------------

    def export_json(self, filepath: str | Path) -> Path:
        """
        Export the trace and counters to a JSON file.

        Args:
            filepath: Output path

        Returns:
            Path to exported file
        """
        output_path = Path(filepath)
        output_path.parent.mkdir(parents=True, exist_ok=True)

        data = {
            "exported_at": datetime.now().isoformat(),
            "events": dict(self._counts),
            "entries": [e.to_dict() for e in list(self._entries)],
        }

        with open(output_path, "w", encoding="utf-8") as f:
            json.dump(data, f, indent=2, ensure_ascii=False)

        return output_path

    def export_csv(self, filepath: str | Path) -> Path:
        """
        Export the trace to a CSV file.

        Args:
            filepath: Output path

        Returns:
            Path to exported file
        """
        output_path = Path(filepath)
        output_path.parent.mkdir(parents=True, exist_ok=True)

        fieldnames = ["timestamp", "level", "event", "subject", "message"]

        with open(output_path, "w", newline="", encoding="utf-8") as f:
            writer = csv.DictWriter(f, fieldnames=fieldnames)
            writer.writeheader()
            for entry in list(self._entries):
                writer.writerow(entry.to_dict())

        return output_path

    def _log_message(self, entry: TraceEntry) -> None:
        """Log an entry to console."""
        if not self.console_output:
            return

        timestamp = datetime.now().strftime("%H:%M:%S")
        colors = {
            LogLevel.DEBUG: "dim",
            LogLevel.INFO: "blue",
            LogLevel.WARNING: "yellow",
            LogLevel.ERROR: "red bold",
        }
        color = colors.get(entry.level, "white")
        detail = f" {entry.message}" if entry.message else ""
        self._console.print(
            f"[dim]{timestamp}[/] [{color}]{entry.level.value}[/] "
            f"{entry.event.value} [bold]{entry.subject}[/]{detail}",
            markup=True,
            highlight=False,
        )


_logger: EngineLogger | None = None


def get_logger() -> EngineLogger:
    """Process-wide engine logger."""
    global _logger
    if _logger is None:
        _logger = EngineLogger()
    return _logger
