"""Console output abstraction.

Services never print directly: they talk to a ``ConsoleProtocol``. The
production backend renders with Rich and filters by log level; the mock
backend records everything for assertions in tests.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum, IntEnum, auto
from typing import Protocol

__all__ = [
    "LogLevel",
    "Style",
    "ConsoleProtocol",
    "RichConsole",
    "MockConsole",
    "parse_log_level",
]


class LogLevel(IntEnum):
    """Verbosity threshold; messages below the console's level are dropped."""

    TRACE = 0
    DEBUG = 1
    INFO = 2
    WARN = 3
    ERROR = 4

    def __str__(self) -> str:
        return self.name.lower()


def parse_log_level(value: str) -> LogLevel | None:
    """Parse a level name ("debug", "Info", "WARN"); None if unknown."""
    try:
        return LogLevel[value.strip().upper()]
    except KeyError:
        return None


class Style(Enum):
    """Text styles for console output."""

    DEFAULT = auto()
    SUCCESS = auto()  # Green, positive message
    ERROR = auto()  # Red, error message
    WARNING = auto()  # Yellow, warning message
    INFO = auto()  # Cyan, informational
    DIM = auto()  # Muted text (commands, dry-run previews)
    BOLD = auto()
    HEADER = auto()  # Section header (one per repository)

    def __str__(self) -> str:
        return self.name.lower()


class ConsoleProtocol(Protocol):
    """Protocol for console output.

    ``print``/``success``/``info``/``header`` are info-level output;
    ``debug`` and ``trace`` are only shown when the configured level allows.
    """

    def print(self, message: str, style: Style = Style.DEFAULT) -> None:
        """Print a message with optional styling."""
        ...

    def success(self, message: str) -> None: ...

    def error(self, message: str) -> None: ...

    def warning(self, message: str) -> None: ...

    def info(self, message: str) -> None: ...

    def debug(self, message: str) -> None:
        """Print a diagnostic message (level DEBUG)."""
        ...

    def trace(self, message: str) -> None:
        """Print a very detailed diagnostic message (level TRACE)."""
        ...

    def header(self, message: str) -> None: ...

    def newline(self) -> None: ...


class RichConsole:
    """Console implementation using the Rich library."""

    def __init__(self, level: LogLevel = LogLevel.INFO) -> None:
        # Import Rich lazily to avoid import-time dependency
        from rich.console import Console

        self._console = Console(highlight=False)
        self.level = level
        self._style_map = {
            Style.DEFAULT: "",
            Style.SUCCESS: "green",
            Style.ERROR: "red bold",
            Style.WARNING: "yellow",
            Style.INFO: "cyan",
            Style.DIM: "dim",
            Style.BOLD: "bold",
            Style.HEADER: "blue bold",
        }

    def _enabled(self, level: LogLevel) -> bool:
        return level >= self.level

    def print(self, message: str, style: Style = Style.DEFAULT) -> None:
        if not self._enabled(LogLevel.INFO):
            return
        rich_style = self._style_map.get(style, "")
        # Command output and configuration dumps may contain brackets.
        if rich_style:
            self._console.print(message, style=rich_style, markup=False)
        else:
            self._console.print(message, markup=False)

    def success(self, message: str) -> None:
        if self._enabled(LogLevel.INFO):
            self._console.print(f"[green]OK[/green] {_escape(message)}")

    def error(self, message: str) -> None:
        if self._enabled(LogLevel.ERROR):
            self._console.print(f"[red bold]error:[/red bold] {_escape(message)}")

    def warning(self, message: str) -> None:
        if self._enabled(LogLevel.WARN):
            self._console.print(f"[yellow]warning:[/yellow] {_escape(message)}")

    def info(self, message: str) -> None:
        if self._enabled(LogLevel.INFO):
            self._console.print(f"[cyan]info:[/cyan] {_escape(message)}")

    def debug(self, message: str) -> None:
        if self._enabled(LogLevel.DEBUG):
            self._console.print(f"[dim]debug: {_escape(message)}[/dim]")

    def trace(self, message: str) -> None:
        if self._enabled(LogLevel.TRACE):
            self._console.print(f"[dim]trace: {_escape(message)}[/dim]")

    def header(self, message: str) -> None:
        if self._enabled(LogLevel.INFO):
            self._console.print(f"\n[blue bold]{_escape(message)}[/blue bold]")

    def newline(self) -> None:
        if self._enabled(LogLevel.INFO):
            self._console.print()


def _escape(message: str) -> str:
    from rich.markup import escape

    return escape(message)


@dataclass
class OutputRecord:
    """A single output record for MockConsole."""

    message: str
    style: Style
    level: LogLevel = LogLevel.INFO


def _empty_outputs() -> list[OutputRecord]:
    """Factory for empty outputs list (helps type inference)."""
    return []


@dataclass
class MockConsole:
    """Console implementation that captures output for testing.

    All levels are recorded; filter with ``at_level`` when a test cares.
    """

    outputs: list[OutputRecord] = field(default_factory=_empty_outputs)

    def print(self, message: str, style: Style = Style.DEFAULT) -> None:
        self.outputs.append(OutputRecord(message, style))

    def success(self, message: str) -> None:
        self.outputs.append(OutputRecord(f"OK {message}", Style.SUCCESS))

    def error(self, message: str) -> None:
        self.outputs.append(OutputRecord(f"error: {message}", Style.ERROR, LogLevel.ERROR))

    def warning(self, message: str) -> None:
        self.outputs.append(OutputRecord(f"warning: {message}", Style.WARNING, LogLevel.WARN))

    def info(self, message: str) -> None:
        self.outputs.append(OutputRecord(f"info: {message}", Style.INFO))

    def debug(self, message: str) -> None:
        self.outputs.append(OutputRecord(f"debug: {message}", Style.DIM, LogLevel.DEBUG))

    def trace(self, message: str) -> None:
        self.outputs.append(OutputRecord(f"trace: {message}", Style.DIM, LogLevel.TRACE))

    def header(self, message: str) -> None:
        self.outputs.append(OutputRecord(message, Style.HEADER))

    def newline(self) -> None:
        self.outputs.append(OutputRecord("", Style.DEFAULT))

    # Test helper methods

    def clear(self) -> None:
        """Clear all captured output."""
        self.outputs.clear()

    @property
    def messages(self) -> list[str]:
        """Get all output messages as a list of strings."""
        return [o.message for o in self.outputs]

    @property
    def text(self) -> str:
        """Get all output as a single newline-separated string."""
        return "\n".join(self.messages)

    def has_error(self) -> bool:
        return any(o.style == Style.ERROR for o in self.outputs)

    def has_warning(self) -> bool:
        return any(o.style == Style.WARNING for o in self.outputs)

    def find(self, substring: str) -> list[OutputRecord]:
        """Find all outputs containing a substring."""
        return [o for o in self.outputs if substring in o.message]

    def at_level(self, level: LogLevel) -> list[str]:
        """Messages that a console configured at ``level`` would show."""
        return [o.message for o in self.outputs if o.level >= level]
