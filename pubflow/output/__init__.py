"""Output abstraction layer."""

from .console import (
    ConsoleProtocol,
    LogLevel,
    MockConsole,
    RichConsole,
    Style,
    parse_log_level,
)

__all__ = [
    "ConsoleProtocol",
    "LogLevel",
    "MockConsole",
    "RichConsole",
    "Style",
    "parse_log_level",
]
