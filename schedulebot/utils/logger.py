"""
Logger Utility
==============

Leveled, context-prefixed logging for the scheduling bot.

Every component creates its own logger with a short context name, so a
single request can be followed across the agent, the gateway and the tools:

    [2026-10-18T14:02:11] [INFO] [Agent] Running scheduling agent...
    [2026-10-18T14:02:11] [INFO] [Gateway] Connecting to tool server...
    [2026-10-18T14:02:12] [WARN] [Gateway] Tool discovery failed

Usage:
    from schedulebot.utils.logger import Logger

    logger = Logger("Gateway")
    logger.info("Connected", {"session": "slack_agent_..."})

    conn_logger = logger.child("Session")
    conn_logger.debug("Closing")
"""

import json
import os
import sys
from datetime import datetime
from enum import IntEnum
from typing import Any


class LogLevel(IntEnum):
    """Log levels, ordered by severity."""
    DEBUG = 10
    INFO = 20
    WARNING = 30
    ERROR = 40


class Colors:
    """ANSI escape codes for colored terminal output."""
    RESET = "\033[0m"
    DEBUG = "\033[36m"    # Cyan
    INFO = "\033[32m"     # Green
    WARNING = "\033[33m"  # Yellow
    ERROR = "\033[31m"    # Red
    DIM = "\033[2m"


_LEVELS = {
    "DEBUG": LogLevel.DEBUG,
    "INFO": LogLevel.INFO,
    "WARNING": LogLevel.WARNING,
    "WARN": LogLevel.WARNING,
    "ERROR": LogLevel.ERROR,
}


def _parse_level(name: str | None) -> LogLevel:
    return _LEVELS.get((name or "INFO").upper(), LogLevel.INFO)


# Shared by every Logger; set_log_level() changes it for loggers created earlier too
_min_level = _parse_level(os.getenv("LOG_LEVEL"))


def set_log_level(name: str | None) -> LogLevel:
    """
    Set the minimum level for all loggers.

    Unknown names fall back to INFO. Called once the configuration (and
    with it the .env file) has been loaded.
    """
    global _min_level
    _min_level = _parse_level(name)
    return _min_level


def mask_email(email: str | None) -> str:
    """
    Shorten an email address for log output.

    Only the first three characters of the local part are kept:
    "jane.doe@example.com" becomes "jan***@example.com".
    """
    if not email:
        return "none"
    local, _, domain = email.partition("@")
    masked = f"{local[:3]}***"
    return f"{masked}@{domain}" if domain else masked


class Logger:
    """
    A context-aware logger with colored output.

    Supports debug/info/warning/error levels, an optional dict of structured
    data per record (printed as JSON below the line) and child loggers that
    extend the context prefix.

    Example:
        logger = Logger("Agent")
        logger.info("Request started")

        tools = logger.child("Tools")
        tools.debug("Executing", {"tool": "convert_timezone"})
        # [Agent:Tools] Executing
    """

    def __init__(self, context: str = ""):
        self.context = context

    def child(self, child_context: str) -> "Logger":
        """Create a logger whose context is `<parent>:<child_context>`."""
        new_context = f"{self.context}:{child_context}" if self.context else child_context
        return Logger(new_context)

    def is_enabled_for(self, level: LogLevel) -> bool:
        return level >= _min_level

    def _format_message(self, level: str, message: str, color: str) -> str:
        timestamp = datetime.now().isoformat(timespec="seconds")
        context_str = f"[{self.context}] " if self.context else ""

        return (
            f"{Colors.DIM}[{timestamp}]{Colors.RESET} "
            f"{color}[{level}]{Colors.RESET} "
            f"{context_str}{message}"
        )

    def _log(
        self,
        level: LogLevel,
        level_name: str,
        color: str,
        message: str,
        data: dict[str, Any] | None = None
    ) -> None:
        if not self.is_enabled_for(level):
            return

        # Warnings and errors go to stderr so they survive stdout redirection
        stream = sys.stderr if level >= LogLevel.WARNING else sys.stdout
        print(self._format_message(level_name, message, color), file=stream)

        if data:
            data_str = json.dumps(data, indent=2, default=str)
            print(f"{Colors.DIM}{data_str}{Colors.RESET}", file=stream)

    def debug(self, message: str, data: dict[str, Any] | None = None) -> None:
        """Log a debug message. Only shown when LOG_LEVEL=DEBUG."""
        self._log(LogLevel.DEBUG, "DEBUG", Colors.DEBUG, message, data)

    def info(self, message: str, data: dict[str, Any] | None = None) -> None:
        """Log an operational message."""
        self._log(LogLevel.INFO, "INFO", Colors.INFO, message, data)

    def warning(self, message: str, data: dict[str, Any] | None = None) -> None:
        """Log a recoverable problem (degraded mode, failed cleanup, ...)."""
        self._log(LogLevel.WARNING, "WARN", Colors.WARNING, message, data)

    def error(self, message: str, error: BaseException | None = None) -> None:
        """
        Log an error message.

        Args:
            message: What failed
            error: Optional exception; its type and message are attached
        """
        data = None
        if error is not None:
            data = {
                "error_type": type(error).__name__,
                "error_message": str(error),
            }
            if error.__cause__ is not None:
                data["caused_by"] = f"{type(error.__cause__).__name__}: {error.__cause__}"
        self._log(LogLevel.ERROR, "ERROR", Colors.ERROR, message, data)


# Default logger for code without a more specific context
logger = Logger("ScheduleBot")
