"""
Logging infrastructure for SupplyLink.

Provides:
- Structured JSON logging for file output
- Rich console output for terminal
- Contextual logging with user/role/state context
"""

from __future__ import annotations

import logging
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import TYPE_CHECKING, Any

import orjson

if TYPE_CHECKING:
    from rich.console import Console


# Context attributes copied from log records into JSON lines
CONTEXT_FIELDS = ("user_id", "role", "state", "item", "requirement_id", "error_code")


def json_dumps(obj: Any) -> str:
    return orjson.dumps(obj, default=str).decode("utf-8")


# =============================================================================
# JSON Formatter for File Logging
# =============================================================================


class JSONFormatter(logging.Formatter):
    """Format log records as JSON lines."""

    def format(self, record: logging.LogRecord) -> str:
        log_data = {
            "timestamp": datetime.now(timezone.utc).isoformat().replace("+00:00", "Z"),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        for key in CONTEXT_FIELDS:
            if hasattr(record, key):
                log_data[key] = getattr(record, key)

        return json_dumps(log_data)


# =============================================================================
# Rich Console Handler
# =============================================================================


class RichConsoleHandler(logging.Handler):
    """Handler that outputs to Rich console with formatting."""

    def __init__(self, console: "Console | None" = None, level: int = logging.INFO):
        super().__init__(level)
        if console is None:
            from rich.console import Console
            console = Console(stderr=True)
        self.console = console

    def emit(self, record: logging.LogRecord) -> None:
        try:
            message = self.format(record)

            style = {
                logging.DEBUG: "dim",
                logging.INFO: "default",
                logging.WARNING: "yellow",
                logging.ERROR: "red",
                logging.CRITICAL: "bold red",
            }.get(record.levelno, "default")

            prefix = ""
            if hasattr(record, "user_id"):
                role = getattr(record, "role", None)
                label = f"{record.user_id}/{role}" if role else str(record.user_id)
                prefix = f"[cyan][{label}][/cyan] "

            self.console.print(f"{prefix}[{style}]{message}[/{style}]", highlight=False)

            if record.exc_info:
                self.console.print_exception()

        except Exception:
            self.handleError(record)


# =============================================================================
# Logger Configuration
# =============================================================================


def setup_logging(
    level: str = "INFO",
    log_file: Path | str | None = None,
    json_format: bool = True,
    rich_console: bool = True,
    console_level: str | None = None,
) -> logging.Logger:
    """Set up logging for SupplyLink.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR)
        log_file: Path to log file (optional)
        json_format: Use JSON format for file logs
        rich_console: Use Rich for console output
        console_level: Threshold for the console handler (default: level)

    Returns:
        Root logger for supplylink
    """
    logger = logging.getLogger("supplylink")
    logger.setLevel(getattr(logging, level.upper()))

    # Clear existing handlers
    logger.handlers.clear()

    if rich_console:
        console_handler: logging.Handler = RichConsoleHandler()
        console_handler.setFormatter(logging.Formatter("%(message)s"))
    else:
        console_handler = logging.StreamHandler(sys.stderr)
        console_handler.setFormatter(
            logging.Formatter("%(asctime)s [%(levelname)s] %(name)s: %(message)s")
        )
    console_handler.setLevel(getattr(logging, (console_level or level).upper()))
    logger.addHandler(console_handler)

    if log_file:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)

        file_handler = logging.FileHandler(log_path, encoding="utf-8")
        file_handler.setLevel(logging.DEBUG)  # Capture all levels to file

        if json_format:
            file_handler.setFormatter(JSONFormatter())
        else:
            file_handler.setFormatter(
                logging.Formatter(
                    "%(asctime)s [%(levelname)s] %(name)s: %(message)s",
                    datefmt="%Y-%m-%d %H:%M:%S",
                )
            )

        logger.addHandler(file_handler)

    return logger


def get_logger(name: str | None = None) -> logging.Logger:
    """Get a logger instance.

    Args:
        name: Logger name (will be prefixed with 'supplylink.')

    Returns:
        Logger instance
    """
    if name:
        if name == "supplylink" or name.startswith("supplylink."):
            return logging.getLogger(name)
        return logging.getLogger(f"supplylink.{name}")
    return logging.getLogger("supplylink")


# =============================================================================
# Contextual Logging Adapter
# =============================================================================


class ContextualLogger(logging.LoggerAdapter):
    """Logger adapter that adds caller context to log records."""

    def __init__(
        self,
        logger: logging.Logger,
        user_id: str | None = None,
        role: str | None = None,
        state: str | None = None,
    ):
        super().__init__(logger, {})
        self.user_id = user_id
        self.role = role
        self.state = state

    def process(self, msg: str, kwargs: dict[str, Any]) -> tuple[str, dict[str, Any]]:
        extra = dict(kwargs.get("extra") or {})

        if self.user_id:
            extra.setdefault("user_id", self.user_id)
        if self.role:
            extra.setdefault("role", self.role)
        if self.state:
            extra.setdefault("state", self.state)

        kwargs["extra"] = extra
        return msg, kwargs


def get_contextual_logger(
    name: str | None = None,
    user_id: str | None = None,
    role: str | None = None,
    state: str | None = None,
) -> ContextualLogger:
    """Get a contextual logger bound to a caller.

    Args:
        name: Logger name
        user_id: Caller's user ID
        role: Caller's marketplace role
        state: Caller's state

    Returns:
        ContextualLogger instance
    """
    return ContextualLogger(get_logger(name), user_id=user_id, role=role, state=state)
