"""Structured logging configuration using structlog.

The dashboard owns the terminal, so nothing is logged to the console. Logs go
to a rotating JSON file. In debug mode the HTTP wire log is also written as
plain text to ``picotui.log`` in the working directory.
"""

from __future__ import annotations

import logging
from collections.abc import MutableMapping
from datetime import datetime, timedelta
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any

import structlog

# Log file configuration
LOG_DIR = Path.home() / ".local" / "state" / "picotui"
LOG_FILE = LOG_DIR / "picotui.log"
MAX_LOG_SIZE = 1024 * 1024  # 1 MB
BACKUP_COUNT = 3
RETENTION_DAYS = 30  # Delete logs older than 30 days

# Debug wire log, truncated on every debug start
WIRE_LOGGER_NAME = "picotui.wire"
WIRE_LOG_FILE = Path("picotui.log")


def _cleanup_old_logs() -> None:
    """Delete log files older than RETENTION_DAYS."""
    if not LOG_DIR.exists():
        return
    cutoff = datetime.now() - timedelta(days=RETENTION_DAYS)
    for log_file in LOG_DIR.glob("picotui.log*"):
        try:
            if datetime.fromtimestamp(log_file.stat().st_mtime) < cutoff:
                log_file.unlink()
        except OSError:
            continue


def _shared_processors() -> list[structlog.types.Processor]:
    return [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
    ]


def _setup_file_logging() -> None:
    """Set up rotating file handler for persistent logging."""
    LOG_DIR.mkdir(parents=True, exist_ok=True)
    _cleanup_old_logs()

    file_handler = RotatingFileHandler(
        LOG_FILE,
        maxBytes=MAX_LOG_SIZE,
        backupCount=BACKUP_COUNT,
    )
    file_handler.setLevel(logging.DEBUG)
    file_handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            processor=structlog.processors.JSONRenderer(),
            foreign_pre_chain=_shared_processors(),
        )
    )

    logging.getLogger().addHandler(file_handler)


def render_wire_line(
    _logger: Any, _method_name: str, event_dict: MutableMapping[str, Any]
) -> str:
    """Render a wire log entry as ``[HH:MM:SS.mmm] message``."""
    stamp = datetime.now().strftime("%H:%M:%S.%f")[:-3]
    return f"[{stamp}] {event_dict.get('event', '')}"


def _setup_wire_logging(wire_log_file: Path) -> None:
    """Truncate the wire log and attach a plain-text handler to the wire logger."""
    wire_log_file.write_text("", encoding="utf-8")

    handler = logging.FileHandler(wire_log_file, mode="a", encoding="utf-8")
    handler.setLevel(logging.DEBUG)
    handler.setFormatter(structlog.stdlib.ProcessorFormatter(processor=render_wire_line))

    wire_logger = logging.getLogger(WIRE_LOGGER_NAME)
    wire_logger.setLevel(logging.DEBUG)
    wire_logger.propagate = False
    wire_logger.addHandler(handler)


def configure_logging(debug: bool = False, wire_log_file: Path | None = None) -> None:
    """Configure structured logging for the application.

    File logs are stored at ~/.local/state/picotui/picotui.log with automatic
    rotation (1MB max, 3 backups) and retention cleanup (30 days).

    Args:
        debug: Enable debug level and the HTTP wire log.
        wire_log_file: Wire log location, defaults to ./picotui.log.
    """
    log_level = logging.DEBUG if debug else logging.INFO

    structlog.configure(
        processors=[
            *_shared_processors(),
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(log_level),
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    root_logger = logging.getLogger()
    root_logger.setLevel(logging.DEBUG)  # Let handlers filter

    _setup_file_logging()

    # Without debug the wire logger never gets a handler, and it must not
    # propagate its request bodies into the JSON log.
    wire_logger = logging.getLogger(WIRE_LOGGER_NAME)
    wire_logger.propagate = False
    if debug:
        _setup_wire_logging(wire_log_file or WIRE_LOG_FILE)


def get_logger(name: str | None = None, **initial_context: Any) -> structlog.BoundLogger:
    """Get a configured logger with optional initial context.

    Args:
        name: Logger name. If None, uses the calling module's name.
        **initial_context: Initial context variables to bind to the logger.

    Returns:
        A bound structlog logger.
    """
    logger: structlog.BoundLogger = structlog.get_logger(name)
    if initial_context:
        logger = logger.bind(**initial_context)
    return logger
