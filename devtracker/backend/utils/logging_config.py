"""Logging Configuration for the developer post tracker

This module provides centralized logging configuration using structlog with JSON output.
Both processes (the HTTP API and the ingestion worker) call setup_logging() once at
startup, each with its own log file.

Usage:
    >>> from devtracker.backend.utils.logging_config import setup_logging
    >>> setup_logging(log_filename="worker.log")
    >>> import structlog
    >>> logger = structlog.get_logger()
    >>> logger.info("job_started", job_id="12", game="rainbow6")
    >>> logger.error("post_submit_failed", exc_info=True, job_id="12")
"""

import logging
import os
import sys
from pathlib import Path
from typing import Optional

import structlog


def _resolve_level(level: Optional[str], default: int) -> int:
    """Map a level name such as "debug" to its logging constant."""
    if not level:
        return default
    resolved = logging.getLevelName(level.strip().upper())
    return resolved if isinstance(resolved, int) else default


def setup_logging(
    log_dir: str = "logs",
    log_filename: str = "devtracker.log",
    console_level: Optional[str] = None,
) -> None:
    """Configure structlog with JSON renderer, file output and console output.

    Sets up both Python stdlib logging and structlog so that structlog events and
    plain stdlib records (uvicorn, requests, redis) end up as JSON lines in the
    same handlers. Creates the log directory if it doesn't exist.

    Args:
        log_dir: Directory for log files, relative to current working directory (default: "logs")
        log_filename: Name of the log file (default: "devtracker.log")
        console_level: Console log level name; falls back to the LOG_LEVEL
            environment variable, then INFO

    Log entry format (JSON):
        {
            "event": "job_started",
            "level": "info",
            "timestamp": "2026-02-10T12:34:56.789Z",
            "logger": "devtracker.backend.queue",
            ...additional context fields...
        }
    """
    log_path = Path(log_dir)
    log_path.mkdir(parents=True, exist_ok=True)
    log_file = log_path / log_filename

    shared_processors = [
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.format_exc_info,
        structlog.processors.StackInfoRenderer(),
    ]

    structlog.configure(
        processors=shared_processors + [
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    # Final JSON rendering happens in the stdlib formatter
    formatter = structlog.stdlib.ProcessorFormatter(
        processor=structlog.processors.JSONRenderer(),
        foreign_pre_chain=shared_processors,
    )

    file_handler = logging.FileHandler(str(log_file), encoding="utf-8")
    file_handler.setLevel(logging.DEBUG)
    file_handler.setFormatter(formatter)

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(
        _resolve_level(console_level or os.environ.get("LOG_LEVEL"), logging.INFO)
    )
    console_handler.setFormatter(formatter)

    root_logger = logging.getLogger()
    root_logger.setLevel(logging.DEBUG)
    root_logger.handlers.clear()
    root_logger.addHandler(file_handler)
    root_logger.addHandler(console_handler)

    # urllib3 logs every connection at DEBUG
    logging.getLogger("urllib3").setLevel(logging.INFO)


def get_logger(name: str = None):
    """Get a configured structlog logger instance.

    Args:
        name: Logger name (typically __name__). If None, returns root logger.

    Returns:
        Configured structlog logger ready for use (BoundLoggerLazyProxy)
    """
    return structlog.get_logger(name)
