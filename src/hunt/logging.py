"""Logging configuration for the scavenger hunt."""

import hashlib
import sys
from pathlib import Path
from typing import Any

import structlog

# Event keys that carry certificate-derived identities
IDENTITY_KEYS = ("fingerprint", "player_id", "activated_by")


def _short_hash(value: str) -> str:
    return hashlib.sha256(value.encode()).hexdigest()[:12]


def hash_identity_processor(
    logger: Any, method_name: str, event_dict: dict[str, Any]
) -> dict[str, Any]:
    """Replace player identities in log events with a short hash."""
    for key in IDENTITY_KEYS:
        value = event_dict.get(key)
        if isinstance(value, str) and value:
            event_dict[f"{key}_hash"] = _short_hash(value)
            del event_dict[key]
    return event_dict


def _level_to_int(level: str) -> int:
    levels = {
        "DEBUG": 10,
        "INFO": 20,
        "WARNING": 30,
        "ERROR": 40,
        "CRITICAL": 50,
    }
    return levels.get(level.upper(), 20)


def configure_logging(
    log_level: str = "INFO",
    log_file: Path | None = None,
    json_logs: bool = False,
    hash_fingerprints: bool = True,
) -> None:
    """Configure structured logging for the application."""
    if log_file:
        output_stream = open(log_file, "a")
    else:
        output_stream = sys.stdout

    base_processors: list[Any] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(
            fmt="iso" if json_logs else "%Y-%m-%d %H:%M:%S"
        ),
    ]

    if hash_fingerprints:
        base_processors.append(hash_identity_processor)

    if json_logs:
        processors = base_processors + [
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ]
    else:
        processors = base_processors + [
            structlog.dev.ConsoleRenderer(colors=output_stream.isatty())
        ]

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(_level_to_int(log_level)),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=output_stream),
        cache_logger_on_first_use=True,
    )


def get_logger(name: str) -> structlog.BoundLogger:
    """Get a logger instance for a module."""
    return structlog.get_logger(name)
