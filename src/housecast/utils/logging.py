"""
Structured logging configuration using structlog.

Log events go to stderr so that command output on stdout (prediction
tables, status) stays machine-readable.
"""

import logging
import sys
from typing import Any, TextIO

import structlog

# Third-party loggers that flood the console during model fitting
NOISY_LOGGERS = ("tensorflow", "absl", "h5py")


def configure_logging(
    level: str = "INFO",
    json_output: bool = False,
    stream: TextIO | None = None,
) -> None:
    """
    Configure structured logging for the application.

    TensorFlow and absl loggers are held at WARNING unless ``level`` is
    DEBUG.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL).
        json_output: If True, emit one JSON object per event (for log
            collectors in front of a long-running service).
        stream: Destination for log lines (default: stderr).
    """
    log_level = getattr(logging, level.upper(), logging.INFO)
    stream = stream if stream is not None else sys.stderr

    logging.basicConfig(format="%(message)s", stream=stream, level=log_level)
    third_party_level = logging.DEBUG if log_level <= logging.DEBUG else logging.WARNING
    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(third_party_level)

    shared_processors: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
    ]

    if json_output:
        processors: list[structlog.types.Processor] = [
            *shared_processors,
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ]
    else:
        processors = [
            *shared_processors,
            structlog.dev.ConsoleRenderer(colors=stream.isatty()),
        ]

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(log_level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=stream),
        cache_logger_on_first_use=True,
    )


def get_logger(name: str | None = None) -> structlog.stdlib.BoundLogger:
    """Return a structlog logger, typically named after the module."""
    return structlog.get_logger(name)


def log_context(**kwargs: Any) -> structlog.contextvars.bound_contextvars:
    """
    Bind key-value pairs to every log event emitted inside the block.

    Example:
        with log_context(model_version="20240101T120000000000-ab12cd34"):
            log.info("Model trained successfully")  # includes model_version
    """
    return structlog.contextvars.bound_contextvars(**kwargs)
