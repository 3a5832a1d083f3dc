"""Structured diagnostics for flatcat.

stdout carries the flattened output and nothing else, since it is usually
piped into a file or straight into an LLM prompt. Every warning (invalid
explicit file, unreadable directory, dropped glob pattern...) is therefore
rendered as one JSON line on stderr, or in the file named by ``--log-file``.
"""

from __future__ import annotations

import logging
import sys
from typing import TYPE_CHECKING

import structlog

if TYPE_CHECKING:
    from pathlib import Path

LOGGER_NAME = "flatcat"

_STRUCTLOG_CONFIGURED = False


def _make_handler(filename: str | Path | None) -> logging.Handler:
    handler: logging.Handler
    if filename:
        handler = logging.FileHandler(str(filename), encoding="utf-8")
    else:
        handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(logging.Formatter("%(message)s"))
    return handler


def setup_logging(filename: str | Path | None = None) -> structlog.BoundLogger:
    """Route flatcat diagnostics to stderr, or to ``filename`` when given.

    structlog is configured once per process. The stdlib ``flatcat`` logger
    owns a single handler, replaced on each call with a file name, so a
    ``--log-file`` given on the command line moves diagnostics off stderr
    instead of duplicating them. Records still propagate to the root logger.

    Args:
        filename: Optional path to a log file. If None, logs are written to stderr.

    Returns:
        A structlog logger bound to the ``flatcat`` stdlib logger.
    """
    global _STRUCTLOG_CONFIGURED  # noqa: PLW0603
    if not _STRUCTLOG_CONFIGURED:
        structlog.configure(
            processors=[
                structlog.processors.TimeStamper(fmt="iso"),
                structlog.processors.add_log_level,
                structlog.processors.StackInfoRenderer(),
                structlog.processors.format_exc_info,
                structlog.processors.JSONRenderer(),
            ],
            wrapper_class=structlog.make_filtering_bound_logger(logging.INFO),
            context_class=dict,
            logger_factory=structlog.stdlib.LoggerFactory(),
            cache_logger_on_first_use=True,
        )
        _STRUCTLOG_CONFIGURED = True

    stdlib_logger = logging.getLogger(LOGGER_NAME)
    if filename or not stdlib_logger.handlers:
        for old in list(stdlib_logger.handlers):
            stdlib_logger.removeHandler(old)
            old.close()
        stdlib_logger.addHandler(_make_handler(filename))
        stdlib_logger.setLevel(logging.INFO)

    return structlog.get_logger(LOGGER_NAME)


logger = setup_logging()
