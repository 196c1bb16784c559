from __future__ import annotations

import logging
import sys
from typing import TYPE_CHECKING

import structlog

if TYPE_CHECKING:
    from pathlib import Path

_configured = False


def _handler_for(filename: str | Path | None) -> logging.Handler:
    if filename:
        return logging.FileHandler(str(filename), encoding="utf-8")
    return logging.StreamHandler(sys.stderr)


def setup_logging(filename: str | Path | None = None, level: int = logging.INFO) -> structlog.BoundLogger:
    """Route packx diagnostics as JSON lines to stderr, or to `filename` when given.

    Bundles go to the output file and summaries to stdout, so log records never
    share a stream with either. The module-level `logger` is created at import
    time against stderr; the CLI calls this again once `--log-file` is parsed, which
    replaces the root handler in place. Loggers already handed out keep working
    because they resolve through the stdlib `packx` logger.

    Args:
        filename: log file for this run; None keeps stderr.
        level: minimum stdlib level recorded.

    Returns:
        The `packx` structlog logger.
    """
    global _configured  # noqa: PLW0603
    if _configured and not filename:
        return structlog.get_logger("packx")

    logging.basicConfig(level=level, handlers=[_handler_for(filename)], format="%(message)s", force=True)
    structlog.configure(
        processors=[
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.add_log_level,
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(level),
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )
    _configured = True
    return structlog.get_logger("packx")


logger = setup_logging()
