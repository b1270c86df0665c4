"""Structured logging using structlog.

Both structlog loggers and plain ``logging.getLogger(__name__)`` loggers
are rendered through the same structlog processor chain.
"""

from __future__ import annotations

import logging
import sys
from pathlib import Path
from typing import Any

import structlog


def setup_logging(
    *,
    debug: bool = False,
    json_output: bool = False,
    log_file: str | Path | None = None,
) -> None:
    """Configure structlog for the application.

    Args:
        debug: Enable DEBUG level logging.
        json_output: Use JSON output format instead of console.
        log_file: Also write JSON lines to this file.
    """
    level = logging.DEBUG if debug else logging.INFO

    shared: list[Any] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
    ]

    console_renderer: Any = (
        structlog.processors.JSONRenderer() if json_output else structlog.dev.ConsoleRenderer()
    )
    handlers: list[logging.Handler] = [
        _handler(logging.StreamHandler(sys.stderr), shared, console_renderer)
    ]
    if log_file is not None:
        path = Path(log_file)
        path.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(
            _handler(
                logging.FileHandler(path, encoding="utf-8"),
                shared,
                structlog.processors.JSONRenderer(),
            )
        )

    root = logging.getLogger()
    for existing in list(root.handlers):
        root.removeHandler(existing)
    for handler in handlers:
        root.addHandler(handler)
    root.setLevel(level)

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            *shared,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def _handler(handler: logging.Handler, shared: list[Any], renderer: Any) -> logging.Handler:
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            foreign_pre_chain=shared,
            processors=[structlog.stdlib.ProcessorFormatter.remove_processors_meta, renderer],
        )
    )
    return handler


def get_logger(name: str = "taskfleet", **kwargs: Any) -> structlog.stdlib.BoundLogger:
    """Get a structured logger instance."""
    return structlog.get_logger(name, **kwargs)
