"""Process-wide logging setup: stdlib loggers rendered as JSON by structlog.

Modules keep using ``logging.getLogger(__name__)`` and pass context through
``extra=``; every key lands as a top-level field of the JSON line.
"""

from __future__ import annotations

import logging
from typing import IO, Optional

import structlog

# Name of the root handler this module owns.
HANDLER_NAME = "reviewflow"


def _formatter() -> structlog.stdlib.ProcessorFormatter:
    return structlog.stdlib.ProcessorFormatter(
        foreign_pre_chain=[
            structlog.stdlib.add_log_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.ExtraAdder(),
            structlog.processors.TimeStamper(fmt="iso"),
        ],
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(sort_keys=True),
        ],
    )


def configure_logging(level: str = "INFO", stream: Optional[IO[str]] = None) -> None:
    """Install the JSON handler on the root logger, replacing an earlier one.

    Handlers installed by others (test runners, hosting platforms) are left alone.
    """
    root = logging.getLogger()
    for handler in list(root.handlers):
        if handler.get_name() == HANDLER_NAME:
            root.removeHandler(handler)

    handler = logging.StreamHandler(stream)
    handler.set_name(HANDLER_NAME)
    handler.setFormatter(_formatter())
    root.addHandler(handler)
    root.setLevel(level.upper())
    logging.getLogger("botocore").setLevel(logging.WARNING)
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
