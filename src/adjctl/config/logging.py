"""Logging setup: structlog rendering over the stdlib ``logging`` tree.

Services log through ``logging.getLogger(__name__)``. Those records and
structlog's own events share one stderr handler and one renderer:

- console (default): key=value lines, colored on a TTY
- JSON (``--log-json``): one object per line
"""

from __future__ import annotations

import logging
import sys

import structlog
from structlog.types import Processor

# Loggers held at WARNING even under --verbose (statement echo, pool chatter).
_QUIET_LIBRARIES = ("sqlalchemy.engine", "sqlalchemy.pool")


def _pre_chain() -> list[Processor]:
    return [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
    ]


def _renderer(log_json: bool) -> Processor:
    if log_json:
        return structlog.processors.JSONRenderer()
    return structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty())


def configure_logging(*, verbose: bool = False, log_json: bool = False) -> None:
    """Route adjctl logging to stderr.

    The ``adjctl`` logger tree logs at DEBUG with *verbose* and at WARNING
    otherwise. Calling this again replaces the root handler.
    """
    pre_chain = _pre_chain()
    structlog.configure(
        processors=[*pre_chain, structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=False,
    )

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            foreign_pre_chain=pre_chain,
            processors=[
                structlog.stdlib.ProcessorFormatter.remove_processors_meta,
                _renderer(log_json),
            ],
        )
    )

    root = logging.getLogger()
    root.handlers[:] = [handler]
    root.setLevel(logging.WARNING)

    logging.getLogger("adjctl").setLevel(logging.DEBUG if verbose else logging.WARNING)
    for name in _QUIET_LIBRARIES:
        logging.getLogger(name).setLevel(logging.WARNING)
