"""structlog setup for the service and the CLI.

The service emits one JSON object per line on stderr.  Process-wide fields
(manifest directory, apply mode) are bound once through contextvars, and
every reconcile pass binds its sequence number, so the lines of one pass can
be grouped without threading a logger through the engine.
"""

from __future__ import annotations

import logging
import sys
from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any

import structlog


def setup_logging(level: str = "info", *, json: bool = True, **context: Any) -> None:
    """Configure structlog output on stderr.

    Args:
        level:   minimum level name; unknown names fall back to ``info``.
        json:    JSON lines for the service, a console renderer for the CLI.
        context: fields bound to every subsequent log line of the process.
    """
    log_level = getattr(logging, level.upper(), logging.INFO)
    renderer: Any = structlog.processors.JSONRenderer() if json else structlog.dev.ConsoleRenderer(colors=False)

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.StackInfoRenderer(),
            structlog.dev.set_exc_info,
            structlog.processors.TimeStamper(fmt="iso", utc=True, key="ts"),
            renderer,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(log_level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
        cache_logger_on_first_use=True,
    )
    structlog.contextvars.clear_contextvars()
    if context:
        structlog.contextvars.bind_contextvars(**{k: v for k, v in context.items() if v is not None})


@contextmanager
def pass_context(sequence: int) -> Iterator[None]:
    """Bind ``pass_seq`` to every line logged inside one reconcile pass."""
    with structlog.contextvars.bound_contextvars(pass_seq=sequence):
        yield


def get_logger(component: str) -> structlog.stdlib.BoundLogger:
    """Get a logger bound with a component name."""
    return structlog.get_logger(component=component)  # type: ignore[return-value]
