"""Structured logging for testrelay.

Every module logs through ``get_logger(__name__)``. The returned proxy resolves
its configuration when it first logs, so loggers created at import time still
honour a later ``configure_logging`` call from the CLI.

Events emitted while a report is being imported carry the import's context
(source file, dialect, run id). The importer opens it with ``import_context``
and the orchestrator adds the run id once the registry has assigned one::

    with import_context(source="report.json"):
        bind_import_context(run_id=run.registry_id)
        logger.info("result_recorded")
"""

from __future__ import annotations

import logging
import sys
from collections.abc import Iterator
from contextlib import contextmanager
from typing import TYPE_CHECKING, Any, TextIO

import structlog

if TYPE_CHECKING:
    from structlog.typing import EventDict, WrappedLogger

COMPONENT = "testrelay"


def add_component(logger: WrappedLogger, method_name: str, event_dict: EventDict) -> EventDict:
    """Tag every event with the emitting package."""
    event_dict.setdefault("component", COMPONENT)
    return event_dict


def configure_logging(
    log_level: str = "INFO",
    json_format: bool = True,
    stream: TextIO | None = None,
) -> None:
    """
    Configure structured logging for an import.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL).
        json_format: If True, one JSON object per line; otherwise console format.
        stream: Output stream (defaults to sys.stderr, keeping stdout for results).
    """
    if stream is None:
        stream = sys.stderr

    processors: list = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso", key="timestamp"),
        add_component,
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
    ]
    if json_format:
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(structlog.dev.ConsoleRenderer())

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(
            getattr(logging, log_level.upper(), logging.INFO)
        ),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=stream),
        # Proxies must re-read the configuration after every configure call.
        cache_logger_on_first_use=False,
    )


def bind_import_context(**values: Any) -> None:
    """Attach key/value pairs to every event logged during the current import."""
    structlog.contextvars.bind_contextvars(**values)


def clear_import_context() -> None:
    """Drop values bound for the current import."""
    structlog.contextvars.clear_contextvars()


@contextmanager
def import_context(**values: Any) -> Iterator[None]:
    """Bind ``values`` for the duration of one import and clear them afterwards.

    Values added with ``bind_import_context`` inside the block are cleared too.
    """
    bind_import_context(**values)
    try:
        yield
    finally:
        clear_import_context()


def get_logger(name: str) -> Any:
    """Return a lazy logger whose events carry ``logger_name=name``."""
    return structlog.get_logger(name, logger_name=name)
