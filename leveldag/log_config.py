"""Structured logging setup for leveldag using structlog.

Graph builds and walks log snake_case events with keyword context. Callers
that want readable or machine-parseable output call ``configure_logging`` once
at startup; library code only ever asks for a logger.

Example:
    >>> from leveldag.log_config import configure_logging, get_logger
    >>> configure_logging(level="DEBUG", json_logs=False)
    >>> logger = get_logger(__name__)
    >>> logger.info("graph_built", node_count=4, level_count=3)
"""

import logging
import sys
from typing import TYPE_CHECKING, Any

import structlog

if TYPE_CHECKING:
    from leveldag.config import LevelDagConfig


def configure_logging(level: str = "INFO", json_logs: bool = True) -> None:
    """Route leveldag events through structlog onto stdout.

    Every event carries its level, an ISO timestamp and the emitting
    module, function and line, plus whatever is bound with ``bind_context``
    (a walk binds ``walk_id``).

    Args:
        level: Logging level name (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        json_logs: Render JSON lines if True, colored console output otherwise

    Raises:
        ValueError: If ``level`` is not a known logging level
    """
    numeric_level = getattr(logging, level.upper(), None)
    if not isinstance(numeric_level, int):
        msg = f"Invalid log level: {level}"
        raise ValueError(msg)

    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=numeric_level,
    )

    processors: list[Any] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.CallsiteParameterAdder(
            parameters=[
                structlog.processors.CallsiteParameter.MODULE,
                structlog.processors.CallsiteParameter.FUNC_NAME,
                structlog.processors.CallsiteParameter.LINENO,
            ],
        ),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
    ]

    if json_logs:
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(
            structlog.dev.ConsoleRenderer(
                colors=True,
                exception_formatter=structlog.dev.plain_traceback,
            ),
        )

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def configure_from_config(config: "LevelDagConfig") -> None:
    """Apply ``logging_level`` and ``json_logs`` from a loaded configuration.

    Pass ``get_config()`` so that ``LEVELDAG_LOGGING_LEVEL`` and
    ``LEVELDAG_JSON_LOGS`` take effect.
    """
    configure_logging(level=config.logging_level, json_logs=config.json_logs)


def get_logger(name: str | None = None) -> structlog.stdlib.BoundLogger:
    """Logger for graph and walk events; pass ``__name__`` from leveldag modules."""
    return structlog.get_logger(name)


def bind_context(**kwargs: Any) -> None:
    """Tag subsequent events in the current task with ``kwargs``.

    Concurrent actions started by a walk inherit the values bound before they
    were dispatched, which is how ``walk_id`` reaches every level event.

    Example:
        >>> bind_context(walk_id="5f0c", graph="deploy")
        >>> logger.info("level_dispatched")  # includes walk_id and graph
    """
    structlog.contextvars.bind_contextvars(**kwargs)


def unbind_context(*keys: str) -> None:
    """Drop ``keys`` once a walk (or other tagged operation) has finished."""
    structlog.contextvars.unbind_contextvars(*keys)


def clear_context() -> None:
    """Forget every bound key; tests use this to start from a clean slate."""
    structlog.contextvars.clear_contextvars()
