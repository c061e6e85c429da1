"""Structured logging for aumos-case-manager.

Loggers are structlog bound loggers routed through the standard library
``logging`` module. Services emit through SafeLogger, which drops any
exception raised while logging, so a broken log sink never aborts a business
operation.
"""

import logging
import sys
from typing import Any

import structlog


def configure_logging(level: str = "INFO", json_logs: bool = False) -> None:
    """Configure structlog and the root stdlib logger.

    Args:
        level: Logging level name (DEBUG, INFO, WARNING, ERROR).
        json_logs: Render JSON lines instead of the console format.
    """
    log_level = getattr(logging, level.upper(), logging.INFO)

    shared_processors: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
    ]

    renderer: structlog.types.Processor
    if json_logs:
        renderer = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=False)

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            *shared_processors,
            renderer,
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        logger_factory=structlog.stdlib.LoggerFactory(),
        context_class=dict,
        cache_logger_on_first_use=True,
    )

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(logging.Formatter("%(message)s"))

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.addHandler(handler)
    root_logger.setLevel(log_level)


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """Get a structured logger instance.

    Args:
        name: Logger name, normally ``__name__`` of the calling module.

    Returns:
        A structlog bound logger.
    """
    return structlog.get_logger(name)


class SafeLogger:
    """Wrap a structured logger so that a failing sink never reaches the caller.

    Services log through this wrapper: an exception raised while emitting an
    event (a broken handler, processor or transport) is dropped, so the
    operation continues and any domain error being reported is re-raised
    unchanged.

    Args:
        logger: The structured logger events are forwarded to.
    """

    def __init__(self, logger: Any) -> None:
        self._logger = logger

    @property
    def wrapped(self) -> Any:
        return self._logger

    def debug(self, event: str, **context: Any) -> None:
        self._emit("debug", event, context)

    def info(self, event: str, **context: Any) -> None:
        self._emit("info", event, context)

    def warning(self, event: str, **context: Any) -> None:
        self._emit("warning", event, context)

    def error(self, event: str, **context: Any) -> None:
        self._emit("error", event, context)

    def _emit(self, level: str, event: str, context: dict[str, Any]) -> None:
        try:
            getattr(self._logger, level)(event, **context)
        except Exception:  # noqa: BLE001
            return
