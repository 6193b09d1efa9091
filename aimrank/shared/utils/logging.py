"""Structured logging for aimrank.

structlog events and records from the stdlib ``logging`` tree (uvicorn,
SQLAlchemy, alembic) go through one ``ProcessorFormatter`` on stdout, so
the whole process emits a single line format.
"""

import logging
import sys
from contextvars import ContextVar
from typing import Any

import structlog

# Keys bound by the current request, so clearing removes exactly those.
_request_keys: ContextVar[tuple[str, ...]] = ContextVar("aimrank_request_keys", default=())

# Chatty at INFO; only let warnings through.
QUIET_LOGGERS = ("sqlalchemy.engine", "uvicorn.access")


def _add_service(service_name: str) -> structlog.types.Processor:
    def processor(logger: Any, method_name: str, event_dict: dict[str, Any]) -> dict[str, Any]:
        event_dict.setdefault("service", service_name)
        return event_dict

    return processor


def _pre_chain(service_name: str) -> list[structlog.types.Processor]:
    return [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        _add_service(service_name),
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.StackInfoRenderer(),
    ]


def configure_logging(
    level: str = "INFO",
    json_format: bool = True,
    service_name: str = "aimrank",
) -> None:
    """
    Route structlog and stdlib logging through one stdout handler.

    Args:
        level: Root log level name; unknown names fall back to INFO
        json_format: JSON lines if True, colored console output otherwise
        service_name: Value of the ``service`` key on every entry
    """
    log_level = getattr(logging, level.upper(), logging.INFO)

    if json_format:
        render: list[structlog.types.Processor] = [
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ]
    else:
        render = [structlog.dev.ConsoleRenderer(colors=sys.stdout.isatty())]

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            foreign_pre_chain=_pre_chain(service_name),
            processors=[structlog.stdlib.ProcessorFormatter.remove_processors_meta, *render],
        )
    )

    root = logging.getLogger()
    root.handlers[:] = [handler]
    root.setLevel(log_level)
    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(max(log_level, logging.WARNING))

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            *_pre_chain(service_name),
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def get_logger(name: str | None = None) -> structlog.stdlib.BoundLogger:
    """Get a structured logger instance (usually ``get_logger(__name__)``)."""
    return structlog.get_logger(name)


def bind_request_context(request_id: str, **kwargs: Any) -> None:
    """Bind request context to all subsequent log entries of this task."""
    context = {"request_id": request_id, **kwargs}
    structlog.contextvars.bind_contextvars(**context)
    _request_keys.set(tuple(context))


def clear_request_context() -> None:
    """Unbind every key the last :func:`bind_request_context` call bound."""
    keys = _request_keys.get()
    if keys:
        structlog.contextvars.unbind_contextvars(*keys)
    _request_keys.set(())
