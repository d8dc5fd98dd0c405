"""Structured logging configuration using structlog.

Every entry carries ``service``. Within a request, the request-id middleware
binds ``request_id``, ``method`` and ``path``, and authentication adds the
caller's ``uid`` once the access token is verified, so review events such as
``review_rejected`` or ``strike_issued`` can be traced back to a request.
"""

import logging
import sys

import structlog

SERVICE_NAME = "even-reviews"

REQUEST_CONTEXT_KEYS = ("request_id", "method", "path", "uid")


def configure_logging(level: str = "INFO", json_format: bool = True) -> None:
    """
    Configure structured logging for the application.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        json_format: If True, output JSON; if False, output colored console format
    """
    log_level = getattr(logging, level.upper())
    logging.basicConfig(format="%(message)s", stream=sys.stdout, level=log_level)

    processors: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
    ]
    if json_format:
        processors += [
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ]
    else:
        processors.append(structlog.dev.ConsoleRenderer(colors=True))

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(log_level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )

    structlog.contextvars.clear_contextvars()
    structlog.contextvars.bind_contextvars(service=SERVICE_NAME)


def get_logger(name: str | None = None) -> structlog.stdlib.BoundLogger:
    """Get a structured logger instance."""
    return structlog.get_logger(name)


def bind_request_context(request_id: str, method: str, path: str) -> None:
    structlog.contextvars.bind_contextvars(request_id=request_id, method=method, path=path)


def bind_caller(uid: str) -> None:
    """Attach the authenticated caller to the rest of the request's log entries."""
    structlog.contextvars.bind_contextvars(uid=uid)


def clear_request_context() -> None:
    """Drop per-request keys, keeping process-wide ones such as ``service``."""
    structlog.contextvars.unbind_contextvars(*REQUEST_CONTEXT_KEYS)
