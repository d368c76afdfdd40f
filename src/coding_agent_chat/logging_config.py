"""Structured logging configuration.

JSON lines in production, colored console lines in development. Every line
carries the service name; request lines also carry ``correlation_id``,
``method`` and ``path`` (bound by the HTTP middleware) and, on project or
conversation routes, ``project_id`` / ``conversation_id``.

Usage:
    from coding_agent_chat.logging_config import setup_logging
    import structlog

    setup_logging(service_name="coding-agent-chat")
    logger = structlog.get_logger()
    logger.info("project_created", project_id=project.id)
"""

import logging
import sys
from typing import Literal

import structlog
from structlog.types import EventDict, Processor, WrappedLogger

# Libraries that log every request at INFO; the middleware already does
_NOISY_LOGGERS = ("httpx", "httpcore", "anthropic", "uvicorn.access")

# Path parameters copied into the log context of a request
LOG_CONTEXT_PARAMS = ("project_id", "conversation_id")


def _service_adder(service_name: str) -> Processor:
    def add_service(logger: WrappedLogger, method_name: str, event_dict: EventDict) -> EventDict:
        event_dict.setdefault("service", service_name)
        return event_dict

    return add_service


def setup_logging(
    service_name: str = "coding-agent-chat",
    log_format: Literal["json", "console"] = "console",
    log_level: str = "INFO",
) -> None:
    """Configure structlog on top of the stdlib root logger.

    Args:
        service_name: Name added to every log line.
        log_format: "json" for production, "console" for dev.
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR).
    """
    numeric_level = getattr(logging, log_level.upper(), logging.INFO)

    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=numeric_level,
        force=True,
    )
    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(max(numeric_level, logging.WARNING))

    processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        _service_adder(service_name),
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
    ]

    if log_format == "json":
        processors.append(structlog.processors.format_exc_info)
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(
            structlog.dev.ConsoleRenderer(exception_formatter=structlog.dev.plain_traceback)
        )

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    structlog.get_logger().info(
        "logging_initialized",
        log_format=log_format,
        log_level=log_level,
    )
