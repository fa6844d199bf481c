"""Structured logging configuration for the ModernGov MCP server.

- structlog for structured logging
- Context propagation via contextvars (service, version, operation)
- Configurable JSON/console rendering
- Logs go to stderr: stdout carries the MCP stdio transport
- Silences noisy library loggers (httpx, httpcore, etc.)
"""

import logging
import sys
from typing import Any

import structlog
from structlog.types import Processor


def setup_logging(
    service_name: str,
    service_version: str = "0.1.0",
    log_level: str = "INFO",
    log_format: str = "console",
) -> None:
    """Configure structured logging for the server.

    Args:
        service_name: Name of the service (e.g., "moderngov-mcp")
        service_version: Service version (e.g., "0.1.0")
        log_level: Minimum log level (DEBUG, INFO, WARNING, ERROR)
        log_format: Output format - "json" for machine consumption, "console" for development
    """
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    logging.getLogger("asyncio").setLevel(logging.WARNING)

    shared_processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.StackInfoRenderer(),
        structlog.dev.set_exc_info,
        structlog.processors.TimeStamper(fmt="iso"),
    ]

    if log_format == "json":
        processors = shared_processors + [
            structlog.processors.dict_tracebacks,
            structlog.processors.JSONRenderer(),
        ]
    else:
        processors = shared_processors + [
            structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty()),
        ]

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(
            getattr(logging, log_level.upper(), logging.INFO)
        ),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
        cache_logger_on_first_use=True,
    )

    clear_context()
    bind_context(service=service_name, version=service_version)


def get_logger(name: str | None = None) -> structlog.stdlib.BoundLogger:
    """Get a logger instance with optional name binding.

    Args:
        name: Optional logger name (typically __name__)

    Returns:
        A lazy structlog logger, so module-level loggers pick up
        configuration applied later by setup_logging
    """
    if name:
        return structlog.get_logger(logger_name=name)
    return structlog.get_logger()


def bind_context(**kwargs: Any) -> None:
    """Bind additional context variables to all subsequent logs.

    Example:
        bind_context(tool="get_meetings", site_url="https://democracy.leeds.gov.uk")
    """
    structlog.contextvars.bind_contextvars(**kwargs)


def clear_context() -> None:
    """Clear all bound context variables."""
    structlog.contextvars.clear_contextvars()


def unbind_context(*keys: str) -> None:
    """Remove specific context variables.

    Args:
        keys: Names of context variables to remove
    """
    structlog.contextvars.unbind_contextvars(*keys)
