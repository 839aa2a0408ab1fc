"""
Logging Configuration

Structured logging setup using structlog. Ingestion runs bind their run id
and source site into the context so every event emitted while a run is in
flight carries them.
"""
import logging
import sys
from typing import Any, Optional

import structlog
from structlog.types import EventDict, Processor

from config.settings import settings

SERVICE_NAME = "auction-ingest"


def add_app_context(logger: Any, method_name: str, event_dict: EventDict) -> EventDict:
    """
    Add service and environment to all log entries.
    """
    event_dict["service"] = SERVICE_NAME
    event_dict["environment"] = settings.environment
    return event_dict


def setup_logging(level: Optional[str] = None) -> structlog.BoundLogger:
    """
    Configure structured logging for the ingestion service.

    Args:
        level: Override for settings.log_level

    Returns:
        Configured structlog logger instance
    """
    log_level = (level or settings.log_level).upper()

    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=getattr(logging, log_level, logging.INFO),
    )

    processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        add_app_context,
    ]

    if settings.log_format == "json":
        processors.append(structlog.processors.format_exc_info)
        # Korean addresses stay readable in JSON output
        processors.append(structlog.processors.JSONRenderer(ensure_ascii=False))
    else:
        processors.append(structlog.processors.ExceptionRenderer())
        processors.append(structlog.dev.ConsoleRenderer())

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    return structlog.get_logger()


def get_logger(name: str = None) -> structlog.BoundLogger:
    """
    Get a logger instance for a specific module.

    Args:
        name: Logger name (typically __name__)

    Returns:
        Configured logger instance
    """
    if name:
        return structlog.get_logger(name)
    return structlog.get_logger()


def bind_run_context(run_id: int, source_site: str) -> None:
    """Attach the active ingestion run to every subsequent log event."""
    structlog.contextvars.bind_contextvars(run_id=run_id, source_site=source_site)


def clear_run_context() -> None:
    """Drop run identifiers bound by bind_run_context."""
    structlog.contextvars.unbind_contextvars("run_id", "source_site")
