"""
Structured logging configuration using structlog.

Provides JSON logging with ISO timestamps and stdlib compatibility.
All log messages are structured and include contextual information.
"""

import logging
import sys
from typing import Optional

import structlog
from structlog.typing import FilteringBoundLogger

from .settings import settings


def configure_logging(log_level: Optional[str] = None, log_format: Optional[str] = None) -> None:
    """
    Configure structlog with JSON output and stdlib compatibility.

    Log lines go to stderr; stdout is reserved for command output.

    Args:
        log_level: Override log level from settings
        log_format: Override log format from settings
    """
    config = settings()
    level = (log_level or config.log_level).upper()
    format_type = (log_format or config.log_format).lower()

    # Configure stdlib logging
    logging.basicConfig(
        format="%(message)s",
        stream=sys.stderr,
        level=getattr(logging, level),
    )

    processors = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.StackInfoRenderer(),
        structlog.dev.set_exc_info,
        structlog.processors.TimeStamper(fmt="iso"),

        # Add service metadata
        lambda _, __, event_dict: {
            **event_dict,
            "service": config.service_name,
            "environment": config.environment,
        },
    ]

    if format_type == "json":
        processors.append(structlog.processors.JSONRenderer())
    else:
        # Development-friendly format
        processors.append(structlog.dev.ConsoleRenderer(colors=True))

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(
            getattr(logging, level)
        ),
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def get_logger(name: Optional[str] = None) -> FilteringBoundLogger:
    """
    Get a structured logger instance.

    Args:
        name: Logger name (defaults to caller's module)

    Returns:
        Configured structlog logger
    """
    return structlog.get_logger(name)


def log_database_operation(
    logger: FilteringBoundLogger,
    operation: str,
    table: Optional[str] = None,
    duration_ms: Optional[float] = None,
    rows_affected: Optional[int] = None,
    **extra_context
) -> None:
    """
    Log a database operation with structured information.

    Args:
        logger: Logger instance
        operation: Database operation (SELECT, INSERT, UPDATE, DELETE)
        table: Table name
        duration_ms: Operation duration in milliseconds
        rows_affected: Number of rows affected
        **extra_context: Additional context to include
    """
    context = {
        "operation": operation.upper(),
        **extra_context
    }

    if table:
        context["table"] = table

    if duration_ms is not None:
        context["duration_ms"] = round(duration_ms, 2)

    if rows_affected is not None:
        context["rows_affected"] = rows_affected

    logger.info("Database operation completed", **context)


def log_processing_batch(
    logger: FilteringBoundLogger,
    batch_id: str,
    items_processed: int,
    items_failed: int = 0,
    duration_ms: Optional[float] = None,
    **extra_context
) -> None:
    """
    Log batch processing results.

    Args:
        logger: Logger instance
        batch_id: Unique batch identifier
        items_processed: Number of items successfully processed
        items_failed: Number of items that failed processing
        duration_ms: Processing duration in milliseconds
        **extra_context: Additional context to include
    """
    total = items_processed + items_failed
    context = {
        "batch_id": batch_id,
        "items_processed": items_processed,
        "items_failed": items_failed,
        "success_rate": round(items_processed / total * 100, 2) if total > 0 else 0,
        **extra_context
    }

    if duration_ms is not None:
        context["duration_ms"] = round(duration_ms, 2)

    if items_failed > 0:
        logger.warning("Batch processing completed with failures", **context)
    else:
        logger.info("Batch processing completed successfully", **context)
