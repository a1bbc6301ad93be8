"""Structured logging configuration."""

import sys
import structlog
import logging
from pathlib import Path
from typing import List
from core.config import Settings

# Third-party loggers that are noisy at INFO (redis-py logs every reconnect)
QUIET_LOGGERS = ("redis", "uvicorn.access")


def _handlers(settings: Settings) -> List[logging.Handler]:
    """Stdout always, plus a file when LOG_FILE is set."""
    handlers: List[logging.Handler] = [logging.StreamHandler(sys.stdout)]
    if settings.log_file:
        log_path = Path(settings.log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(log_path))
    return handlers


def _renderer_processors(settings: Settings) -> tuple:
    """(leading processors, renderer) for the configured format."""
    if settings.log_format == "json":
        leading = [structlog.stdlib.add_logger_name, structlog.processors.TimeStamper(fmt="iso")]
        return leading, structlog.processors.JSONRenderer()

    leading = [structlog.processors.TimeStamper(fmt="%H:%M:%S")]
    return leading, structlog.dev.ConsoleRenderer(
        colors=False,
        pad_event=35,
        exception_formatter=structlog.dev.plain_traceback
    )


def configure_logging(settings: Settings) -> None:
    """Route structlog through stdlib logging at the configured level."""
    level = getattr(logging, settings.log_level)

    handlers = _handlers(settings)
    for handler in handlers:
        handler.setLevel(level)
    logging.basicConfig(level=level, handlers=handlers, format="%(message)s", force=True)

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(max(level, logging.WARNING))

    leading, renderer = _renderer_processors(settings)
    structlog.configure(
        processors=[
            *leading,
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            renderer,
        ],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )


def get_logger(name: str) -> structlog.BoundLogger:
    """Get a structured logger instance."""
    return structlog.get_logger(name)


def log_cache_operation(logger: structlog.BoundLogger, operation: str,
                        key: str, hit: bool = None, **kwargs) -> None:
    """Debug-level trace of one cache call."""
    if hit is not None:
        kwargs["cache_hit"] = hit
    logger.debug("Cache operation", operation=operation, cache_key=key, **kwargs)


def log_store_failure(logger: structlog.BoundLogger, operation: str,
                      key: str, error: Exception, **kwargs) -> None:
    """Log a store failure that is being absorbed by a best-effort caller."""
    logger.error(
        "Cache operation failed",
        operation=operation,
        cache_key=key,
        error_type=type(error).__name__,
        error=str(error),
        **kwargs
    )
