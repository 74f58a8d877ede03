"""Structured logging configuration.

This module provides:
- Structured logging via structlog with JSON output for production
- Timing utilities for performance tracking
- Exception logging helpers with full context
"""

import inspect
import logging
import sys
import time
from collections.abc import AsyncIterator, Callable, Iterator
from contextlib import asynccontextmanager, contextmanager
from functools import wraps
from typing import Any, ParamSpec, TypeVar

import structlog
from structlog.stdlib import BoundLogger
from structlog.types import Processor

from shop_ledger.config import settings

P = ParamSpec("P")
T = TypeVar("T")


def _build_processors() -> list[Processor]:
    return [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.format_exc_info,
        structlog.processors.TimeStamper(fmt="iso"),
    ]


def _select_renderer() -> Processor:
    if settings.debug:
        # Human-readable logs for development
        return structlog.dev.ConsoleRenderer()
    # JSON logs for production/staging
    return structlog.processors.JSONRenderer()


def configure_logging() -> None:
    """Configure structlog on top of stdlib logging."""

    processors = _build_processors()
    renderer = _select_renderer()

    structlog.configure(
        processors=processors + [structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    formatter = structlog.stdlib.ProcessorFormatter(
        processor=renderer,
        foreign_pre_chain=processors,
    )
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(formatter)

    logging.basicConfig(
        handlers=[handler],
        level=logging.DEBUG if settings.debug else logging.INFO,
    )


def get_logger(name: str | None = None) -> BoundLogger:
    """Get a structured logger."""
    return structlog.get_logger(name)


# =============================================================================
# Timing Utilities
# =============================================================================


@contextmanager
def log_timing(
    operation: str,
    logger: BoundLogger | None = None,
    level: str = "info",
    **context: Any,
) -> Iterator[dict[str, Any]]:
    """Context manager to log operation timing.

    Usage:
        with log_timing("render_pdf", logger=logger, rows=len(lines)) as timing:
            ...
            timing["pages"] = page_count

    For async operations, use async_log_timing instead.

    Yields:
        A dict that can be updated with additional context during the operation.
        The dict will include 'duration_ms' after the operation completes.
    """
    log = logger or get_logger(__name__)
    start = time.perf_counter()
    result_context: dict[str, Any] = {}

    try:
        yield result_context
    finally:
        duration_ms = (time.perf_counter() - start) * 1000
        result_context["duration_ms"] = round(duration_ms, 2)

        extra_context = {k: v for k, v in result_context.items() if k != "duration_ms"}

        log_method = getattr(log, level, log.info)
        log_method(
            f"{operation} completed",
            operation=operation,
            duration_ms=result_context["duration_ms"],
            **context,
            **extra_context,
        )


@asynccontextmanager
async def async_log_timing(
    operation: str,
    logger: BoundLogger | None = None,
    level: str = "info",
    **context: Any,
) -> AsyncIterator[dict[str, Any]]:
    """Async context manager to log operation timing.

    Usage:
        async with async_log_timing("upload_report", logger=logger, key=key):
            url = await storage_put(...)
    """
    log = logger or get_logger(__name__)
    start = time.perf_counter()
    result_context: dict[str, Any] = {}

    try:
        yield result_context
    finally:
        duration_ms = (time.perf_counter() - start) * 1000
        result_context["duration_ms"] = round(duration_ms, 2)

        extra_context = {k: v for k, v in result_context.items() if k != "duration_ms"}

        log_method = getattr(log, level, log.info)
        log_method(
            f"{operation} completed",
            operation=operation,
            duration_ms=result_context["duration_ms"],
            **context,
            **extra_context,
        )


def log_external_api(
    service: str,
    *,
    logger: BoundLogger | None = None,
) -> Callable[[Callable[P, T]], Callable[P, T]]:
    """Decorator to log calls to external services with timing.

    Usage:
        @log_external_api("logo")
        async def download(url):
            ...
    """

    def decorator(func: Callable[P, T]) -> Callable[P, T]:
        log = logger or get_logger(func.__module__)

        @wraps(func)
        async def async_wrapper(*args: P.args, **kwargs: P.kwargs) -> T:
            start = time.perf_counter()
            extra: dict[str, Any] = {"service": service, "function": func.__name__}
            try:
                result = await func(*args, **kwargs)  # type: ignore[misc]
            except Exception as exc:
                duration_ms = (time.perf_counter() - start) * 1000
                log.error(
                    f"External call to {service} failed",
                    duration_ms=round(duration_ms, 2),
                    success=False,
                    error=str(exc),
                    error_type=type(exc).__name__,
                    **extra,
                )
                raise
            duration_ms = (time.perf_counter() - start) * 1000
            log.info(
                f"External call to {service}",
                duration_ms=round(duration_ms, 2),
                success=True,
                **extra,
            )
            return result

        @wraps(func)
        def sync_wrapper(*args: P.args, **kwargs: P.kwargs) -> T:
            start = time.perf_counter()
            extra: dict[str, Any] = {"service": service, "function": func.__name__}
            try:
                result = func(*args, **kwargs)
            except Exception as exc:
                duration_ms = (time.perf_counter() - start) * 1000
                log.error(
                    f"External call to {service} failed",
                    duration_ms=round(duration_ms, 2),
                    success=False,
                    error=str(exc),
                    error_type=type(exc).__name__,
                    **extra,
                )
                raise
            duration_ms = (time.perf_counter() - start) * 1000
            log.info(
                f"External call to {service}",
                duration_ms=round(duration_ms, 2),
                success=True,
                **extra,
            )
            return result

        if inspect.iscoroutinefunction(func):
            return async_wrapper  # type: ignore[return-value]
        return sync_wrapper

    return decorator


# =============================================================================
# Exception Logging Helpers
# =============================================================================


def log_exception(
    logger: BoundLogger,
    exc: BaseException,
    context: str,
    *,
    level: str = "error",
    include_traceback: bool = True,
    **extra: Any,
) -> None:
    """Log an exception with full context.

    Usage:
        except StorageError as exc:
            log_exception(logger, exc, "Report upload failed", key=key)
    """
    log_method = getattr(logger, level, logger.error)

    log_kwargs: dict[str, Any] = {
        "error": str(exc),
        "error_type": type(exc).__name__,
        "error_module": type(exc).__module__,
        **extra,
    }

    if include_traceback:
        log_method(context, exc_info=exc, **log_kwargs)
    else:
        log_method(context, **log_kwargs)
