"""
Structured logging utility for the migration layer.

Provides JSON-formatted logging with payload summarisation, context
injection, and operation timing for CloudWatch integration.
"""

import asyncio
import json
import logging
import time
from datetime import datetime, timezone
from functools import wraps
from typing import Any, Dict, Optional


def summarize_payload(value: Any) -> str:
    """
    Describe a payload without revealing its content.

    Shadow and dual-write logs must stay diagnosable without leaking
    personality prompts, avatar URLs or user identifiers.

    Example:
        >>> summarize_payload({"fullName": "x", "owner": "123"})
        "dict(keys=2)"
        >>> summarize_payload([1, 2, 3])
        "list(len=3)"
    """
    if value is None:
        return "none"
    if isinstance(value, dict):
        return f"dict(keys={len(value)})"
    if isinstance(value, (list, tuple)):
        return f"{type(value).__name__}(len={len(value)})"
    if isinstance(value, str):
        return f"str(len={len(value)})"
    return type(value).__name__


class StructuredLogger:
    """
    JSON-formatted logger with context injection and operation timing.

    All log output is JSON format for CloudWatch integration and easier parsing.
    """

    def __init__(self, name: str):
        """
        Initialize structured logger.

        Args:
            name: Logger name (typically __name__ from calling module)
        """
        self.logger = logging.getLogger(name)
        self.logger.setLevel(logging.DEBUG)

        if not self.logger.handlers:
            handler = logging.StreamHandler()
            handler.setLevel(logging.DEBUG)
            formatter = logging.Formatter("%(message)s", datefmt="%Y-%m-%dT%H:%M:%S")
            handler.setFormatter(formatter)
            self.logger.addHandler(handler)

    def _format_log(
        self,
        level: str,
        message: str,
        operation: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
        duration_ms: Optional[float] = None,
        error: Optional[str] = None,
    ) -> str:
        """
        Format log entry as JSON.

        Args:
            level: Log level (DEBUG, INFO, WARNING, ERROR)
            message: Human-readable message
            operation: Operation name (e.g., "get_personality", "add_alias")
            context: Context dict with dispatch mode, counters, etc.
            duration_ms: Operation duration in milliseconds
            error: Error message if applicable

        Returns:
            JSON-formatted log string
        """
        log_entry: Dict[str, Any] = {
            "timestamp": datetime.now(timezone.utc).isoformat().replace("+00:00", "Z"),
            "level": level,
            "message": message,
        }

        if operation:
            log_entry["operation"] = operation

        if context:
            log_entry["context"] = context

        if duration_ms is not None:
            log_entry["duration_ms"] = round(duration_ms, 2)

        if error:
            log_entry["error"] = error

        return json.dumps(log_entry, ensure_ascii=False, default=str)

    def debug(
        self,
        message: str,
        operation: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        """Log debug message."""
        self.logger.debug(self._format_log("DEBUG", message, operation, context))

    def info(
        self,
        message: str,
        operation: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
        duration_ms: Optional[float] = None,
    ):
        """Log info message."""
        self.logger.info(self._format_log("INFO", message, operation, context, duration_ms))

    def warning(
        self,
        message: str,
        operation: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
        error: Optional[str] = None,
    ):
        """Log warning message."""
        self.logger.warning(
            self._format_log("WARNING", message, operation, context, error=error)
        )

    def error(
        self,
        message: str,
        operation: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
        error: Optional[str] = None,
        duration_ms: Optional[float] = None,
    ):
        """Log error message."""
        self.logger.error(
            self._format_log("ERROR", message, operation, context, duration_ms, error)
        )


def log_operation(operation_name: str):
    """
    Decorator to automatically log operation start, duration, and completion.

    Works for both plain functions and coroutine functions.

    Usage:
        @log_operation("publish_routing_statistics")
        def publish_routing_statistics(self, stats):
            ...
    """

    def decorator(func):
        logger = StructuredLogger(func.__module__)
        context = {"function": func.__name__}

        def _completed(start_time: float) -> None:
            logger.info(
                f"Completed {operation_name}",
                operation=operation_name,
                context=context,
                duration_ms=(time.time() - start_time) * 1000,
            )

        def _failed(start_time: float, exc: Exception) -> None:
            logger.error(
                f"Failed {operation_name}",
                operation=operation_name,
                context=context,
                error=str(exc),
                duration_ms=(time.time() - start_time) * 1000,
            )

        if asyncio.iscoroutinefunction(func):

            @wraps(func)
            async def async_wrapper(*args, **kwargs):
                logger.debug(f"Starting {operation_name}", operation=operation_name, context=context)
                start_time = time.time()
                try:
                    result = await func(*args, **kwargs)
                except Exception as e:
                    _failed(start_time, e)
                    raise
                _completed(start_time)
                return result

            return async_wrapper

        @wraps(func)
        def wrapper(*args, **kwargs):
            logger.debug(f"Starting {operation_name}", operation=operation_name, context=context)
            start_time = time.time()
            try:
                result = func(*args, **kwargs)
            except Exception as e:
                _failed(start_time, e)
                raise
            _completed(start_time)
            return result

        return wrapper

    return decorator


def get_logger(name: str) -> StructuredLogger:
    """
    Factory function to get a structured logger instance.

    Args:
        name: Logger name (typically __name__ from calling module)

    Returns:
        StructuredLogger instance
    """
    return StructuredLogger(name)
