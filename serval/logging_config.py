"""
Logging configuration for Serval.

Provides centralized structured logging setup with JSON output for production
and human-readable output for development. Supports correlation IDs for
tracing one logical controller call across the login retry.
"""

import logging
import sys
import uuid
from contextvars import ContextVar
from pathlib import Path
from typing import Any, Dict, Optional

import structlog
from structlog.types import EventDict


# Context variable for correlation ID
correlation_id_var: ContextVar[Optional[str]] = ContextVar("correlation_id", default=None)


def add_correlation_id(logger: Any, method_name: str, event_dict: EventDict) -> EventDict:
    """
    Add correlation ID to log events if present in context.

    Args:
        logger: Logger instance
        method_name: Name of the logging method
        event_dict: Event dictionary to modify

    Returns:
        Modified event dictionary with correlation_id if available
    """
    correlation_id = correlation_id_var.get()
    if correlation_id:
        event_dict["correlation_id"] = correlation_id
    return event_dict


def set_correlation_id(correlation_id: Optional[str] = None) -> str:
    """
    Set correlation ID for the current context.

    Args:
        correlation_id: Optional correlation ID. If None, generates a new UUID.

    Returns:
        The correlation ID that was set
    """
    if correlation_id is None:
        correlation_id = str(uuid.uuid4())
    correlation_id_var.set(correlation_id)
    return correlation_id


def clear_correlation_id() -> None:
    """Clear correlation ID from the current context."""
    correlation_id_var.set(None)


def get_correlation_id() -> Optional[str]:
    """
    Get the current correlation ID from context.

    Returns:
        Current correlation ID or None if not set
    """
    return correlation_id_var.get()


def setup_logging(
    level: str = "INFO",
    log_file: Optional[Path] = None,
    json_format: bool = True,
) -> None:
    """
    Configure structured logging for Serval.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL).
        log_file: Optional path to log file. If None, logs only to stderr.
        json_format: If True, use JSON format. If False, use human-readable format.
    """
    numeric_level = getattr(logging, level.upper(), logging.INFO)

    root_logger = logging.getLogger()
    root_logger.setLevel(numeric_level)

    # Clear existing handlers to avoid duplicates
    root_logger.handlers.clear()

    if log_file is not None:
        log_file = Path(log_file)
        log_file.parent.mkdir(parents=True, exist_ok=True)

        file_handler = logging.FileHandler(log_file)
        file_handler.setLevel(numeric_level)
        file_handler.setFormatter(logging.Formatter("%(message)s"))
        root_logger.addHandler(file_handler)
    else:
        stderr_handler = logging.StreamHandler(sys.stderr)
        stderr_handler.setLevel(numeric_level)
        stderr_handler.setFormatter(logging.Formatter("%(message)s"))
        root_logger.addHandler(stderr_handler)

    processors: list = [
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso"),
        add_correlation_id,
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
    ]

    if json_format:
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(structlog.dev.ConsoleRenderer(colors=True))

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """
    Get a structured logger instance for a specific module.

    Args:
        name: Logger name (typically __name__ of the module).

    Returns:
        Structured logger instance.
    """
    if not name.startswith("serval"):
        name = f"serval.{name}"
    return structlog.get_logger(name)


# Convenience functions for common logging patterns

def log_api_request(
    logger: structlog.stdlib.BoundLogger,
    method: str,
    path: str,
    status_code: Optional[int] = None,
    outcome: str = "success",
    duration_ms: Optional[float] = None,
    **kwargs: Any,
) -> None:
    """
    Log one attempt of a controller API call.

    Args:
        logger: Logger instance
        method: HTTP method
        path: Request path relative to the controller base URL
        status_code: HTTP status, if a response was received
        outcome: success, login_required, or the failing error kind
        duration_ms: Round trip duration in milliseconds
        **kwargs: Additional context to log
    """
    log_data: Dict[str, Any] = {
        "event_type": "api_request",
        "method": method,
        "path": path,
        "outcome": outcome,
    }

    if status_code is not None:
        log_data["status_code"] = status_code
    if duration_ms is not None:
        log_data["duration_ms"] = duration_ms

    log_data.update(kwargs)

    if outcome == "success":
        logger.debug("api_request", **log_data)
    elif outcome == "login_required":
        logger.info("api_request_login_required", **log_data)
    else:
        logger.warning("api_request_failed", **log_data)


def log_login(
    logger: structlog.stdlib.BoundLogger,
    controller_host: str,
    username: str,
    success: bool,
    trigger: str = "explicit",
    reason: Optional[str] = None,
    **kwargs: Any,
) -> None:
    """
    Log a controller login.

    Args:
        logger: Logger instance
        controller_host: Controller host name or address
        username: Login user name (the password is never logged)
        success: Whether the login succeeded
        trigger: Why the login happened (explicit, session_expired)
        reason: Failure reason, if any
        **kwargs: Additional context to log
    """
    log_data: Dict[str, Any] = {
        "event_type": "login",
        "controller_host": controller_host,
        "username": username,
        "success": success,
        "trigger": trigger,
    }

    if reason is not None:
        log_data["reason"] = reason

    log_data.update(kwargs)

    if success:
        logger.info("login", **log_data)
    else:
        logger.error("login_failed", **log_data)


def log_session_persist(
    logger: structlog.stdlib.BoundLogger,
    operation: str,
    path: str,
    cookie_count: int,
    **kwargs: Any,
) -> None:
    """
    Log a credentials load or save.

    Args:
        logger: Logger instance
        operation: Operation type (load, save)
        path: Location of the credentials store
        cookie_count: Number of cookies loaded or saved (values are never logged)
        **kwargs: Additional context to log
    """
    log_data: Dict[str, Any] = {
        "event_type": "session_persist",
        "operation": operation,
        "path": path,
        "cookie_count": cookie_count,
    }

    log_data.update(kwargs)

    logger.info("session_persist", **log_data)
