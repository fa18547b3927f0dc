"""Error logging for request handlers and the feedback store."""

import logging
import traceback
from typing import Any, Optional

logger = logging.getLogger("Feedbox")

# Set from Settings.debug by feedbox.main.configure_logging
_include_tracebacks = False


def set_debug(enabled: bool) -> None:
    """Turn inline tracebacks in error messages on or off."""
    global _include_tracebacks
    _include_tracebacks = enabled


def error_log(
    message: str,
    exc: Optional[Exception] = None,
    context: Optional[dict] = None,
) -> None:
    """
    Log an error as ``message | Context: k=v | Exception: Type: text``.

    Args:
        message: Error message
        exc: Optional exception; in debug mode its traceback is appended
        context: Optional request/feedback details (path, method, feedback_id)
    """
    parts = [message]

    if context:
        parts.append("Context: " + ", ".join(f"{k}={v}" for k, v in context.items()))

    if exc:
        parts.append(f"Exception: {type(exc).__name__}: {exc}")
        if _include_tracebacks:
            parts.append(f"Traceback:\n{''.join(traceback.format_exception(type(exc), exc, exc.__traceback__))}")

    logger.error(" | ".join(parts), exc_info=exc)


def log_request_error(
    request: Any,
    exc: Exception,
    message: Optional[str] = None,
    **context: Any,
) -> None:
    """
    Log a failed feedback request.

    Args:
        request: Request object (url, method, headers)
        exc: The exception
        message: Optional custom message; defaults to the exception type
        **context: Extra details such as ``feedback_id`` or ``operation``
    """
    details = {}

    try:
        details["path"] = str(request.url.path)
        details["method"] = request.method
        details["user_agent"] = request.headers.get("user-agent", "unknown")
    except (AttributeError, KeyError, TypeError):
        pass

    details.update(context)
    error_log(message or f"Unhandled exception: {type(exc).__name__}", exc=exc, context=details)
