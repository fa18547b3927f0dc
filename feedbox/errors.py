"""Feedbox error types."""

from litestar.exceptions import MethodNotAllowedException


class FeedboxError(Exception):
    """Base class for application errors."""


class ValidationError(FeedboxError):
    """Malformed or missing request input."""


class PersistenceError(FeedboxError):
    """The feedback store failed (connectivity, constraint or timeout)."""


# Raised by the router when a feedback route is hit with an unsupported method
NotAllowed = MethodNotAllowedException
