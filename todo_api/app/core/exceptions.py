"""
Exception types shared by the service and HTTP layers.

The service layer raises these; endpoints and exception handlers map
them to HTTP status codes.  Middleware never inspects them.
"""

from typing import Optional


class TODOAPIError(Exception):
    """Base class for application errors."""

    def __init__(self, message: str, original_error: Optional[BaseException] = None) -> None:
        super().__init__(message)
        self.message = message
        self.original_error = original_error


class StoreError(TODOAPIError):
    """A query, exec or scan against the store failed."""


class NotFoundError(TODOAPIError):
    """The target of an update or delete does not exist."""

    def __init__(self, resource: str = "TODO", message: Optional[str] = None) -> None:
        super().__init__(message or f"{resource} not found")
        self.resource = resource


class ContextMissingError(TODOAPIError):
    """A value expected in the request context was not set."""
