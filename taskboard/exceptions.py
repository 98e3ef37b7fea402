"""
Error types raised by the service layer and rendered by the API layer.

Each error carries the HTTP status it maps to and a message that is safe to
show to the caller.
"""

from fastapi import status


class TaskboardError(Exception):
    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_message: str = "Server error"

    def __init__(self, message: str | None = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class ValidationError(TaskboardError):
    """A precondition the caller can fix was violated; nothing was written."""

    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Bad request"


class NotFoundError(TaskboardError):
    status_code = status.HTTP_404_NOT_FOUND
    default_message = "Not found"

    def __init__(self, what: str = "Resource"):
        super().__init__(f"{what} not found")


class ServerError(TaskboardError):
    """Unexpected failure. The detail goes to the log, never to the caller."""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_message = "Server error"


__all__ = ["TaskboardError", "ValidationError", "NotFoundError", "ServerError"]
