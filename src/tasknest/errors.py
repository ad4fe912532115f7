"""Error taxonomy shared by services and the HTTP layer."""

from fastapi import status


class TaskNestError(Exception):
    """Base class for errors that map onto an HTTP response."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_message: str = "Internal server error"

    def __init__(self, message: str | None = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class ValidationError(TaskNestError):
    """Bad input shape, length or uniqueness."""

    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Invalid request"


class AuthError(TaskNestError):
    """Missing, invalid or expired credentials."""

    status_code = status.HTTP_401_UNAUTHORIZED
    default_message = "Not authenticated"


class NotFoundError(TaskNestError):
    """The requested entity does not exist for the caller."""

    status_code = status.HTTP_404_NOT_FOUND
    default_message = "Not found"


class InternalError(TaskNestError):
    """Anything unexpected."""


class HierarchyError(InternalError):
    """A stored parent/child chain is cyclic or deeper than allowed."""

    default_message = "Todo hierarchy is corrupt"
