"""
Service-layer exceptions.

Every exception carries the short, user-facing ``reason`` string and the
HTTP status the API layer answers with.
"""

from fastapi import status


class ServiceError(Exception):
    """Base class for errors raised by the service layer."""

    status_code: int = status.HTTP_400_BAD_REQUEST

    def __init__(self, reason: str):
        super().__init__(reason)
        self.reason = reason


class NotFoundError(ServiceError):
    status_code = status.HTTP_404_NOT_FOUND


class GatingError(ServiceError):
    """The user may not take this action in the module's current state."""
    status_code = status.HTTP_403_FORBIDDEN


class AttemptLimitError(GatingError):
    """Attempt numbering would exceed the per-quiz ceiling."""

    def __init__(self, reason: str = "No attempts left"):
        super().__init__(reason)


class InvalidQuizError(ServiceError):
    status_code = status.HTTP_400_BAD_REQUEST


class NotEligibleError(ServiceError):
    status_code = status.HTTP_400_BAD_REQUEST


class PersistenceError(ServiceError):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
