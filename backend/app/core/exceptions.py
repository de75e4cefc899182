"""
Service error taxonomy.

Services raise these instead of HTTP exceptions so that the same code paths
can be driven from the API, from background jobs and from tests. Each error
kind maps to one stable HTTP status in `app.main`.
"""

from fastapi import status


class ServiceError(Exception):
    """Base class for every business-rule failure raised by the services."""

    kind: str = "SERVICE_ERROR"
    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    reason: str = "Internal error."

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class NotFoundError(ServiceError):
    kind = "NOT_FOUND"
    status_code = status.HTTP_404_NOT_FOUND
    reason = "The required object was not found."


class AccessError(ServiceError):
    kind = "FORBIDDEN"
    status_code = status.HTTP_403_FORBIDDEN
    reason = "The actor is not allowed to perform this action."


class ConflictError(ServiceError):
    kind = "CONFLICT"
    status_code = status.HTTP_409_CONFLICT
    reason = "For the requested operation the conditions are not met."


class ValidationError(ServiceError):
    kind = "BAD_REQUEST"
    status_code = status.HTTP_400_BAD_REQUEST
    reason = "Incorrectly made request."


class OptimisticLockError(ConflictError):
    """Raised when the capacity aggregate changed under us; retried internally."""
