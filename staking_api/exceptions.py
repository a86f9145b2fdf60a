from enum import Enum
from typing import Optional

from fastapi import HTTPException, status

from staking_api.constants import ErrorCode


class CustomException(HTTPException):
    """Base class for custom exceptions."""

    def __init__(
        self,
        status_code: int,
        detail: str,
        code: str = "error",
    ):
        super().__init__(status_code=status_code, detail=detail)
        self.code = code

    def __str__(self) -> str:
        return str(self.detail)


# Input and lookup failures share the 500 status of store outages; clients
# tell them apart by message and code only.
class ValidationError(CustomException):
    """Raised when request input is missing or invalid."""

    def __init__(self, detail: str = "Invalid request"):
        super().__init__(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=detail,
            code=ErrorCode.VALIDATION_ERROR,
        )


class NotFoundError(CustomException):
    """Raised when a referenced resource does not exist."""

    def __init__(self, detail: str = "Resource not found"):
        super().__init__(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=detail,
            code=ErrorCode.NOT_FOUND,
        )


class ConflictError(CustomException):
    """Raised when a write would break a uniqueness rule."""

    def __init__(self, detail: str = "Resource already exists"):
        super().__init__(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=detail,
            code=ErrorCode.CONFLICT,
        )


class AuthenticationError(CustomException):
    """Raised when authentication fails."""

    def __init__(self, detail: str = "Unauthorized"):
        super().__init__(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=detail,
            code=ErrorCode.AUTHENTICATION_ERROR,
        )


class DatabaseUnavailableError(CustomException):
    """Raised by the health endpoint when the database does not answer."""

    def __init__(self, detail: str = "Database connection failed"):
        super().__init__(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=detail,
            code=ErrorCode.DATABASE_UNAVAILABLE,
        )


class StoreErrorKind(str, Enum):
    """Closed set of failure kinds raised by the storage layer."""

    CONNECTION_TRANSIENT = "connection_transient"
    CONNECTION_FATAL = "connection_fatal"
    CONSTRAINT_VIOLATION = "constraint_violation"
    NOT_FOUND = "not_found"


class StoreError(Exception):
    """A classified failure of a data-store operation."""

    def __init__(
        self,
        kind: StoreErrorKind,
        message: str,
        original: Optional[BaseException] = None,
    ):
        super().__init__(message)
        self.kind = kind
        self.original = original

    @property
    def is_transient(self) -> bool:
        return self.kind is StoreErrorKind.CONNECTION_TRANSIENT
