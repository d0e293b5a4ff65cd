from enum import Enum
from typing import Optional


class ErrorKind(str, Enum):
    """
    Closed set of failure kinds produced by every layer.
    The normalizer maps each kind to exactly one HTTP status.
    """
    VALIDATION = "VALIDATION"
    INVALID_ID = "INVALID_ID"
    DUPLICATE_KEY = "DUPLICATE_KEY"
    TOKEN_INVALID = "TOKEN_INVALID"
    TOKEN_EXPIRED = "TOKEN_EXPIRED"
    AUTHENTICATION = "AUTHENTICATION"
    FORBIDDEN = "FORBIDDEN"
    NOT_FOUND = "NOT_FOUND"
    UPSTREAM = "UPSTREAM"
    INTERNAL = "INTERNAL"


class AccountsError(Exception):
    """
    Base exception for the accounts service.

    `field` names the offending attribute for kinds whose client message
    is built from it (INVALID_ID, DUPLICATE_KEY).
    """
    kind = ErrorKind.INTERNAL

    def __init__(self, message: str = "Internal Server Error", field: Optional[str] = None):
        self.message = message
        self.field = field
        super().__init__(self.message)


class ValidationError(AccountsError):
    """
    Raised when input is missing or inconsistent.
    """
    kind = ErrorKind.VALIDATION

    def __init__(self, message: str = "Validation error", field: Optional[str] = None):
        super().__init__(message, field=field)


class InvalidIdError(AccountsError):
    """
    Raised when an identifier cannot be parsed into a database id.
    """
    kind = ErrorKind.INVALID_ID

    def __init__(self, field: str = "_id", value: Optional[str] = None):
        self.value = value
        super().__init__(f"Invalid {field}: {value}", field=field)


class DuplicateKeyError(AccountsError):
    """
    Raised when a write collides with a unique index.
    """
    kind = ErrorKind.DUPLICATE_KEY

    def __init__(self, field: str):
        super().__init__(f"Duplicate {field}", field=field)


class TokenInvalidError(AccountsError):
    kind = ErrorKind.TOKEN_INVALID

    def __init__(self, message: str = "Session token is invalid"):
        super().__init__(message)


class TokenExpiredError(AccountsError):
    kind = ErrorKind.TOKEN_EXPIRED

    def __init__(self, message: str = "Session token has expired"):
        super().__init__(message)


class AuthenticationError(AccountsError):
    """
    Raised when authentication fails.
    """
    kind = ErrorKind.AUTHENTICATION

    def __init__(self, message: str = "Authentication failed"):
        super().__init__(message)


class ForbiddenError(AccountsError):
    """
    Raised when the caller's role does not allow the operation.
    """
    kind = ErrorKind.FORBIDDEN

    def __init__(self, message: str = "Forbidden"):
        super().__init__(message)


class ResourceNotFoundError(AccountsError):
    """
    Raised when a requested resource is not found.
    """
    kind = ErrorKind.NOT_FOUND

    def __init__(self, message: str = "Resource not found"):
        super().__init__(message)


class ExternalServiceError(AccountsError):
    """
    Raised when an external service (image host, email) fails.
    """
    kind = ErrorKind.UPSTREAM

    def __init__(self, message: str = "External service error", service: Optional[str] = None):
        self.service = service
        super().__init__(message)


class ImageServiceError(ExternalServiceError):
    def __init__(self, message: str = "Image upload failed"):
        super().__init__(message, service="image")


class EmailDeliveryError(ExternalServiceError):
    def __init__(self, message: str = "Email could not be sent"):
        super().__init__(message, service="email")
