"""Custom exception classes and the authentication failure taxonomy"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional, Dict, Any


class AuthErrorKind(str, Enum):
    """Closed set of reasons a credential can be refused"""
    UNAUTHENTICATED = "unauthenticated"
    MALFORMED = "malformed"
    EXPIRED = "expired"
    BAD_SIGNATURE = "bad_signature"
    WRONG_KIND = "wrong_kind"
    REVOKED = "revoked"
    PRINCIPAL_NOT_FOUND = "principal_not_found"
    FORBIDDEN = "forbidden"
    UNAVAILABLE = "unavailable"


@dataclass(frozen=True)
class AuthFailure:
    """A refused credential: stable kind plus an opaque detail for logs."""
    kind: AuthErrorKind
    detail: str = ""

    def __str__(self) -> str:
        return f"{self.kind.value}: {self.detail}" if self.detail else self.kind.value


class BaseAPIException(Exception):
    """Base exception for all API errors"""

    def __init__(
        self,
        message: str,
        status_code: int = 500,
        details: Optional[Dict[str, Any]] = None,
        headers: Optional[Dict[str, str]] = None
    ):
        self.message = message
        self.status_code = status_code
        self.details = details or {}
        self.headers = dict(headers or {})
        super().__init__(self.message)


# Authentication Errors
class AuthenticationError(BaseAPIException):
    """Base authentication error"""
    def __init__(self, message: str = "Please authenticate"):
        super().__init__(message, status_code=401)


class InvalidCredentialsError(AuthenticationError):
    """Invalid email or password"""
    def __init__(self):
        super().__init__("Invalid email or password")


class InvalidTokenError(AuthenticationError):
    """
    A token was refused.

    The response message is the same for every reason so callers cannot
    probe which check failed; ``failure`` keeps the precise kind for logs.
    """
    def __init__(self, failure: AuthFailure):
        self.failure = failure
        super().__init__()

    @property
    def kind(self) -> AuthErrorKind:
        return self.failure.kind


# Authorization Errors
class AuthorizationError(BaseAPIException):
    """Insufficient permissions"""
    def __init__(self, message: str = "You do not have permission to access this resource"):
        super().__init__(message, status_code=403)


# Resource Errors
class ResourceNotFoundError(BaseAPIException):
    """Resource not found"""
    def __init__(self, resource: str):
        super().__init__(f"{resource} not found", status_code=404)


# Validation Errors
class ValidationError(BaseAPIException):
    """Validation error"""
    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message, status_code=400, details=details)


class RateLimitExceededError(BaseAPIException):
    """Rate limit exceeded"""
    def __init__(self, message: str = "Too many requests, please try again later."):
        super().__init__(message, status_code=429)


# System Errors
class ServiceUnavailableError(BaseAPIException):
    """Backing store failed; never to be read as an invalid credential"""
    def __init__(self, message: str = "Service temporarily unavailable"):
        super().__init__(message, status_code=503)
