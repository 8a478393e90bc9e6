"""
Exception hierarchy for Serval.

All custom exceptions inherit from ServalError base class, except
InvariantViolation which signals a bug inside Serval itself.
"""

from typing import Optional


class ServalError(Exception):
    """Base exception for all Serval errors."""
    pass


# Configuration Errors
class ConfigurationError(ServalError):
    """Base exception for configuration-related errors."""
    pass


class InvalidConfigurationError(ConfigurationError):
    """Raised when configuration is invalid or malformed."""
    pass


# Session Store Errors
class StoreError(ServalError):
    """Base exception for credential and session persistence errors."""
    pass


class FileReadError(StoreError):
    """Raised when reading the credentials file fails."""
    pass


class FileWriteError(StoreError):
    """Raised when writing the credentials file fails."""
    pass


# Request Errors
class InvalidRequestError(ServalError):
    """Raised when an endpoint wrapper is called with unusable arguments."""
    pass


# API Errors
class ApiError(ServalError):
    """Base exception for failures of an authenticated controller call."""
    pass


class TransportError(ApiError):
    """Raised on connection, timeout or TLS failures. Never retried."""
    pass


class DecodeError(ApiError):
    """Raised when a response body is not a well-formed envelope."""
    pass


class ApplicationError(ApiError):
    """Raised when the controller answers HTTP 200 with a non-ok return code."""

    def __init__(self, code: str, message: str):
        self.code = code
        self.message = message
        super().__init__(f"non-ok return code {code!r} ({message})")


class HttpError(ApiError):
    """Raised for any HTTP status that is neither success nor a handled re-login."""

    def __init__(self, status: int, reason: str = ""):
        self.status = status
        self.reason = reason
        text = f"HTTP response {status}"
        if reason:
            text += f" {reason}"
        super().__init__(text)


class LoginFailure(ApiError):
    """Raised when logging in to the controller fails."""

    def __init__(self, message: str, cause: Optional[ApiError] = None):
        self.cause = cause
        super().__init__(message)


class InvariantViolation(AssertionError):
    """
    Raised when Serval breaks one of its own contracts.

    Not a ServalError: handlers for ApiError must never catch it.
    """
    pass
