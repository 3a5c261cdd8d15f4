"""Custom exception classes for the application"""

import math
from typing import Optional, Dict, Any


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
        self.headers = headers or {}
        super().__init__(self.message)


# Validation Errors
class ValidationError(BaseAPIException):
    """Request failed field validation; details map field -> list of messages"""
    def __init__(self, message: str = "Validation failed", details: Optional[Dict[str, Any]] = None):
        super().__init__(message, status_code=400, details=details)


# Authentication Errors
class AuthenticationError(BaseAPIException):
    """Base authentication error"""
    def __init__(self, message: str = "Authentication failed"):
        super().__init__(message, status_code=401)


class InvalidCredentialsError(AuthenticationError):
    """Unknown account or wrong password; the two are never distinguished"""
    def __init__(self):
        super().__init__("Invalid email/username or password")


# Authorization / state Errors
class EmailNotVerifiedError(BaseAPIException):
    """Account exists but the email address is not verified yet"""
    def __init__(self):
        super().__init__(
            "Please verify your email address before signing in",
            status_code=403
        )


# Resource Errors
class ResourceNotFoundError(BaseAPIException):
    """Resource not found"""
    def __init__(self, message: str = "Resource not found"):
        super().__init__(message, status_code=404)


class RateLimitExceededError(BaseAPIException):
    """Too many failed attempts for a client/account pair"""
    def __init__(self, remaining_time_ms: int):
        minutes = max(1, math.ceil(remaining_time_ms / 60000))
        retry_after = max(1, math.ceil(remaining_time_ms / 1000))
        super().__init__(
            f"Too many failed attempts. Please try again in {minutes} minutes.",
            status_code=429,
            details={},
            headers={"Retry-After": str(retry_after)}
        )


# System Errors
class EmailDeliveryError(BaseAPIException):
    """An email the user depends on could not be sent"""
    def __init__(self, message: str = "Failed to send email. Please try again."):
        super().__init__(message, status_code=500)
