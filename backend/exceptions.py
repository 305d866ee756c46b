"""
Custom exception classes for the application.

This module defines domain-specific exceptions that provide better error handling
and clearer error messages throughout the application.
"""


class ApplicationError(Exception):
    """Base exception for all application errors"""

    def __init__(self, message: str, details: dict | None = None):
        self.message = message
        self.details = details or {}
        super().__init__(self.message)


class ConfigurationError(ApplicationError):
    """Raised when there's a configuration issue"""

    def __init__(self, message: str, missing_keys: list[str] | None = None):
        details = {"missing_keys": missing_keys} if missing_keys else {}
        super().__init__(message, details)


class ValidationError(ApplicationError):
    """Raised when validation fails"""

    def __init__(self, message: str, invalid_fields: dict | None = None):
        details = {"invalid_fields": invalid_fields} if invalid_fields else {}
        super().__init__(message, details)


class AuthenticationError(ApplicationError):
    """Raised when a request carries no usable credentials"""

    def __init__(self, message: str = "Authentication required"):
        super().__init__(message)


class PermissionDeniedError(ApplicationError):
    """Raised when an authenticated principal may not perform an operation"""

    def __init__(self, message: str = "Access denied", operation: str | None = None):
        details = {"operation": operation} if operation else {}
        super().__init__(message, details)


class JobNotFoundError(ApplicationError):
    """
    Raised when a video job does not exist or belongs to another organization.

    Both cases share one message so callers cannot tell them apart.
    """

    def __init__(self, job_id: str):
        super().__init__("Video not found", {"job_id": job_id})


class UserNotFoundError(ApplicationError):
    """Raised when a user does not exist or belongs to another organization"""

    def __init__(self, user_id: str):
        super().__init__("User not found", {"user_id": user_id})


class InvalidTransitionError(ApplicationError):
    """Raised when a job checkpoint would break the state machine"""

    def __init__(self, job_id: str, message: str):
        super().__init__(message, {"job_id": job_id})


class StorageError(ApplicationError):
    """Raised when the storage provider fails"""

    def __init__(self, operation: str, message: str):
        details = {"operation": operation}
        super().__init__(message, details)


class ClassifierError(ApplicationError):
    """Raised when the content classifier fails"""

    def __init__(self, message: str, reference: str | None = None):
        details = {"reference": reference} if reference else {}
        super().__init__(message, details)


class NotificationError(ApplicationError):
    """Raised when the notification transport cannot deliver an event"""

    def __init__(self, channel: str, message: str):
        super().__init__(message, {"channel": channel})


class DatabaseError(ApplicationError):
    """Raised when database operations fail"""

    def __init__(self, operation: str, message: str):
        details = {"operation": operation}
        super().__init__(message, details)
