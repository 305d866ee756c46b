"""
Error handling decorators and utilities for API endpoints.

Application exceptions raised by the services are translated to
HTTPException in one place instead of in every route.
"""

import inspect
import logging
from functools import wraps
from typing import Callable

from fastapi import HTTPException

from constants import HTTPStatus
from exceptions import (
    ApplicationError,
    AuthenticationError,
    ClassifierError,
    ConfigurationError,
    DatabaseError,
    JobNotFoundError,
    PermissionDeniedError,
    StorageError,
    UserNotFoundError,
    ValidationError,
)

logger = logging.getLogger(__name__)


def to_http_exception(operation_name: str, error: Exception) -> HTTPException:
    """
    Map an exception raised inside a route to the HTTPException to return.

    Client errors are logged as warnings, server errors with a traceback.
    """
    if isinstance(error, HTTPException):
        return error

    if isinstance(error, (ValidationError, ConfigurationError)):
        logger.warning(f"{operation_name} - Validation error: {error.message}")
        return HTTPException(status_code=HTTPStatus.BAD_REQUEST, detail=error.message)

    if isinstance(error, AuthenticationError):
        logger.warning(f"{operation_name} - Authentication error: {error.message}")
        return HTTPException(
            status_code=HTTPStatus.UNAUTHORIZED,
            detail=error.message,
            headers={"WWW-Authenticate": "Bearer"},
        )

    if isinstance(error, PermissionDeniedError):
        logger.warning(f"{operation_name} - Permission denied: {error.message}")
        return HTTPException(status_code=HTTPStatus.FORBIDDEN, detail=error.message)

    if isinstance(error, (JobNotFoundError, UserNotFoundError)):
        logger.warning(f"{operation_name} - Not found: {error.message}")
        return HTTPException(status_code=HTTPStatus.NOT_FOUND, detail=error.message)

    if isinstance(error, (StorageError, ClassifierError)):
        logger.error(f"{operation_name} - Upstream service error: {error.message}", exc_info=error)
        return HTTPException(
            status_code=HTTPStatus.BAD_GATEWAY,
            detail=f"Upstream service failed: {error.message}",
        )

    if isinstance(error, DatabaseError):
        logger.error(f"{operation_name} - Database error: {error.message}", exc_info=error)
        return HTTPException(
            status_code=HTTPStatus.INTERNAL_SERVER_ERROR,
            detail="Database operation failed",
        )

    if isinstance(error, ApplicationError):
        logger.error(f"{operation_name} - Application error: {error.message}", exc_info=error)
        return HTTPException(
            status_code=HTTPStatus.INTERNAL_SERVER_ERROR,
            detail=f"{operation_name} failed: {error.message}",
        )

    logger.error(f"{operation_name} - Unexpected error: {error}", exc_info=error)
    return HTTPException(
        status_code=HTTPStatus.INTERNAL_SERVER_ERROR,
        detail=f"{operation_name} failed. Please check server logs or contact support.",
    )


def handle_api_errors(operation_name: str):
    """
    Decorator to handle application errors consistently across endpoints.

    Args:
        operation_name: Human-readable name of the operation (e.g., "Video upload")

    Example:
        @router.get("/{video_id}")
        @handle_api_errors("Get video")
        def get_video(...):
            return service.get(principal, video_id)
    """
    def decorator(func: Callable):
        @wraps(func)
        async def async_wrapper(*args, **kwargs):
            try:
                return await func(*args, **kwargs)
            except Exception as e:
                raise to_http_exception(operation_name, e) from e

        @wraps(func)
        def sync_wrapper(*args, **kwargs):
            try:
                return func(*args, **kwargs)
            except Exception as e:
                raise to_http_exception(operation_name, e) from e

        if inspect.iscoroutinefunction(func):
            return async_wrapper
        return sync_wrapper

    return decorator
