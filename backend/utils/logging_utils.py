"""
Structured Logging Utilities

Adds per-run context (job id, organization, operation) to log records.
Context lives in a ContextVar, so each asyncio task carries its own copy and
concurrent pipeline runs do not see each other's values.
"""

import inspect
import logging
from contextvars import ContextVar
from functools import wraps
from typing import Any, Dict, Optional


_logging_context: ContextVar[Dict[str, Any]] = ContextVar('logging_context', default={})

_CONTEXT_KEYS = ("job_id", "organization", "user_id")


class StructuredLogger:
    """
    Wrapper around a standard logger that merges the current context into
    each record's ``extra``.

    Usage:
        logger = StructuredLogger(__name__)
        logger.info("Checkpoint persisted", extra={"progress": 50})
    """

    def __init__(self, name: str):
        self.logger = logging.getLogger(name)

    def _merge(self, extra: Optional[Dict[str, Any]]) -> Dict[str, Any]:
        context = _logging_context.get().copy()
        if extra:
            context.update(extra)
        return context

    def _prefix(self, message: str, context: Dict[str, Any]) -> str:
        job_id = context.get("job_id")
        return f"[job {job_id}] {message}" if job_id else message

    def debug(self, message: str, extra: Optional[Dict[str, Any]] = None):
        context = self._merge(extra)
        self.logger.debug(self._prefix(message, context), extra=context)

    def info(self, message: str, extra: Optional[Dict[str, Any]] = None):
        context = self._merge(extra)
        self.logger.info(self._prefix(message, context), extra=context)

    def warning(self, message: str, extra: Optional[Dict[str, Any]] = None):
        context = self._merge(extra)
        self.logger.warning(self._prefix(message, context), extra=context)

    def error(self, message: str, extra: Optional[Dict[str, Any]] = None, exc_info: bool = False):
        context = self._merge(extra)
        self.logger.error(self._prefix(message, context), extra=context, exc_info=exc_info)


def set_logging_context(**kwargs):
    """
    Add key-value pairs to the logging context of the current task.

    Example:
        set_logging_context(job_id=job.id, organization=job.organization)
    """
    context = _logging_context.get().copy()
    context.update(kwargs)
    _logging_context.set(context)


def clear_logging_context():
    _logging_context.set({})


def log_operation(operation_name: str):
    """
    Decorator logging start, completion and failure of an operation.

    Identifiers named in _CONTEXT_KEYS are picked up from keyword arguments
    and from positional arguments matched against the signature.
    """
    def decorator(func):
        signature = inspect.signature(func)

        def _context_for(args, kwargs) -> Dict[str, Any]:
            context = {"operation": operation_name}
            try:
                bound = signature.bind_partial(*args, **kwargs)
            except TypeError:
                return context
            for key in _CONTEXT_KEYS:
                if key in bound.arguments:
                    context[key] = bound.arguments[key]
            return context

        @wraps(func)
        async def async_wrapper(*args, **kwargs):
            logger = StructuredLogger(func.__module__)
            context = _context_for(args, kwargs)
            logger.info(f"Starting {operation_name}", extra=context)
            try:
                result = await func(*args, **kwargs)
            except Exception as e:
                context["error"] = str(e)
                context["error_type"] = type(e).__name__
                logger.error(f"Failed {operation_name}", extra=context, exc_info=True)
                raise
            logger.info(f"Completed {operation_name}", extra=context)
            return result

        @wraps(func)
        def sync_wrapper(*args, **kwargs):
            logger = StructuredLogger(func.__module__)
            context = _context_for(args, kwargs)
            logger.info(f"Starting {operation_name}", extra=context)
            try:
                result = func(*args, **kwargs)
            except Exception as e:
                context["error"] = str(e)
                context["error_type"] = type(e).__name__
                logger.error(f"Failed {operation_name}", extra=context, exc_info=True)
                raise
            logger.info(f"Completed {operation_name}", extra=context)
            return result

        if inspect.iscoroutinefunction(func):
            return async_wrapper
        return sync_wrapper

    return decorator
