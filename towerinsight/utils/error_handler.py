"""
Failure containment for transforms, cache storage and model calls.

Chart transforms and response cache I/O must never take a dashboard or an
assistant request down with them. The helpers here run a callable and turn
any exception into a logged ``(result, error)`` pair; the exception classes
name the external dependency that failed.
"""

import traceback
from collections.abc import Callable
from typing import TypeVar

from loguru import logger

T = TypeVar("T")


class ServiceError(Exception):
    """An external dependency of towerinsight failed."""


class StorageError(ServiceError):
    """Response cache storage (file or S3) could not be read or written."""


class LLMError(ServiceError):
    """A model invocation failed or returned an unusable response."""


class ConfigurationError(ServiceError):
    """Cache, storage or model settings are invalid."""


class ErrorHandler:
    """Run callables and report failures as ``(result, error)`` tuples."""

    @staticmethod
    def safe_execute(
        func: Callable[..., T],
        *args,
        error_message_prefix: str = "Operation failed",
        **kwargs,
    ) -> tuple[T | None, str | None]:
        """
        Call ``func``, logging and returning any exception as a message.

        Args:
            func: Callable to run
            *args: Positional arguments for ``func``
            error_message_prefix: Text placed before the exception message
            **kwargs: Keyword arguments for ``func``

        Returns:
            ``(result, None)`` on success, ``(None, message)`` on failure

        """
        try:
            return func(*args, **kwargs), None
        except Exception as e:
            error_msg = f"{error_message_prefix}: {e}"
            if isinstance(e, ServiceError):
                logger.error(error_msg)
            else:
                # Unexpected failure inside our own code
                logger.error(f"{error_msg} ({type(e).__name__})")
                logger.debug(f"Traceback: {traceback.format_exc()}")
            return None, error_msg

    @staticmethod
    def safe_execute_with_default(
        func: Callable[..., T],
        default_value: T,
        *args,
        error_message_prefix: str = "Operation failed",
        **kwargs,
    ) -> tuple[T, str | None]:
        """Like ``safe_execute`` but substitute ``default_value`` on failure."""
        result, error = ErrorHandler.safe_execute(
            func, *args, error_message_prefix=error_message_prefix, **kwargs
        )
        if error is not None:
            return default_value, error
        return result, None

    @staticmethod
    def safe_storage_operation(
        operation: Callable[..., T],
        *args,
        operation_name: str = "Cache storage operation",
        **kwargs,
    ) -> tuple[T | None, str | None]:
        """
        Run a response cache storage call; a failure degrades to memory-only.

        Args:
            operation: Storage ``load`` or ``save`` bound method
            *args: Arguments for the operation
            operation_name: Label used in the error message
            **kwargs: Keyword arguments for the operation

        Returns:
            ``(result, error_message)``

        """
        return ErrorHandler.safe_execute(
            operation, *args, error_message_prefix=f"{operation_name} failed", **kwargs
        )
