"""Shared utilities for towerinsight."""

from .error_handler import (
    ConfigurationError,
    ErrorHandler,
    LLMError,
    ServiceError,
    StorageError,
)

__all__ = [
    # Utility classes
    "ErrorHandler",
    # Exception classes
    "ServiceError",
    "StorageError",
    "LLMError",
    "ConfigurationError",
]
