"""
navcache/exceptions/__init__.py
Custom exceptions for the application.
"""

from .errors import (
    ConfigurationError,
    NavCacheException,
    PatternSerializationError,
)

__all__ = [
    "NavCacheException",
    "ConfigurationError",
    "PatternSerializationError",
]
