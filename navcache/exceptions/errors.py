"""
navcache/exceptions/errors.py
Custom exceptions with actionable error messages.

The caching core never raises for bad input; these are only used at the
edges (configuration loading, strict deserialization).
"""


class NavCacheException(Exception):
    """Base exception for all navcache errors."""

    def __init__(self, message: str, error_code: str = "UNKNOWN") -> None:
        self.message = message
        self.error_code = error_code
        super().__init__(f"[{error_code}] {message}")


class ConfigurationError(NavCacheException):
    """Raised when configuration values cannot be loaded or validated."""

    def __init__(self, message: str, field_name: str = "") -> None:
        super().__init__(
            f"Invalid configuration for '{field_name or '<root>'}': {message}",
            error_code="CONFIGURATION_ERROR",
        )
        self.field_name = field_name


class PatternSerializationError(NavCacheException):
    """Raised when serialized pattern data is malformed."""

    def __init__(self, reason: str) -> None:
        super().__init__(
            f"Cannot restore pattern table: {reason}",
            error_code="PATTERN_SERIALIZATION_ERROR",
        )
        self.reason = reason
