"""
Tests for custom exceptions.
"""

import pytest

from navcache.exceptions import ConfigurationError, NavCacheException, PatternSerializationError


def test_configuration_error_message():
    """Test the field name and code appear in the message."""
    error = ConfigurationError("must be >= 0", field_name="cache.capacity")

    assert isinstance(error, NavCacheException)
    assert error.error_code == "CONFIGURATION_ERROR"
    assert str(error) == "[CONFIGURATION_ERROR] Invalid configuration for 'cache.capacity': must be >= 0"


def test_configuration_error_without_field():
    """Test root-level errors are labelled."""
    assert "'<root>'" in str(ConfigurationError("bad file"))


def test_pattern_serialization_error():
    """Test the reason is kept."""
    with pytest.raises(NavCacheException) as exc_info:
        raise PatternSerializationError("unsupported version 9")

    assert exc_info.value.reason == "unsupported version 9"
    assert exc_info.value.error_code == "PATTERN_SERIALIZATION_ERROR"
