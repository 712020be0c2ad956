"""
Input validation functions for the API.
"""

from __future__ import annotations

from typing import Any

from terminal_broker.config.settings import MAX_DISPLAY_NAME_LENGTH
from terminal_broker.domain.errors import InvalidArgument
from terminal_broker.domain.types import SessionType
from terminal_broker.services.lifecycle import parse_session_type


class ValidationError(InvalidArgument):
    """Raised when request input validation fails."""
    pass


def validate_session_type(value: Any) -> SessionType:
    """
    Validate the ``type`` field of a create request.

    Args:
        value: Raw value from the request body; missing means ``claude``

    Returns:
        The SessionType

    Raises:
        InvalidArgument: If the value is not a known type
    """
    if value is None or value == "":
        return SessionType.CLAUDE
    if not isinstance(value, str):
        raise ValidationError("Session type must be a string")
    return parse_session_type(value)


def validate_display_name(value: Any) -> str | None:
    """
    Validate an optional display name.

    Returns:
        Stripped name, or None when absent or blank

    Raises:
        ValidationError: If the name is not a string or too long
    """
    if value is None:
        return None
    if not isinstance(value, str):
        raise ValidationError("Name must be a string")

    value = value.strip()
    if len(value) > MAX_DISPLAY_NAME_LENGTH:
        raise ValidationError(f"Name exceeds maximum length of {MAX_DISPLAY_NAME_LENGTH}")
    if any(ord(c) < 32 for c in value):
        raise ValidationError("Name contains control characters")
    return value or None


def validate_credential(field: str, value: Any) -> str:
    """
    Validate an API key supplied through the settings endpoint.

    Raises:
        ValidationError: If the value is not a single-line string
    """
    if not isinstance(value, str):
        raise ValidationError(f"{field} must be a string")
    value = value.strip()
    if any(c.isspace() for c in value):
        raise ValidationError(f"{field} must not contain whitespace")
    return value
