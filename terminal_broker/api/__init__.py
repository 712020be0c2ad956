"""API module for Flask routes and helpers."""

from terminal_broker.api.validators import (
    ValidationError,
    validate_session_type,
    validate_display_name,
    validate_credential,
)
from terminal_broker.api.responses import api_success, api_error

__all__ = [
    "ValidationError",
    "validate_session_type",
    "validate_display_name",
    "validate_credential",
    "api_success",
    "api_error",
]
