"""
API response helpers for standardized responses.
"""

from typing import Any

from flask import jsonify, Response


def api_success(data: dict[str, Any] | None = None, message: str = None, status_code: int = 200) -> tuple[Response, int]:
    """
    Create a success API response.

    Fields of ``data`` are returned at the top level next to ``success``,
    the shape the browser client reads session records in.

    Args:
        data: Response fields
        message: Optional success message
        status_code: HTTP status code

    Returns:
        Tuple of (response, status_code)
    """
    response: dict[str, Any] = {"success": True}
    if data:
        response.update(data)
    if message:
        response["message"] = message
    return jsonify(response), status_code


def api_error(message: str, status_code: int = 400, details: Any = None) -> tuple[Response, int]:
    """
    Create a standardized error API response.

    Args:
        message: Error message
        status_code: HTTP status code
        details: Optional error details

    Returns:
        Tuple of (response, status_code)
    """
    response = {"success": False, "error": message}
    if details:
        response["details"] = details
    return jsonify(response), status_code
