"""
OpenAPI / Swagger documentation for the Terminal Broker API.

Uses Flasgger to serve Swagger UI at /apidocs and the JSON spec at /apispec_1.json.
"""

from __future__ import annotations

from flask import Flask
from flasgger import Swagger


SWAGGER_TEMPLATE: dict = {
    "info": {
        "title": "Terminal Broker API",
        "version": "1.0.0",
        "description": (
            "REST API for creating and terminating sandboxed CLI terminal "
            "sessions, browsing their workspaces and managing credentials."
        ),
    },
    "definitions": {
        "ErrorResponse": {
            "type": "object",
            "properties": {
                "success": {"type": "boolean", "example": False},
                "error": {"type": "string"},
            },
        },
        "HealthResponse": {
            "type": "object",
            "properties": {
                "status": {"type": "string", "enum": ["healthy", "degraded"]},
                "runtime": {"type": "boolean"},
                "sessions": {"type": "integer"},
                "vault": {"type": "boolean"},
            },
        },
        "Session": {
            "type": "object",
            "properties": {
                "id": {"type": "string", "example": "claude-1718000000000"},
                "containerId": {"type": "string"},
                "name": {"type": "string", "example": "Claude Terminal 1"},
                "type": {"type": "string", "enum": ["claude", "gemini", "openai"]},
                "port": {"type": "integer", "example": 7681},
                "workspaceDir": {"type": "string"},
                "created": {"type": "string", "format": "date-time"},
            },
        },
        "CreateSessionPayload": {
            "type": "object",
            "properties": {
                "name": {"type": "string", "example": "My terminal"},
                "type": {"type": "string", "enum": ["claude", "gemini", "openai"], "default": "claude"},
            },
        },
        "FileEntry": {
            "type": "object",
            "properties": {
                "name": {"type": "string"},
                "type": {"type": "string", "enum": ["file", "directory", "symlink"]},
                "size": {"type": "integer"},
                "modified": {"type": "string", "format": "date-time"},
            },
        },
        "ApiKeysPayload": {
            "type": "object",
            "properties": {
                "anthropic": {"type": "string"},
                "gemini": {"type": "string"},
                "openai": {"type": "string"},
            },
        },
    },
}

SWAGGER_CONFIG: dict = {
    "headers": [],
    "specs": [
        {
            "endpoint": "apispec_1",
            "route": "/apispec_1.json",
            "rule_filter": lambda rule: True,
            "model_filter": lambda tag: True,
        }
    ],
    "static_url_path": "/flasgger_static",
    "swagger_ui": True,
    "specs_route": "/apidocs/",
}


def init_swagger(app: Flask) -> Swagger:
    """Initialize Flasgger and exempt Swagger UI from the rate limiter."""
    swagger = Swagger(app, template=SWAGGER_TEMPLATE, config=SWAGGER_CONFIG)

    from terminal_broker.api.rate_limit import limiter

    for name in ("flasgger.apidocs", "flasgger.apispec_1"):
        view = app.view_functions.get(name)
        if view is not None:
            limiter.exempt(view)

    return swagger
