"""
Flask API routes for the Terminal Broker.

Domain errors raised here are rendered by the BrokerError handler in app.py.
"""

from __future__ import annotations

import logging

from flask import Blueprint, Response, jsonify, request

from terminal_broker.api import rate_limit
from terminal_broker.api.audit import audit_log_response
from terminal_broker.api.responses import api_success
from terminal_broker.api.validators import (
    ValidationError,
    validate_credential,
    validate_display_name,
    validate_session_type,
)
from terminal_broker.config.loader import BrokerConfig
from terminal_broker.container import get_services
from terminal_broker.domain.errors import DaemonUnavailable
from terminal_broker.domain.types import SessionType
from terminal_broker.services.terminal import open_local_terminal

logger = logging.getLogger("terminal-broker")

# Type alias for Flask route returns
RouteResponse = tuple[Response, int]

limiter = rate_limit.limiter

# Create Blueprint
api = Blueprint("api", __name__)
api.after_request(audit_log_response)


# =============================================================================
# Health and Status
# =============================================================================

@api.route("/health")
@limiter.exempt
def health() -> RouteResponse:
    """Health check endpoint."""
    services = get_services()
    try:
        runtime_ok = services.runtime.ping()
    except DaemonUnavailable:
        runtime_ok = False

    return jsonify({
        "status": "healthy" if runtime_ok else "degraded",
        "runtime": runtime_ok,
        "sessions": len(services.registry),
        "vault": services.credentials.use_vault,
    }), 200 if runtime_ok else 503


@api.route("/api/secrets/status")
def secrets_status() -> RouteResponse:
    """Get credential store status."""
    return api_success(get_services().credentials.get_status())


@api.route("/api/config")
def get_config() -> RouteResponse:
    """Get broker configuration (non-sensitive)."""
    settings = BrokerConfig.settings()
    credentials = get_services().credentials
    session_types = {}
    for session_type in SessionType:
        type_config = settings.session_types.for_type(session_type)
        session_types[session_type.value] = {
            "label": type_config.label,
            "image": type_config.image,
            "configured": credentials.is_set(type_config.credential_env),
        }
    return api_success({
        "workspace_root": settings.workspace.root,
        "base_port": settings.sessions.base_port,
        "internal_port": settings.sessions.internal_port,
        "mount_point": settings.sessions.mount_point,
        "max_read_bytes": settings.sessions.max_read_bytes,
        "session_types": session_types,
        "local_terminal": settings.terminal.enabled,
    })


# =============================================================================
# Sessions
# =============================================================================

@api.route("/api/containers/create", methods=["POST"])
@limiter.limit(rate_limit.get_admin_limit)
def create_container() -> RouteResponse:
    """Create and start a new terminal session."""
    data = request.get_json(silent=True) or {}
    if not isinstance(data, dict):
        raise ValidationError("Request body must be a JSON object")

    session_type = validate_session_type(data.get("type"))
    name = validate_display_name(data.get("name"))

    session = get_services().manager.create(session_type, name)
    return api_success(session.to_dict())


@api.route("/api/containers")
def list_containers() -> RouteResponse:
    """List registered sessions in creation order."""
    sessions = get_services().manager.list()
    return jsonify([s.to_dict() for s in sessions]), 200


@api.route("/api/containers/<session_id>", methods=["DELETE"])
@limiter.limit(rate_limit.get_admin_limit)
def delete_container(session_id: str) -> RouteResponse:
    """Stop a session's container and unregister it."""
    get_services().manager.terminate(session_id)
    return api_success()


@api.route("/api/containers/<session_id>/stats")
def container_stats(session_id: str) -> RouteResponse:
    """Live resource statistics for a session's container."""
    return jsonify(get_services().manager.stats(session_id)), 200


# =============================================================================
# Workspace files
# =============================================================================

@api.route("/api/containers/<session_id>/files")
def browse_files(session_id: str) -> RouteResponse:
    """List a directory or describe a file inside the session workspace."""
    services = get_services()
    session = services.manager.get(session_id)
    result = services.files.browse(session.workspace_dir, request.args.get("path", ""))
    return jsonify(result), 200


@api.route("/api/containers/<session_id>/files/read")
def read_file(session_id: str) -> RouteResponse:
    """Read a text file inside the session workspace."""
    services = get_services()
    session = services.manager.get(session_id)
    result = services.files.read(session.workspace_dir, request.args.get("path"))
    return jsonify(result), 200


# =============================================================================
# Workspace folders
# =============================================================================

@api.route("/api/workspace/folders")
def list_workspace_folders() -> RouteResponse:
    """List workspace folders, including those of terminated sessions."""
    services = get_services()
    folders = services.workspaces.list_folders()
    for folder in folders:
        folder["active"] = services.registry.holds(folder["name"])
    return jsonify(folders), 200


@api.route("/api/workspace/folders/<name>", methods=["DELETE"])
@limiter.limit(rate_limit.get_admin_limit)
def delete_workspace_folder(name: str) -> RouteResponse:
    """Delete a workspace folder no registered session uses."""
    get_services().manager.delete_workspace(name)
    return api_success(message=f"Workspace {name} deleted")


# =============================================================================
# Settings
# =============================================================================

@api.route("/api/settings/api-keys", methods=["GET"])
def get_api_keys() -> RouteResponse:
    """Report which session types have a credential configured."""
    settings = BrokerConfig.settings()
    credentials = get_services().credentials
    configured = {}
    for session_type in SessionType:
        type_config = settings.session_types.for_type(session_type)
        configured[type_config.settings_key] = credentials.is_set(type_config.credential_env)
    return jsonify(configured), 200


@api.route("/api/settings/api-keys", methods=["POST"])
@limiter.limit(rate_limit.get_admin_limit)
def set_api_keys() -> RouteResponse:
    """Store API keys in memory for subsequent session creates."""
    data = request.get_json(silent=True) or {}
    if not isinstance(data, dict):
        raise ValidationError("Request body must be a JSON object")

    settings = BrokerConfig.settings()
    credentials = get_services().credentials
    updated = []
    for session_type in SessionType:
        type_config = settings.session_types.for_type(session_type)
        raw = data.get(type_config.settings_key)
        if raw is None or raw == "":
            continue
        value = validate_credential(type_config.settings_key, raw)
        if value:
            credentials.set_override(type_config.credential_env, value)
            updated.append(type_config.settings_key)

    return api_success({"updated": updated})


# =============================================================================
# Host integration
# =============================================================================

@api.route("/api/terminal/local", methods=["POST"])
@limiter.limit(rate_limit.get_admin_limit)
def open_terminal() -> RouteResponse:
    """Open a terminal window on the broker host in a session's workspace."""
    data = request.get_json(silent=True) or {}
    if not isinstance(data, dict):
        raise ValidationError("Request body must be a JSON object")

    session_id = data.get("containerId")
    if not session_id or not isinstance(session_id, str):
        raise ValidationError("containerId is required")

    session = get_services().manager.get(session_id)
    open_local_terminal(session.workspace_dir, enabled=BrokerConfig.settings().terminal.enabled)
    return api_success(message="Terminal opened")
