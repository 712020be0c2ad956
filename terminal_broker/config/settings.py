"""
Constants and settings for the Terminal Broker.
"""

import re

# =============================================================================
# Constants
# =============================================================================

# ttyd listens on this port inside every session image
TERMINAL_PORT = 7681
BASE_HOST_PORT = 7681
WORKSPACE_MOUNT_POINT = "/workspace"
MAX_READ_BYTES = 1024 * 1024
STOP_TIMEOUT = 10

# Docker labels marking containers owned by this broker
LABEL_PREFIX = "terminal-broker"
LABEL_MANAGED = f"{LABEL_PREFIX}.managed"
LABEL_SESSION_ID = f"{LABEL_PREFIX}.session.id"
LABEL_SESSION_TYPE = f"{LABEL_PREFIX}.session.type"
LABEL_NAME = f"{LABEL_PREFIX}.name"
LABEL_PORT = f"{LABEL_PREFIX}.port"
LABEL_WORKSPACE = f"{LABEL_PREFIX}.workspace"
LABEL_CREATED = f"{LABEL_PREFIX}.created"

# Session ids double as container names and workspace folder names
SESSION_ID_PATTERN = re.compile(r'^[a-z]+-[0-9]+$')
FOLDER_NAME_PATTERN = re.compile(r'^[a-zA-Z0-9._-]+$')
MAX_FOLDER_NAME_LENGTH = 255
MAX_DISPLAY_NAME_LENGTH = 128


def get_env(key: str, default: str = None, required: bool = False) -> str:
    """
    Retrieve an environment variable with Vault support.

    Args:
        key: Configuration key
        default: Default value
        required: Whether the value is required

    Returns:
        Configuration value

    Raises:
        ValueError: If required value is missing
    """
    # Import here to avoid circular imports
    from terminal_broker.config.secrets import credential_store

    value = credential_store.get(key, default)
    if required and not value:
        raise ValueError(f"Required configuration missing: {key}")
    return value
