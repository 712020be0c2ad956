"""Configuration module for the Terminal Broker."""

from terminal_broker.config.settings import (
    TERMINAL_PORT,
    BASE_HOST_PORT,
    WORKSPACE_MOUNT_POINT,
    MAX_READ_BYTES,
    SESSION_ID_PATTERN,
    FOLDER_NAME_PATTERN,
    get_env,
)
from terminal_broker.config.secrets import credential_store, CredentialStore
from terminal_broker.config.loader import (
    BrokerConfig,
    CONFIG_PATH,
    BROKER_CONFIG_FILE,
)

__all__ = [
    "TERMINAL_PORT",
    "BASE_HOST_PORT",
    "WORKSPACE_MOUNT_POINT",
    "MAX_READ_BYTES",
    "SESSION_ID_PATTERN",
    "FOLDER_NAME_PATTERN",
    "get_env",
    "credential_store",
    "CredentialStore",
    "BrokerConfig",
    "CONFIG_PATH",
    "BROKER_CONFIG_FILE",
]
