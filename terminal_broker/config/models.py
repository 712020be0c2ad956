"""
Pydantic models for broker configuration.

Mirrors the defaults dict in loader.py, providing typed access
to all terminal-broker.yml settings via BrokerConfig.settings().
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict

from terminal_broker.config.settings import (
    BASE_HOST_PORT,
    MAX_READ_BYTES,
    STOP_TIMEOUT,
    TERMINAL_PORT,
    WORKSPACE_MOUNT_POINT,
)
from terminal_broker.domain.types import SessionType


class RuntimeConfig(BaseModel):
    model_config = ConfigDict(extra="ignore")

    # Empty base_url means DOCKER_HOST / the platform default socket
    base_url: str = ""
    fallback_url: str = "unix://~/.docker/run/docker.sock"
    build_context: str = "/app/images"
    stop_timeout: int = STOP_TIMEOUT


class SessionsConfig(BaseModel):
    model_config = ConfigDict(extra="ignore")

    base_port: int = BASE_HOST_PORT
    internal_port: int = TERMINAL_PORT
    mount_point: str = WORKSPACE_MOUNT_POINT
    max_read_bytes: int = MAX_READ_BYTES
    reconcile_on_startup: bool = True
    build_images_on_startup: bool = True


class WorkspaceConfig(BaseModel):
    model_config = ConfigDict(extra="ignore")

    root: str = "/data/workspace/containers"
    # Set when the broker itself runs in a container: the same directory as
    # seen by the Docker daemon on the host
    host_root: str = ""


class SessionTypeConfig(BaseModel):
    model_config = ConfigDict(extra="ignore")

    label: str
    image: str
    dockerfile: str
    credential_env: str
    settings_key: str


class SessionTypesConfig(BaseModel):
    """One entry per SessionType member; the set of types is fixed."""

    model_config = ConfigDict(extra="ignore")

    claude: SessionTypeConfig = SessionTypeConfig(
        label="Claude",
        image="whaleos-claude",
        dockerfile="dockerfile",
        credential_env="ANTHROPIC_API_KEY",
        settings_key="anthropic",
    )
    gemini: SessionTypeConfig = SessionTypeConfig(
        label="Gemini",
        image="whaleos-gemini",
        dockerfile="dockerfile.gemini",
        credential_env="GEMINI_API_KEY",
        settings_key="gemini",
    )
    openai: SessionTypeConfig = SessionTypeConfig(
        label="OpenAI",
        image="whaleos-openai",
        dockerfile="dockerfile.openai",
        credential_env="OPENAI_API_KEY",
        settings_key="openai",
    )

    def for_type(self, session_type: SessionType) -> SessionTypeConfig:
        return getattr(self, session_type.value)


class TerminalConfig(BaseModel):
    model_config = ConfigDict(extra="ignore")

    enabled: bool = True


class UIConfig(BaseModel):
    model_config = ConfigDict(extra="ignore")

    static_dir: str = ""


class RateLimitingConfig(BaseModel):
    model_config = ConfigDict(extra="ignore")

    enabled: bool = True
    default_limit: str = "300/minute"
    admin_limit: str = "30/minute"


class SecurityConfig(BaseModel):
    model_config = ConfigDict(extra="ignore")

    rate_limiting: RateLimitingConfig = RateLimitingConfig()


class LoggingConfig(BaseModel):
    model_config = ConfigDict(extra="ignore")

    level: str = "INFO"


class BrokerSettings(BaseModel):
    """Root settings model mirroring terminal-broker.yml structure."""

    model_config = ConfigDict(extra="ignore")

    runtime: RuntimeConfig = RuntimeConfig()
    sessions: SessionsConfig = SessionsConfig()
    workspace: WorkspaceConfig = WorkspaceConfig()
    session_types: SessionTypesConfig = SessionTypesConfig()
    terminal: TerminalConfig = TerminalConfig()
    ui: UIConfig = UIConfig()
    security: SecurityConfig = SecurityConfig()
    logging: LoggingConfig = LoggingConfig()
