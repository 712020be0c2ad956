"""
Lightweight DI container for broker services.

Stored in ``app.extensions['services']`` during Flask context,
with a global fallback for code that runs outside a request.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from terminal_broker.config.secrets import CredentialStore
    from terminal_broker.domain.ports import PortAllocator
    from terminal_broker.domain.registry import SessionRegistry
    from terminal_broker.domain.runtime.base import RuntimeClient
    from terminal_broker.domain.sandbox import SandboxedFileAccessor
    from terminal_broker.domain.workspace import WorkspaceProvisioner
    from terminal_broker.services.lifecycle import SessionLifecycleManager


class ServiceContainer:
    """Lightweight service container holding shared service instances."""

    def __init__(self) -> None:
        self._runtime: RuntimeClient | None = None
        self._registry: SessionRegistry | None = None
        self._ports: PortAllocator | None = None
        self._workspaces: WorkspaceProvisioner | None = None
        self._files: SandboxedFileAccessor | None = None
        self._credentials: CredentialStore | None = None
        self._manager: SessionLifecycleManager | None = None

    @property
    def runtime(self) -> RuntimeClient:
        """Docker runtime. Raises DaemonUnavailable when no daemon answers."""
        if self._runtime is None:
            from terminal_broker.config.loader import BrokerConfig
            from terminal_broker.domain.runtime import factory

            self._runtime = factory.connect_runtime(BrokerConfig.settings().runtime)
        return self._runtime

    @property
    def registry(self) -> SessionRegistry:
        if self._registry is None:
            from terminal_broker.domain.registry import SessionRegistry

            self._registry = SessionRegistry()
        return self._registry

    @property
    def ports(self) -> PortAllocator:
        if self._ports is None:
            from terminal_broker.config.loader import BrokerConfig
            from terminal_broker.domain.ports import PortAllocator

            self._ports = PortAllocator(BrokerConfig.settings().sessions.base_port)
        return self._ports

    @property
    def workspaces(self) -> WorkspaceProvisioner:
        if self._workspaces is None:
            from terminal_broker.config.loader import BrokerConfig
            from terminal_broker.domain.workspace import WorkspaceProvisioner

            workspace = BrokerConfig.settings().workspace
            self._workspaces = WorkspaceProvisioner(workspace.root, workspace.host_root or None)
        return self._workspaces

    @property
    def files(self) -> SandboxedFileAccessor:
        if self._files is None:
            from terminal_broker.config.loader import BrokerConfig
            from terminal_broker.domain.sandbox import SandboxedFileAccessor

            self._files = SandboxedFileAccessor(BrokerConfig.settings().sessions.max_read_bytes)
        return self._files

    @property
    def credentials(self) -> CredentialStore:
        if self._credentials is None:
            from terminal_broker.config.secrets import credential_store

            self._credentials = credential_store
        return self._credentials

    @property
    def manager(self) -> SessionLifecycleManager:
        if self._manager is None:
            from terminal_broker.config.loader import BrokerConfig
            from terminal_broker.services.lifecycle import SessionLifecycleManager

            settings = BrokerConfig.settings()
            self._manager = SessionLifecycleManager(
                runtime=self.runtime,
                registry=self.registry,
                ports=self.ports,
                workspaces=self.workspaces,
                credentials=self.credentials,
                session_types=settings.session_types,
                internal_port=settings.sessions.internal_port,
                mount_point=settings.sessions.mount_point,
            )
        return self._manager


# Fallback for code outside Flask context (set once at startup in app.py)
_global_container: ServiceContainer | None = None


def get_services() -> ServiceContainer:
    """Return the service container.

    Tries ``current_app.extensions['services']`` first, then falls back
    to the module-level ``_global_container``.
    """
    try:
        from flask import current_app

        return current_app.extensions["services"]
    except (RuntimeError, KeyError):
        pass
    if _global_container is not None:
        return _global_container
    raise RuntimeError("ServiceContainer not initialized")
