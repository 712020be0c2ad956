"""
Session lifecycle management: create, list, terminate, stats.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from terminal_broker.config.models import SessionTypeConfig, SessionTypesConfig
from terminal_broker.config.secrets import CredentialStore
from terminal_broker.config.settings import (
    LABEL_CREATED,
    LABEL_MANAGED,
    LABEL_NAME,
    LABEL_PORT,
    LABEL_SESSION_ID,
    LABEL_SESSION_TYPE,
    LABEL_WORKSPACE,
    SESSION_ID_PATTERN,
    TERMINAL_PORT,
    WORKSPACE_MOUNT_POINT,
)
from terminal_broker.domain.errors import (
    ConfigurationError,
    Conflict,
    InvalidArgument,
    NotFound,
    RuntimeOperationFailed,
)
from terminal_broker.domain.ports import PortAllocator
from terminal_broker.domain.registry import SessionRegistry
from terminal_broker.domain.runtime.base import RuntimeClient
from terminal_broker.domain.types import ContainerSpec, ManagedContainer, Session, SessionType
from terminal_broker.domain.workspace import WorkspaceProvisioner
from terminal_broker.observability import (
    SESSION_CREATE_DURATION,
    SESSIONS_CREATED,
    collect_business_metrics,
)

logger = logging.getLogger("terminal-broker")


def _utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def parse_session_type(value: SessionType | str) -> SessionType:
    """
    Validate a session type value.

    Raises:
        InvalidArgument: If the value is not a known session type
    """
    if isinstance(value, SessionType):
        return value
    try:
        return SessionType(value)
    except ValueError:
        raise InvalidArgument(
            f"Invalid session type: {value!r} (expected one of {', '.join(SessionType.values())})"
        ) from None


class SessionLifecycleManager:
    """
    Orchestrates workspace, port and container for each session.

    Create is synchronous: it either returns a registered, running session
    or raises and leaves no registry entry, no reserved port and no new
    workspace directory behind. Terminate removes a session only after the
    daemon confirmed the stop.
    """

    def __init__(
        self,
        runtime: RuntimeClient,
        registry: SessionRegistry,
        ports: PortAllocator,
        workspaces: WorkspaceProvisioner,
        credentials: CredentialStore,
        session_types: SessionTypesConfig,
        internal_port: int = TERMINAL_PORT,
        mount_point: str = WORKSPACE_MOUNT_POINT,
    ) -> None:
        self.runtime = runtime
        self.registry = registry
        self.ports = ports
        self.workspaces = workspaces
        self.credentials = credentials
        self.session_types = session_types
        self.internal_port = internal_port
        self.mount_point = mount_point

    # ------------------------------------------------------------------
    # Images
    # ------------------------------------------------------------------

    def ensure_image(self, type_config: SessionTypeConfig) -> None:
        """
        Build the session image if the daemon does not have it.

        Raises:
            RuntimeOperationFailed: If the build fails
        """
        if self.runtime.image_exists(type_config.image):
            return
        logger.info(f"Image {type_config.image} missing, building")
        self.runtime.build_image(type_config.image, type_config.dockerfile)

    def ensure_images(self) -> None:
        """Ensure every session image at startup. Build failures are logged, not raised."""
        for session_type in SessionType:
            type_config = self.session_types.for_type(session_type)
            try:
                self.ensure_image(type_config)
            except RuntimeOperationFailed as e:
                logger.error(f"Could not prepare image for {session_type.value}: {e}")

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def create(self, session_type: SessionType | str, name: str | None = None) -> Session:
        """
        Create and start a new session.

        Args:
            session_type: Session type (enum member or its value)
            name: Optional display name; defaults to "<Label> Terminal <n>"

        Returns:
            The registered Session

        Raises:
            InvalidArgument: Unknown session type
            ConfigurationError: Credential for the type is not configured
            RuntimeOperationFailed: Image build or container start failed
        """
        session_type = parse_session_type(session_type)
        type_config = self.session_types.for_type(session_type)

        credential = self.credentials.get(type_config.credential_env)
        if not credential:
            raise ConfigurationError(
                f"{type_config.credential_env} is not configured for {session_type.value} sessions"
            )

        with SESSION_CREATE_DURATION.time():
            self.ensure_image(type_config)

            reservation = self.registry.reserve(session_type, self.ports)
            session_id = reservation.session_id
            display_name = (name or "").strip() or f"{type_config.label} Terminal {reservation.ordinal}"
            created = _utc_now_iso()
            workspace: Path | None = None
            fresh_workspace = False

            try:
                workspace, fresh_workspace = self.workspaces.provision(session_id)
                spec = ContainerSpec(
                    image=type_config.image,
                    name=session_id,
                    environment={type_config.credential_env: credential},
                    host_port=reservation.port,
                    internal_port=self.internal_port,
                    mount_source=self.workspaces.mount_source(workspace),
                    mount_target=self.mount_point,
                    labels={
                        LABEL_MANAGED: "true",
                        LABEL_SESSION_ID: session_id,
                        LABEL_SESSION_TYPE: session_type.value,
                        LABEL_NAME: display_name,
                        LABEL_PORT: str(reservation.port),
                        LABEL_WORKSPACE: str(workspace),
                        LABEL_CREATED: created,
                    },
                    auto_remove=True,
                )
                container_id = self.runtime.create_and_start(spec)
            except Exception:
                self.registry.release(session_id)
                if fresh_workspace:
                    # A reused workspace holds earlier user files
                    self._discard_workspace(workspace)
                raise

            session = Session(
                session_id=session_id,
                container_id=container_id,
                name=display_name,
                session_type=session_type,
                port=reservation.port,
                workspace_dir=workspace,
                created=created,
            )
            self.registry.commit(session)

        SESSIONS_CREATED.labels(type=session_type.value).inc()
        collect_business_metrics(self.registry)
        logger.info(f"Session {session_id} created: {display_name} on port {reservation.port}")
        return session

    def list(self) -> list[Session]:
        return self.registry.list()

    def get(self, session_id: str) -> Session:
        """
        Look up a registered session.

        Raises:
            NotFound: If the id is not registered
        """
        session = self.registry.get(session_id)
        if session is None:
            raise NotFound("Container not found")
        return session

    def terminate(self, session_id: str) -> None:
        """
        Stop a session's container and unregister it.

        The registry entry is removed only after the stop succeeded; a failed
        stop leaves the session registered so the caller can retry.

        Raises:
            NotFound: If the id is not registered
            RuntimeOperationFailed: If the daemon rejected the stop
        """
        session = self.get(session_id)
        self.runtime.stop(session.container_id)
        self.registry.remove(session_id)
        collect_business_metrics(self.registry)
        logger.info(f"Session {session_id} terminated (workspace kept at {session.workspace_dir})")

    def stats(self, session_id: str) -> dict[str, Any]:
        session = self.get(session_id)
        return self.runtime.stats(session.container_id)

    def delete_workspace(self, name: str) -> None:
        """
        Delete a workspace folder that no session uses.

        The check and the delete run under the registry lock, so a create
        reserving the same id waits until the folder is gone.

        Raises:
            InvalidArgument: If the name is unsafe
            Conflict: If a running or starting session owns the folder
            NotFound: If no such folder exists
        """
        self.workspaces.path_for(name)
        if not self.registry.run_if_free(name, lambda: self.workspaces.delete_folder(name)):
            raise Conflict(f"Workspace {name} is in use by a running session")

    # ------------------------------------------------------------------
    # Startup reconciliation
    # ------------------------------------------------------------------

    def reconcile(self) -> int:
        """
        Rehydrate the registry from running broker-managed containers.

        Containers whose labels do not describe a complete session are
        skipped.

        Returns:
            Number of sessions adopted
        """
        try:
            containers = self.runtime.list_managed()
        except RuntimeOperationFailed as e:
            logger.error(f"Reconciliation skipped: {e}")
            return 0

        adopted = 0
        for container in containers:
            session = self._session_from_container(container)
            if session is None:
                continue
            if self.registry.adopt(session):
                adopted += 1
                logger.info(f"Adopted running session {session.session_id} on port {session.port}")

        collect_business_metrics(self.registry)
        if adopted:
            logger.info(f"Reconciled {adopted} sessions from the Docker daemon")
        return adopted

    def _session_from_container(self, container: ManagedContainer) -> Session | None:
        labels = container.labels
        try:
            session_id = labels[LABEL_SESSION_ID]
            if not SESSION_ID_PATTERN.match(session_id):
                raise ValueError(f"bad session id {session_id!r}")
            session_type = SessionType(labels[LABEL_SESSION_TYPE])
            port = int(labels[LABEL_PORT])
            workspace = self.workspaces.path_for(session_id)
        except (KeyError, ValueError, InvalidArgument) as e:
            logger.warning(f"Ignoring container {container.name}: incomplete labels ({e})")
            return None

        if labels.get(LABEL_WORKSPACE) and Path(labels[LABEL_WORKSPACE]) != workspace:
            logger.warning(
                f"Container {container.name} workspace label {labels[LABEL_WORKSPACE]} "
                f"differs from {workspace}, using the latter"
            )

        type_config = self.session_types.for_type(session_type)
        return Session(
            session_id=session_id,
            container_id=container.container_id,
            name=labels.get(LABEL_NAME) or f"{type_config.label} Terminal",
            session_type=session_type,
            port=port,
            workspace_dir=workspace,
            created=labels.get(LABEL_CREATED) or _utc_now_iso(),
        )

    def _discard_workspace(self, workspace: Path) -> None:
        try:
            self.workspaces.remove(workspace)
        except OSError as e:
            logger.warning(f"Could not remove workspace {workspace} after failed create: {e}")
