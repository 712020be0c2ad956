"""
Protocol for the container runtime boundary.
"""

from typing import Any, Protocol

from terminal_broker.domain.types import ContainerSpec, ManagedContainer


class RuntimeClient(Protocol):
    """Operations the broker needs from a container daemon."""

    def ping(self) -> bool:
        """
        Check that the daemon answers.

        Returns:
            True if reachable, False otherwise
        """
        ...

    def image_exists(self, name: str) -> bool:
        """
        Check whether an image is present locally.

        Daemon errors are reported as absence so the caller builds.
        """
        ...

    def build_image(self, name: str, dockerfile: str) -> None:
        """
        Build and tag an image from the configured build context.

        Raises:
            RuntimeOperationFailed: If the build fails
        """
        ...

    def create_and_start(self, spec: ContainerSpec) -> str:
        """
        Create and start a session container.

        Args:
            spec: Container specification

        Returns:
            Container id (runtime handle)

        Raises:
            RuntimeOperationFailed: If create or start fails; no container
                is left behind
        """
        ...

    def stop(self, container_id: str) -> None:
        """
        Stop a container. An already-removed container counts as stopped.

        Raises:
            RuntimeOperationFailed: If the daemon rejects the stop
        """
        ...

    def stats(self, container_id: str) -> dict[str, Any]:
        """
        One-shot resource counters.

        Returns:
            Dict with ``cpu``, ``memory`` and ``network`` keys, verbatim
        """
        ...

    def list_managed(self) -> list[ManagedContainer]:
        """
        List running containers labelled as managed by this broker.
        """
        ...
