"""
Docker implementation of the runtime client.
"""

from __future__ import annotations

import logging
from typing import Any

import docker
import docker.errors
import requests

from terminal_broker.config.settings import LABEL_MANAGED, STOP_TIMEOUT
from terminal_broker.domain.errors import RuntimeOperationFailed
from terminal_broker.domain.types import ContainerSpec, ManagedContainer
from terminal_broker.observability import RUNTIME_ERRORS_TOTAL

logger = logging.getLogger("terminal-broker")


def _failed(operation: str, error: Exception) -> RuntimeOperationFailed:
    RUNTIME_ERRORS_TOTAL.labels(operation=operation).inc()
    return RuntimeOperationFailed(operation, str(error))


class DockerRuntime:
    """Docker-based runtime client."""

    def __init__(
        self,
        client: docker.DockerClient,
        build_context: str = ".",
        stop_timeout: int = STOP_TIMEOUT,
    ) -> None:
        """
        Args:
            client: Connected Docker client
            build_context: Directory holding the session Dockerfiles
            stop_timeout: Seconds to wait before SIGKILL on stop
        """
        self._client = client
        self.build_context = build_context
        self.stop_timeout = stop_timeout

    @property
    def client(self) -> docker.DockerClient:
        """Get the Docker client."""
        return self._client

    def ping(self) -> bool:
        try:
            return bool(self._client.ping())
        except (docker.errors.DockerException, requests.RequestException) as e:
            logger.warning(f"Docker ping failed: {e}")
            return False

    def image_exists(self, name: str) -> bool:
        try:
            self._client.images.get(name)
            return True
        except docker.errors.ImageNotFound:
            return False
        except (docker.errors.DockerException, requests.RequestException) as e:
            logger.warning(f"Error inspecting image {name}, assuming absent: {e}")
            return False

    def build_image(self, name: str, dockerfile: str) -> None:
        logger.info(f"Building image {name} from {self.build_context}/{dockerfile}")
        try:
            self._client.images.build(
                path=self.build_context,
                dockerfile=dockerfile,
                tag=name,
                rm=True,
            )
        except (docker.errors.DockerException, requests.RequestException, OSError, TypeError) as e:
            logger.error(f"Image build failed for {name}: {e}")
            raise _failed("build", e) from e
        logger.info(f"Image {name} built")

    def create_and_start(self, spec: ContainerSpec) -> str:
        try:
            container = self._client.containers.create(
                spec.image,
                name=spec.name,
                environment=spec.environment,
                ports={f"{spec.internal_port}/tcp": spec.host_port},
                volumes={spec.mount_source: {"bind": spec.mount_target, "mode": "rw"}},
                labels=spec.labels,
                auto_remove=spec.auto_remove,
            )
        except (docker.errors.DockerException, requests.RequestException) as e:
            logger.error(f"Error creating container {spec.name}: {e}")
            raise _failed("create", e) from e

        try:
            container.start()
        except (docker.errors.DockerException, requests.RequestException) as e:
            logger.error(f"Error starting container {spec.name}: {e}")
            # Never started, so auto_remove will not clean it up
            try:
                container.remove(force=True)
            except (docker.errors.DockerException, requests.RequestException) as cleanup_error:
                logger.warning(f"Could not remove unstarted container {spec.name}: {cleanup_error}")
            raise _failed("start", e) from e

        logger.info(
            f"Container {spec.name} started ({container.id[:12]}) on port {spec.host_port}"
        )
        return container.id

    def stop(self, container_id: str) -> None:
        try:
            container = self._client.containers.get(container_id)
            container.stop(timeout=self.stop_timeout)
        except docker.errors.NotFound:
            logger.info(f"Container {container_id[:12]} already removed")
            return
        except (docker.errors.DockerException, requests.RequestException) as e:
            logger.error(f"Error stopping container {container_id[:12]}: {e}")
            raise _failed("stop", e) from e
        logger.info(f"Container {container_id[:12]} stopped")

    def stats(self, container_id: str) -> dict[str, Any]:
        try:
            container = self._client.containers.get(container_id)
            stats = container.stats(stream=False)
        except (docker.errors.DockerException, requests.RequestException) as e:
            logger.error(f"Error reading stats for {container_id[:12]}: {e}")
            raise _failed("stats", e) from e
        return {
            "cpu": stats.get("cpu_stats"),
            "memory": stats.get("memory_stats"),
            "network": stats.get("networks"),
        }

    def list_managed(self) -> list[ManagedContainer]:
        try:
            containers = self._client.containers.list(
                filters={"label": f"{LABEL_MANAGED}=true"}
            )
        except (docker.errors.DockerException, requests.RequestException) as e:
            logger.error(f"Error listing containers: {e}")
            raise _failed("list", e) from e
        return [
            ManagedContainer(
                container_id=c.id,
                name=c.name,
                status=c.status,
                labels=dict(c.labels or {}),
            )
            for c in containers
        ]
