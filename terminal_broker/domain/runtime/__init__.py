"""
Container runtime module.

Wraps the Docker Engine API behind the RuntimeClient protocol.
"""

from terminal_broker.domain.runtime.base import RuntimeClient
from terminal_broker.domain.runtime.docker_runtime import DockerRuntime
from terminal_broker.domain.runtime.factory import connect_runtime

__all__ = ["RuntimeClient", "DockerRuntime", "connect_runtime"]
