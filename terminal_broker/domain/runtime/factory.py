"""
Factory for connecting the runtime client.
"""

from __future__ import annotations

import logging
import os

import docker
import docker.errors
import requests

from terminal_broker.config.models import RuntimeConfig
from terminal_broker.domain.errors import DaemonUnavailable
from terminal_broker.domain.runtime.docker_runtime import DockerRuntime

logger = logging.getLogger("terminal-broker")


def _expand_url(url: str) -> str:
    """Expand ``~`` in unix socket URLs (``unix://~/.docker/run/docker.sock``)."""
    scheme, sep, path = url.partition("://")
    if sep and scheme == "unix":
        return f"unix://{os.path.expanduser(path)}"
    return url


def _open_client(base_url: str) -> docker.DockerClient:
    if not base_url:
        return docker.from_env()
    return docker.DockerClient(base_url=_expand_url(base_url))


def connect_runtime(config: RuntimeConfig) -> DockerRuntime:
    """
    Connect to the Docker daemon.

    Probes the primary target (``config.base_url``, or DOCKER_HOST / the
    platform default when empty), then the fallback target once.

    Args:
        config: Runtime settings

    Returns:
        DockerRuntime bound to the first daemon that answered ping

    Raises:
        DaemonUnavailable: If neither target answers
    """
    targets = [config.base_url]
    if config.fallback_url and config.fallback_url != config.base_url:
        targets.append(config.fallback_url)

    errors: list[str] = []
    for target in targets:
        label = target or "environment default"
        try:
            client = _open_client(target)
            client.ping()
        except (docker.errors.DockerException, requests.RequestException) as e:
            logger.warning(f"Docker daemon not reachable at {label}: {e}")
            errors.append(f"{label}: {e}")
            continue
        logger.info(f"Connected to Docker daemon at {label}")
        return DockerRuntime(
            client,
            build_context=config.build_context,
            stop_timeout=config.stop_timeout,
        )

    raise DaemonUnavailable("Docker daemon unavailable (" + "; ".join(errors) + ")")
