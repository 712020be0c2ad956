"""
Tests for terminal_broker.domain.runtime (Docker adapter and connection factory).
"""

from unittest.mock import MagicMock

import docker.errors
import pytest

from terminal_broker.config.models import RuntimeConfig
from terminal_broker.domain.errors import DaemonUnavailable, RuntimeOperationFailed
from terminal_broker.domain.runtime.docker_runtime import DockerRuntime
from terminal_broker.domain.types import ContainerSpec


@pytest.fixture
def docker_client():
    client = MagicMock()
    client.ping.return_value = True
    container = MagicMock()
    container.id = "abc123def4567890"
    client.containers.create.return_value = container
    client.containers.get.return_value = container
    return client


@pytest.fixture
def runtime(docker_client):
    return DockerRuntime(docker_client, build_context="/app/images", stop_timeout=5)


@pytest.fixture
def spec():
    return ContainerSpec(
        image="whaleos-claude",
        name="claude-1718000000000",
        environment={"ANTHROPIC_API_KEY": "sk-ant-test"},
        host_port=7682,
        internal_port=7681,
        mount_source="/data/workspace/containers/claude-1718000000000",
        mount_target="/workspace",
        labels={"terminal-broker.managed": "true"},
    )


class TestImages:

    def test_image_exists(self, runtime, docker_client):
        assert runtime.image_exists("whaleos-claude") is True
        docker_client.images.get.assert_called_once_with("whaleos-claude")

    def test_image_missing(self, runtime, docker_client):
        docker_client.images.get.side_effect = docker.errors.ImageNotFound("nope")
        assert runtime.image_exists("whaleos-claude") is False

    def test_inspect_error_treated_as_absent(self, runtime, docker_client):
        docker_client.images.get.side_effect = docker.errors.APIError("daemon error")
        assert runtime.image_exists("whaleos-claude") is False

    def test_build(self, runtime, docker_client):
        runtime.build_image("whaleos-gemini", "dockerfile.gemini")
        docker_client.images.build.assert_called_once_with(
            path="/app/images", dockerfile="dockerfile.gemini", tag="whaleos-gemini", rm=True,
        )

    def test_build_failure(self, runtime, docker_client):
        docker_client.images.build.side_effect = docker.errors.BuildError("step failed", [])
        with pytest.raises(RuntimeOperationFailed) as exc:
            runtime.build_image("whaleos-gemini", "dockerfile.gemini")
        assert exc.value.operation == "build"


class TestCreateAndStart:

    def test_create_and_start(self, runtime, docker_client, spec):
        container_id = runtime.create_and_start(spec)

        assert container_id == "abc123def4567890"
        docker_client.containers.create.assert_called_once_with(
            "whaleos-claude",
            name="claude-1718000000000",
            environment={"ANTHROPIC_API_KEY": "sk-ant-test"},
            ports={"7681/tcp": 7682},
            volumes={
                "/data/workspace/containers/claude-1718000000000": {"bind": "/workspace", "mode": "rw"},
            },
            labels={"terminal-broker.managed": "true"},
            auto_remove=True,
        )
        docker_client.containers.create.return_value.start.assert_called_once()

    def test_create_failure(self, runtime, docker_client, spec):
        docker_client.containers.create.side_effect = docker.errors.APIError("name conflict")
        with pytest.raises(RuntimeOperationFailed) as exc:
            runtime.create_and_start(spec)
        assert exc.value.operation == "create"

    def test_start_failure_removes_container(self, runtime, docker_client, spec):
        container = docker_client.containers.create.return_value
        container.start.side_effect = docker.errors.APIError("port is already allocated")

        with pytest.raises(RuntimeOperationFailed) as exc:
            runtime.create_and_start(spec)

        assert exc.value.operation == "start"
        container.remove.assert_called_once_with(force=True)


class TestStopAndStats:

    def test_stop(self, runtime, docker_client):
        runtime.stop("abc123def4567890")
        docker_client.containers.get.return_value.stop.assert_called_once_with(timeout=5)

    def test_stop_already_gone(self, runtime, docker_client):
        docker_client.containers.get.side_effect = docker.errors.NotFound("gone")
        runtime.stop("abc123def4567890")

    def test_stop_failure(self, runtime, docker_client):
        docker_client.containers.get.return_value.stop.side_effect = docker.errors.APIError("boom")
        with pytest.raises(RuntimeOperationFailed):
            runtime.stop("abc123def4567890")

    def test_stats(self, runtime, docker_client):
        docker_client.containers.get.return_value.stats.return_value = {
            "cpu_stats": {"online_cpus": 2},
            "memory_stats": {"usage": 1024},
            "networks": {"eth0": {"rx_bytes": 1}},
            "pids_stats": {"current": 3},
        }
        assert runtime.stats("abc123def4567890") == {
            "cpu": {"online_cpus": 2},
            "memory": {"usage": 1024},
            "network": {"eth0": {"rx_bytes": 1}},
        }

    def test_stats_failure(self, runtime, docker_client):
        docker_client.containers.get.side_effect = docker.errors.NotFound("gone")
        with pytest.raises(RuntimeOperationFailed):
            runtime.stats("abc123def4567890")


class TestListManaged:

    def test_list_managed(self, runtime, docker_client):
        c = MagicMock()
        c.id = "abc"
        c.name = "claude-1"
        c.status = "running"
        c.labels = {"terminal-broker.managed": "true"}
        docker_client.containers.list.return_value = [c]

        managed = runtime.list_managed()

        docker_client.containers.list.assert_called_once_with(
            filters={"label": "terminal-broker.managed=true"}
        )
        assert managed[0].container_id == "abc"
        assert managed[0].labels == {"terminal-broker.managed": "true"}


class TestConnectRuntime:

    def test_primary_target(self, mocker):
        client = MagicMock()
        from_env = mocker.patch("terminal_broker.domain.runtime.factory.docker.from_env", return_value=client)

        from terminal_broker.domain.runtime.factory import connect_runtime
        runtime = connect_runtime(RuntimeConfig())

        from_env.assert_called_once()
        assert runtime.client is client

    def test_fallback_target(self, mocker):
        mocker.patch(
            "terminal_broker.domain.runtime.factory.docker.from_env",
            side_effect=docker.errors.DockerException("no DOCKER_HOST"),
        )
        fallback = MagicMock()
        docker_client_cls = mocker.patch(
            "terminal_broker.domain.runtime.factory.docker.DockerClient", return_value=fallback,
        )

        from terminal_broker.domain.runtime.factory import connect_runtime
        runtime = connect_runtime(RuntimeConfig(fallback_url="unix:///tmp/docker.sock"))

        docker_client_cls.assert_called_once_with(base_url="unix:///tmp/docker.sock")
        assert runtime.client is fallback

    def test_both_targets_fail(self, mocker):
        mocker.patch(
            "terminal_broker.domain.runtime.factory.docker.from_env",
            side_effect=docker.errors.DockerException("no DOCKER_HOST"),
        )
        unreachable = MagicMock()
        unreachable.ping.side_effect = docker.errors.APIError("connection refused")
        mocker.patch("terminal_broker.domain.runtime.factory.docker.DockerClient", return_value=unreachable)

        from terminal_broker.domain.runtime.factory import connect_runtime
        with pytest.raises(DaemonUnavailable):
            connect_runtime(RuntimeConfig())

    def test_home_expanded_in_socket_url(self, monkeypatch):
        monkeypatch.setenv("HOME", "/home/dev")
        from terminal_broker.domain.runtime.factory import _expand_url
        assert _expand_url("unix://~/.docker/run/docker.sock") == "unix:///home/dev/.docker/run/docker.sock"
        assert _expand_url("tcp://10.0.0.2:2375") == "tcp://10.0.0.2:2375"
