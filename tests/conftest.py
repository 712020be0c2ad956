"""
Shared pytest fixtures for the broker test suite.
"""

import os
import tempfile
from pathlib import Path
from unittest.mock import MagicMock

import pytest

# ---------------------------------------------------------------------------
# Environment stubs – must be set BEFORE any broker module is imported so
# that the module-level config path and credential store pick them up.
# ---------------------------------------------------------------------------

_TEST_ROOT = Path(tempfile.mkdtemp(prefix="terminal-broker-tests-"))
_CONFIG_DIR = _TEST_ROOT / "config"
_CONFIG_DIR.mkdir(parents=True, exist_ok=True)
(_CONFIG_DIR / "terminal-broker.yml").write_text(
    "sessions:\n"
    "  build_images_on_startup: false\n"
    "  reconcile_on_startup: false\n"
    "security:\n"
    "  rate_limiting:\n"
    "    enabled: false\n"
    "workspace:\n"
    f"  root: {_TEST_ROOT / 'workspace'}\n"
)

os.environ["CONFIG_PATH"] = str(_CONFIG_DIR)
os.environ.pop("VAULT_ADDR", None)
os.environ.pop("VAULT_TOKEN", None)

# Import broker modules AFTER env vars are set (they trigger module-level code)
from terminal_broker.config.models import SessionTypesConfig  # noqa: E402
from terminal_broker.config.secrets import CredentialStore  # noqa: E402
from terminal_broker.domain.ports import PortAllocator  # noqa: E402
from terminal_broker.domain.registry import SessionRegistry  # noqa: E402
from terminal_broker.domain.sandbox import SandboxedFileAccessor  # noqa: E402
from terminal_broker.domain.workspace import WorkspaceProvisioner  # noqa: E402


# ---------------------------------------------------------------------------
# Runtime mock
# ---------------------------------------------------------------------------

@pytest.fixture
def mock_runtime():
    """Mock RuntimeClient whose containers start successfully."""
    runtime = MagicMock()
    runtime.ping.return_value = True
    runtime.image_exists.return_value = True
    runtime.build_image.return_value = None
    runtime.create_and_start.side_effect = lambda spec: f"cnt-{spec.name}"
    runtime.stop.return_value = None
    runtime.stats.return_value = {
        "cpu": {"cpu_usage": {"total_usage": 1000}},
        "memory": {"usage": 4096},
        "network": {"eth0": {"rx_bytes": 10, "tx_bytes": 20}},
    }
    runtime.list_managed.return_value = []
    return runtime


# ---------------------------------------------------------------------------
# Domain collaborators
# ---------------------------------------------------------------------------

@pytest.fixture
def credentials(monkeypatch):
    """CredentialStore with a key for every session type and no Vault."""
    for var in ("ANTHROPIC_API_KEY", "GEMINI_API_KEY", "OPENAI_API_KEY"):
        monkeypatch.delenv(var, raising=False)
    store = CredentialStore()
    store.set_override("ANTHROPIC_API_KEY", "sk-ant-test")
    store.set_override("GEMINI_API_KEY", "gemini-test")
    store.set_override("OPENAI_API_KEY", "sk-openai-test")
    return store


@pytest.fixture
def workspaces(tmp_path):
    return WorkspaceProvisioner(tmp_path / "containers")


@pytest.fixture
def registry():
    return SessionRegistry()


@pytest.fixture
def manager(mock_runtime, registry, workspaces, credentials):
    """SessionLifecycleManager wired to the mock runtime and a tmp workspace root."""
    from terminal_broker.services.lifecycle import SessionLifecycleManager

    return SessionLifecycleManager(
        runtime=mock_runtime,
        registry=registry,
        ports=PortAllocator(7681),
        workspaces=workspaces,
        credentials=credentials,
        session_types=SessionTypesConfig(),
    )


# ---------------------------------------------------------------------------
# Service container mock
# ---------------------------------------------------------------------------

@pytest.fixture
def mock_services(mocker, mock_runtime, registry, workspaces, credentials, manager):
    """Create and inject a ServiceContainer with pre-built services."""
    from terminal_broker.container import ServiceContainer

    container = ServiceContainer()
    container._runtime = mock_runtime
    container._registry = registry
    container._ports = manager.ports
    container._workspaces = workspaces
    container._files = SandboxedFileAccessor()
    container._credentials = credentials
    container._manager = manager

    # Inject as global fallback
    mocker.patch("terminal_broker.container._global_container", container)

    return container


# ---------------------------------------------------------------------------
# Flask test client
# ---------------------------------------------------------------------------

@pytest.fixture
def app_client(mocker, mock_services):
    """Create a Flask test_client with the Docker daemon mocked."""
    startup_runtime = MagicMock()
    startup_runtime.ping.return_value = True
    startup_runtime.list_managed.return_value = []
    mocker.patch(
        "terminal_broker.domain.runtime.factory.connect_runtime",
        return_value=startup_runtime,
    )

    from terminal_broker.app import app
    app.config["TESTING"] = True
    app.extensions["services"] = mock_services

    return app.test_client()
