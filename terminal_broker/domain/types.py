"""
Typed data structures for the broker domain.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any


class SessionType(str, enum.Enum):
    """CLI tool variants a session can run."""

    CLAUDE = "claude"
    GEMINI = "gemini"
    OPENAI = "openai"

    @classmethod
    def values(cls) -> list[str]:
        return [member.value for member in cls]


@dataclass(frozen=True)
class Session:
    """A registered terminal session with a running container."""

    session_id: str
    container_id: str
    name: str
    session_type: SessionType
    port: int
    workspace_dir: Path
    created: str

    def to_dict(self) -> dict[str, Any]:
        """Wire representation used by the HTTP API."""
        return {
            "id": self.session_id,
            "containerId": self.container_id,
            "name": self.name,
            "type": self.session_type.value,
            "port": self.port,
            "workspaceDir": str(self.workspace_dir),
            "created": self.created,
        }


@dataclass(frozen=True)
class Reservation:
    """Identity and port held for a session that is still being created."""

    session_id: str
    port: int
    ordinal: int


@dataclass
class ContainerSpec:
    """Everything the runtime needs to create one session container."""

    image: str
    name: str
    environment: dict[str, str]
    host_port: int
    internal_port: int
    mount_source: str
    mount_target: str
    labels: dict[str, str] = field(default_factory=dict)
    auto_remove: bool = True


@dataclass
class ManagedContainer:
    """A broker-labelled container reported by the runtime."""

    container_id: str
    name: str
    status: str
    labels: dict[str, str] = field(default_factory=dict)
