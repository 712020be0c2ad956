"""Domain module containing session bookkeeping and sandbox logic."""

from terminal_broker.domain.types import Session, SessionType, ContainerSpec, ManagedContainer
from terminal_broker.domain.ports import PortAllocator
from terminal_broker.domain.registry import SessionRegistry
from terminal_broker.domain.workspace import WorkspaceProvisioner
from terminal_broker.domain.sandbox import SandboxedFileAccessor

__all__ = [
    "Session",
    "SessionType",
    "ContainerSpec",
    "ManagedContainer",
    "PortAllocator",
    "SessionRegistry",
    "WorkspaceProvisioner",
    "SandboxedFileAccessor",
]
