"""Services module for session lifecycle and host integration."""

from terminal_broker.services.lifecycle import SessionLifecycleManager, parse_session_type
from terminal_broker.services.terminal import open_local_terminal

__all__ = [
    "SessionLifecycleManager",
    "parse_session_type",
    "open_local_terminal",
]
