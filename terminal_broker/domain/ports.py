"""
Host port allocation for session containers.
"""

from __future__ import annotations

from typing import Iterable

from terminal_broker.config.settings import BASE_HOST_PORT


class PortAllocator:
    """
    High-water-mark allocator.

    Hands out one above the highest port currently held, or ``base_port``
    when nothing is held. Gaps below the maximum are never reused while a
    higher port is held, and ports bound by other processes are unknown to
    it: a bind failure at container start fails that create call.
    """

    def __init__(self, base_port: int = BASE_HOST_PORT) -> None:
        self.base_port = base_port

    def allocate(self, ports_in_use: Iterable[int]) -> int:
        """
        Pick the port for a new session.

        Args:
            ports_in_use: Ports of registered sessions and pending reservations

        Returns:
            ``max(ports_in_use) + 1``, or ``base_port`` if empty
        """
        highest = max(ports_in_use, default=None)
        if highest is None:
            return self.base_port
        return highest + 1
