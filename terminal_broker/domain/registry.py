"""
In-memory session registry for the Terminal Broker.
"""

from __future__ import annotations

import logging
import threading
import time
from typing import Callable

from terminal_broker.domain.ports import PortAllocator
from terminal_broker.domain.types import Reservation, Session, SessionType

logger = logging.getLogger("terminal-broker")


class SessionRegistry:
    """
    Source of truth for live sessions.

    All bookkeeping happens under one lock: id generation, port allocation
    and the pending-reservation table are read and updated together, so two
    concurrent creates can never observe the same high-water mark. Callers
    must not hold the lock across Docker calls; the reserve/commit/release
    split exists so the container is created between two short critical
    sections.

    Iteration order is insertion order.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._sessions: dict[str, Session] = {}
        self._pending: dict[str, int] = {}
        self._last_millis = 0

    # ------------------------------------------------------------------
    # Creation protocol
    # ------------------------------------------------------------------

    def reserve(self, session_type: SessionType, allocator: PortAllocator) -> Reservation:
        """
        Allocate a session id and host port and hold them as pending.

        Args:
            session_type: Type prefix for the id
            allocator: Port allocator applied to registered + pending ports

        Returns:
            Reservation with id, port and display ordinal
        """
        with self._lock:
            millis = max(int(time.time() * 1000), self._last_millis + 1)
            self._last_millis = millis
            session_id = f"{session_type.value}-{millis}"

            port = allocator.allocate(self._ports_locked())
            ordinal = len(self._sessions) + len(self._pending) + 1
            self._pending[session_id] = port
            return Reservation(session_id=session_id, port=port, ordinal=ordinal)

    def commit(self, session: Session) -> None:
        """Register a session whose container has started."""
        with self._lock:
            self._pending.pop(session.session_id, None)
            self._sessions[session.session_id] = session

    def release(self, session_id: str) -> None:
        """Drop a pending reservation after a failed create."""
        with self._lock:
            self._pending.pop(session_id, None)

    def adopt(self, session: Session) -> bool:
        """
        Register a session discovered on the daemon at startup.

        Returns:
            True if added, False if the id or port is already held
        """
        with self._lock:
            if session.session_id in self._sessions or session.session_id in self._pending:
                return False
            if session.port in self._ports_locked():
                logger.warning(
                    f"Not adopting {session.session_id}: port {session.port} already held"
                )
                return False
            self._sessions[session.session_id] = session
            millis = _id_millis(session.session_id)
            if millis > self._last_millis:
                self._last_millis = millis
            return True

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get(self, session_id: str) -> Session | None:
        with self._lock:
            return self._sessions.get(session_id)

    def remove(self, session_id: str) -> Session | None:
        with self._lock:
            return self._sessions.pop(session_id, None)

    def list(self) -> list[Session]:
        with self._lock:
            return list(self._sessions.values())

    def ports_in_use(self) -> set[int]:
        with self._lock:
            return set(self._ports_locked())

    def holds(self, session_id: str) -> bool:
        """True if the id belongs to a registered session or a pending reservation."""
        with self._lock:
            return session_id in self._sessions or session_id in self._pending

    def run_if_free(self, session_id: str, action: Callable[[], None]) -> bool:
        """
        Run ``action`` unless the id is registered or reserved.

        The lock is held while ``action`` runs, so no reservation for the
        same id can appear in between. ``action`` must not call back into
        the registry.

        Returns:
            False without running ``action`` if the id is held
        """
        with self._lock:
            if session_id in self._sessions or session_id in self._pending:
                return False
            action()
            return True

    def __contains__(self, session_id: object) -> bool:
        with self._lock:
            return session_id in self._sessions

    def __len__(self) -> int:
        with self._lock:
            return len(self._sessions)

    def _ports_locked(self) -> list[int]:
        return [s.port for s in self._sessions.values()] + list(self._pending.values())


def _id_millis(session_id: str) -> int:
    _, _, suffix = session_id.rpartition("-")
    return int(suffix) if suffix.isdigit() else 0
