"""core/registry.py — Local client id → remote target id map.

The registry is the single source of truth for "is any device connected":
every broadcast operation is gated on :meth:`SessionRegistry.is_empty`.
It is read from the caller thread, the WebSocket reader thread and the
heartbeat thread, so every access goes through one lock and iteration works
on a copy.
"""

from __future__ import annotations

import threading

from core.types import Session


class SessionRegistry:
    """Thread-safe flat mapping of bound sessions."""

    def __init__(self) -> None:
        self._sessions: dict[str, str] = {}
        self._lock = threading.Lock()

    def bind(self, local_id: str, remote_id: str) -> None:
        """Insert or overwrite the entry for ``local_id``."""
        with self._lock:
            self._sessions[local_id] = remote_id

    def unbind(self, local_id: str) -> None:
        """Remove ``local_id``; no-op if absent."""
        with self._lock:
            self._sessions.pop(local_id, None)

    def all(self) -> list[Session]:
        """Snapshot of bound sessions, safe to iterate while others mutate."""
        with self._lock:
            return [Session(local, remote) for local, remote in self._sessions.items()]

    def get(self, local_id: str) -> str | None:
        with self._lock:
            return self._sessions.get(local_id)

    def is_empty(self) -> bool:
        with self._lock:
            return not self._sessions

    def __len__(self) -> int:
        with self._lock:
            return len(self._sessions)

    def __contains__(self, local_id: object) -> bool:
        with self._lock:
            return local_id in self._sessions
