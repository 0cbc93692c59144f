from __future__ import annotations

import time
from collections.abc import Callable
from uuid import uuid4

from loguru import logger

from napkin_mcp_bridge.store.models import SessionRecord

DEFAULT_SESSION_TTL_SECONDS = 3600.0


class SessionRegistry:
    """Bookkeeping for the ``Mcp-Session-Id`` values handed to clients.

    Nothing reads these records to make decisions; they exist so the header can be
    echoed consistently and so the health probe can report a count.
    """

    def __init__(
        self,
        *,
        ttl_seconds: float = DEFAULT_SESSION_TTL_SECONDS,
        clock: Callable[[], float] = time.time,
    ):
        self._ttl_seconds = ttl_seconds
        self._clock = clock
        self._sessions: dict[str, SessionRecord] = {}

    def touch(self, session_id: str | None = None) -> str:
        sid = (session_id or "").strip() or str(uuid4())
        if sid not in self._sessions:
            self._sessions[sid] = SessionRecord(id=sid, created_at=self._clock())
            logger.debug(f"Registered session {sid}")
        return sid

    def open_stream(self) -> str:
        sid = str(uuid4())
        self._sessions[sid] = SessionRecord(id=sid, created_at=self._clock(), streaming=True)
        logger.info(f"Opened event stream for session {sid}")
        return sid

    def get(self, session_id: str) -> SessionRecord | None:
        return self._sessions.get(session_id)

    def remove(self, session_id: str) -> None:
        if self._sessions.pop(session_id, None) is not None:
            logger.debug(f"Removed session {session_id}")

    def sweep(self, now: float | None = None) -> int:
        now = self._clock() if now is None else now
        expired = [
            sid for sid, record in self._sessions.items() if now - record.created_at > self._ttl_seconds
        ]
        for sid in expired:
            del self._sessions[sid]
        return len(expired)

    def __len__(self) -> int:
        return len(self._sessions)

    def __contains__(self, session_id: object) -> bool:
        return session_id in self._sessions
