from __future__ import annotations

import asyncio

from loguru import logger

from napkin_mcp_bridge.store.artifact_store import ArtifactStore
from napkin_mcp_bridge.store.session_registry import SessionRegistry


class ExpirySweeper:
    def __init__(
        self,
        store: ArtifactStore,
        sessions: SessionRegistry,
        *,
        interval_seconds: float = 60.0,
    ):
        self._store = store
        self._sessions = sessions
        self._interval_seconds = max(0.05, interval_seconds)
        self._task: asyncio.Task | None = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def start(self) -> None:
        if self._task is None:
            self._task = asyncio.create_task(self._run())

    async def close(self) -> None:
        if self._task is not None:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None

    def run_once(self) -> tuple[int, int]:
        records = self._store.sweep()
        sessions = self._sessions.sweep()
        if records or sessions:
            logger.info(f"Expiry sweep evicted {records} stored record(s) and {sessions} session(s)")
        return records, sessions

    async def _run(self) -> None:
        while True:
            await asyncio.sleep(self._interval_seconds)
            try:
                self.run_once()
            except Exception:
                logger.exception("Expiry sweep failed")
