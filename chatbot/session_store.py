# chatbot/session_store.py
"""
SessionStore

In-memory dictionary of Session objects keyed by session id, plus one
asyncio.Lock per session so a chat turn and a payment callback never mutate
the same session at the same time. Sessions of different ids never wait on
each other.

Sessions live for the whole process; nothing is evicted.
"""

from __future__ import annotations

import asyncio
import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import AsyncIterator, Callable, Dict, Optional

from .session_context import Session

logger = logging.getLogger(__name__)


class SessionStore:
    """
    Not persistent across deployments.
    """

    def __init__(self, clock: Callable[[], datetime] = lambda: datetime.now(timezone.utc)) -> None:
        self._store: Dict[str, Session] = {}
        self._locks: Dict[str, asyncio.Lock] = {}
        self._clock = clock

    def __len__(self) -> int:
        return len(self._store)

    def __contains__(self, session_id: object) -> bool:
        return session_id in self._store

    def get(self, session_id: Optional[str]) -> Optional[Session]:
        """
        Return the session if it exists. Never creates one.
        """
        if not session_id:
            return None
        return self._store.get(session_id)

    def get_or_create(self, session_id: str) -> Session:
        session = self._store.get(session_id)
        if session is None:
            session = Session(session_id=session_id, created_at=self._clock())
            self._store[session_id] = session
            logger.info("Initialized session %s", session_id)
        return session

    def _lock_for(self, session_id: str) -> asyncio.Lock:
        # No await between lookup and insert, so this is atomic on the event loop.
        lock = self._locks.get(session_id)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[session_id] = lock
        return lock

    @asynccontextmanager
    async def acquire(self, session_id: str, *, create: bool = True) -> AsyncIterator[Optional[Session]]:
        """
        Exclusive access to one session for the duration of the block.

        With create=False the block receives None when the session is unknown
        (payment callbacks must not invent sessions).
        """
        if not create and session_id not in self._store:
            yield None
            return

        async with self._lock_for(session_id):
            if create:
                yield self.get_or_create(session_id)
            else:
                yield self.get(session_id)
