from __future__ import annotations

import time
import uuid
from collections import OrderedDict
from typing import Callable, Optional, Tuple

from loguru import logger

from .session import EditorSession


class SessionStore:
    """One ``EditorSession`` per browser, keyed by the session cookie value.

    Sessions are only created on demand. The store keeps at most
    ``max_sessions`` entries (least recently used evicted first) and drops
    sessions idle for longer than ``ttl_seconds``.
    """

    def __init__(
        self,
        factory: Callable[[], EditorSession],
        max_sessions: int = 256,
        ttl_seconds: float = 3600.0,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._factory = factory
        self.max_sessions = max_sessions
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._sessions: "OrderedDict[str, Tuple[EditorSession, float]]" = OrderedDict()

    def get(self, session_id: Optional[str]) -> Optional[EditorSession]:
        self._expire()
        if not session_id or session_id not in self._sessions:
            return None
        session, _ = self._sessions[session_id]
        self._sessions[session_id] = (session, self._clock())
        self._sessions.move_to_end(session_id)
        return session

    def create(self) -> Tuple[str, EditorSession]:
        self._expire()
        session_id = uuid.uuid4().hex
        session = self._factory()
        self._sessions[session_id] = (session, self._clock())
        while len(self._sessions) > self.max_sessions:
            evicted, _ = self._sessions.popitem(last=False)
            logger.info(f"Evicted least recently used session {evicted}")
        logger.debug(f"Created session {session_id}")
        return session_id, session

    def _expire(self) -> None:
        cutoff = self._clock() - self.ttl_seconds
        while self._sessions:
            session_id, (_, last_seen) = next(iter(self._sessions.items()))
            if last_seen >= cutoff:
                break
            del self._sessions[session_id]
            logger.debug(f"Expired idle session {session_id}")

    def __len__(self) -> int:
        return len(self._sessions)


__all__ = ["SessionStore"]
