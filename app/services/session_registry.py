"""In-memory registry of live test sessions.

Each controller is stored under its session id together with the owning
user. Entries untouched for longer than the TTL are evicted.
"""
import logging
import threading
import time
from typing import Callable, Dict, Optional, Tuple

from app.core.config import settings
from app.services.test_session import TestSessionController

logger = logging.getLogger(__name__)


class SessionRegistry:

    def __init__(self, ttl: Optional[int] = None, clock: Callable[[], float] = time.time):
        self.ttl = ttl or settings.SESSION_TTL_SECONDS
        self._clock = clock
        self._lock = threading.Lock()
        self._sessions: Dict[str, Tuple[TestSessionController, float]] = {}

    def add(self, controller: TestSessionController) -> TestSessionController:
        with self._lock:
            self._sessions[controller.session_id] = (controller, self._clock())
        return controller

    def get(self, session_id: str, user_id) -> Optional[TestSessionController]:
        """Return the owner's controller, or None when missing, expired or foreign."""
        with self._lock:
            entry = self._sessions.get(session_id)
            if entry is None:
                return None
            controller, touched = entry
            if self._clock() - touched > self.ttl:
                del self._sessions[session_id]
                return None
            if str(controller.user_id) != str(user_id):
                return None
            self._sessions[session_id] = (controller, self._clock())
            return controller

    def discard(self, session_id: str) -> None:
        with self._lock:
            self._sessions.pop(session_id, None)

    def cleanup_expired(self) -> int:
        """Drop expired sessions. Returns how many were removed."""
        now = self._clock()
        with self._lock:
            expired = [sid for sid, (_, touched) in self._sessions.items() if now - touched > self.ttl]
            for sid in expired:
                del self._sessions[sid]
        if expired:
            logger.info("Removed %d expired test sessions", len(expired))
        return len(expired)

    def __len__(self) -> int:
        with self._lock:
            return len(self._sessions)


registry = SessionRegistry()
