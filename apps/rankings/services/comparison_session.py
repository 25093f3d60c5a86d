#!/usr/bin/env python3
"""In-process comparison session manager (one slot per user)"""

import threading
import time
import logging
from typing import Dict, Optional, Any

from apps.core.config import settings
from apps.rankings.schemas.comparison import ComparisonSession, SessionMode, SubjectMovie

logger = logging.getLogger(__name__)


class ComparisonSessionManager:
    """Holds the binary-search bounds of every user's in-flight comparison.

    Sessions live in process memory only and expire ``session_ttl`` seconds
    after their last update. Starting a session replaces any existing one for
    the same user. Controllers hold ``lock(user_id)`` around each
    read-narrow-write step so concurrent compares for one user are serialized.
    """

    def __init__(self, session_ttl: Optional[int] = None):
        self.sessions: Dict[int, ComparisonSession] = {}
        self.session_ttl = session_ttl if session_ttl is not None else settings.comparison_session_ttl_s
        self._guard = threading.Lock()
        self._user_locks: Dict[int, threading.RLock] = {}

    def lock(self, user_id: int) -> threading.RLock:
        """Per-user mutex for single-flight comparison steps"""
        with self._guard:
            user_lock = self._user_locks.get(user_id)
            if user_lock is None:
                user_lock = threading.RLock()
                self._user_locks[user_id] = user_lock
            return user_lock

    def _is_expired(self, session: ComparisonSession, now: float) -> bool:
        return now - session.updated_at > self.session_ttl

    def start_session(
        self,
        user_id: int,
        subject: SubjectMovie,
        high: int,
        mode: SessionMode = SessionMode.INSERT,
        origin_rank: Optional[int] = None,
    ) -> ComparisonSession:
        session = ComparisonSession(
            user_id=user_id,
            subject=subject,
            low=0,
            high=high,
            mode=mode,
            origin_rank=origin_rank,
            list_size=high + 1,
        )
        with self._guard:
            previous = self.sessions.get(user_id)
            self.sessions[user_id] = session

        if previous is not None:
            logger.info(
                f"Replaced {previous.mode.value} session for user {user_id} "
                f"(movie {previous.subject.movie_id} -> {subject.movie_id})"
            )
        else:
            logger.debug(f"Started {mode.value} session for user {user_id}, movie {subject.movie_id}")
        return session

    def get_session(self, user_id: int) -> Optional[ComparisonSession]:
        with self._guard:
            session = self.sessions.get(user_id)
            if session is None:
                return None
            if self._is_expired(session, time.time()):
                del self.sessions[user_id]
                logger.info(f"Comparison session for user {user_id} expired")
                return None
            return session

    def update_session(self, user_id: int, low: int, high: int, expected_token: Optional[str] = None) -> bool:
        """Store new bounds and rotate the token.

        Silently ignored (returns False) when the user has no session or when
        ``expected_token`` no longer matches.
        """
        with self._guard:
            session = self.sessions.get(user_id)
            if session is None:
                return False
            if expected_token is not None and session.token != expected_token:
                return False
            session.low = low
            session.high = high
            session.rotate_token()
            return True

    def end_session(self, user_id: int) -> None:
        with self._guard:
            self.sessions.pop(user_id, None)

    def _prune_locks(self) -> None:
        """Drop locks of users without a session; caller holds ``_guard``"""
        for uid in [uid for uid in self._user_locks if uid not in self.sessions]:
            user_lock = self._user_locks[uid]
            # a lock held by a request in flight stays
            if user_lock.acquire(blocking=False):
                del self._user_locks[uid]
                user_lock.release()

    def cleanup_expired(self) -> int:
        """Remove expired sessions and return how many were dropped"""
        now = time.time()
        with self._guard:
            expired = [uid for uid, s in self.sessions.items() if self._is_expired(s, now)]
            for uid in expired:
                del self.sessions[uid]
            self._prune_locks()

        if expired:
            logger.info(f"Cleaned up {len(expired)} expired comparison sessions")
        return len(expired)

    def stats(self) -> Dict[str, Any]:
        now = time.time()
        with self._guard:
            sessions = list(self.sessions.values())
        active = [s for s in sessions if not self._is_expired(s, now)]
        return {
            "total_sessions": len(sessions),
            "active_sessions": len(active),
            "insert_sessions": sum(1 for s in active if s.mode == SessionMode.INSERT),
            "rerank_sessions": sum(1 for s in active if s.mode == SessionMode.RERANK),
            "session_ttl_s": self.session_ttl,
        }


# Global instance
_session_manager = None


def get_session_manager() -> ComparisonSessionManager:
    """Get global comparison session manager"""
    global _session_manager
    if _session_manager is None:
        _session_manager = ComparisonSessionManager()
    return _session_manager


def reset_session_manager() -> None:
    """Drop the global manager and every session it holds"""
    global _session_manager
    _session_manager = None
