#!/usr/bin/env python3
"""Comparison-driven binary insertion shared by the insert and rerank flows.

A flow keeps ``[low, high]`` (0-based, inclusive) over a comparison list and
asks the user to choose between the subject and the entry at
``middle = (low + high) // 2``:

* subject preferred  -> ``high = middle - 1``
* existing preferred -> ``low = middle + 1``

Every answer strictly shrinks the window, so a list of N entries needs at
most ceil(log2(N + 1)) answers. Once ``low > high`` the subject belongs at
1-indexed position ``low + 1``.
"""

import math
import logging
from dataclasses import dataclass
from typing import Any, Callable, List, Optional, Tuple
from sqlalchemy.orm import Session

from apps.rankings.errors import (
    InvalidPreferenceError,
    NoActiveSessionError,
    StaleSessionError,
)
from apps.rankings.models import RankedMovie
from apps.rankings.schemas.comparison import ComparisonSession, SessionMode, SubjectMovie
from apps.rankings.services.activity_fanout import ActivityFanout, get_activity_fanout
from apps.rankings.services.comparison_session import ComparisonSessionManager, get_session_manager
from apps.rankings.services.ranked_list import RankedListStore

logger = logging.getLogger(__name__)

STATUS_ADDED = "added"
STATUS_COMPARE = "compare"


def narrow(low: int, high: int, subject_preferred: bool) -> Tuple[int, int]:
    middle = (low + high) // 2
    if subject_preferred:
        return low, middle - 1
    return middle + 1, high


def max_comparisons(size: int) -> int:
    """Upper bound of answers needed to place one movie into a list of ``size``"""
    return math.ceil(math.log2(size + 1)) if size > 0 else 0


def run_inline(func: Callable[..., Any], *args: Any, **kwargs: Any) -> None:
    func(*args, **kwargs)


@dataclass
class RankingStep:
    """Outcome of one flow step: either placed, or the next comparator"""
    status: str
    entry: Optional[RankedMovie] = None
    compare_with: Optional[RankedMovie] = None
    session_token: Optional[str] = None

    @property
    def rank(self) -> Optional[int]:
        return self.entry.rank if self.entry is not None else None

    @classmethod
    def added(cls, entry: RankedMovie) -> "RankingStep":
        return cls(status=STATUS_ADDED, entry=entry)

    @classmethod
    def compare(cls, compare_with: RankedMovie, session: ComparisonSession) -> "RankingStep":
        return cls(status=STATUS_COMPARE, compare_with=compare_with, session_token=session.token)


class ComparisonController:
    """Drives comparison steps against the user's session.

    ``schedule`` runs friend notification outside the request; routes pass
    FastAPI's ``BackgroundTasks.add_task``, everything else runs it inline.
    """

    mode: SessionMode = SessionMode.INSERT

    def __init__(
        self,
        db: Session,
        sessions: Optional[ComparisonSessionManager] = None,
        fanout: Optional[ActivityFanout] = None,
        schedule: Callable[..., None] = run_inline,
    ):
        self.db = db
        self.store = RankedListStore(db)
        self.sessions = sessions or get_session_manager()
        self.fanout = fanout or get_activity_fanout()
        self.schedule = schedule

    def _comparison_list(self, user_id: int, session: ComparisonSession) -> List[RankedMovie]:
        raise NotImplementedError

    def _finalize(self, user_id: int, session: ComparisonSession, position: int) -> RankedMovie:
        raise NotImplementedError

    def _start(self, user_id: int, subject: SubjectMovie, candidates: List[RankedMovie], origin_rank: Optional[int] = None) -> RankingStep:
        session = self.sessions.start_session(
            user_id,
            subject,
            high=len(candidates) - 1,
            mode=self.mode,
            origin_rank=origin_rank,
        )
        return RankingStep.compare(candidates[session.middle], session)

    def compare(self, user_id: int, preferred_movie_id: int, session_token: Optional[str] = None) -> RankingStep:
        """Apply one answer; finalizes the placement once the window is empty"""
        with self.sessions.lock(user_id):
            session = self.sessions.get_session(user_id)
            if session is None:
                raise NoActiveSessionError()
            if session_token is not None and session_token != session.token:
                raise StaleSessionError("Comparison session is stale")
            if session.mode != self.mode:
                # replaced by a session of the other flow; it stays in place
                raise StaleSessionError("Comparison session was replaced, please continue the current one")

            candidates = self._comparison_list(user_id, session)
            if len(candidates) != session.list_size:
                self.sessions.end_session(user_id)
                raise StaleSessionError("Ranked list changed during comparison, please start again")

            comparator = candidates[session.middle]
            if preferred_movie_id == session.subject.movie_id:
                subject_preferred = True
            elif preferred_movie_id == comparator.movie_id:
                subject_preferred = False
            else:
                raise InvalidPreferenceError(
                    f"preferredMovieId must be {session.subject.movie_id} or {comparator.movie_id}"
                )

            low, high = narrow(session.low, session.high, subject_preferred)
            if low > high:
                # session stays in place if finalize raises, so the step can be retried
                entry = self._finalize(user_id, session, position=low + 1)
                self.sessions.end_session(user_id)
                return RankingStep.added(entry)

            self.sessions.update_session(user_id, low, high, expected_token=session.token)
            return RankingStep.compare(candidates[(low + high) // 2], session)

    def cancel(self, user_id: int) -> None:
        self.sessions.end_session(user_id)

    def _announce(self, entry: RankedMovie) -> None:
        """Record the activity, then notify friends through ``schedule``"""
        activity = self.fanout.record_activity(self.db, entry)
        if activity is None:
            return
        try:
            self.schedule(self.fanout.notify_friends, entry.user_id, activity.id, entry.title)
        except Exception as e:
            logger.error(f"Failed to schedule fan-out for activity {activity.id}: {e}")
