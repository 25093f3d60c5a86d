#!/usr/bin/env python3
"""Rerank flow: reposition an already-ranked movie by comparisons"""

import logging
from typing import List

from apps.rankings.errors import RankedMovieNotFoundError
from apps.rankings.models import RankedMovie
from apps.rankings.schemas.comparison import ComparisonSession, SessionMode, SubjectMovie
from apps.rankings.services.comparison_flow import ComparisonController, RankingStep

logger = logging.getLogger(__name__)


class RerankController(ComparisonController):
    """The entry keeps its rank while comparisons run over the other N-1
    entries; finalize performs one combined move shift."""

    mode = SessionMode.RERANK

    def start(self, user_id: int, movie_id: int) -> RankingStep:
        with self.sessions.lock(user_id):
            entry = self.store.get(user_id, movie_id)
            if entry is None:
                raise RankedMovieNotFoundError(movie_id)

            others = [e for e in self.store.list(user_id) if e.movie_id != movie_id]
            if not others:
                self.sessions.end_session(user_id)
                return RankingStep.added(entry)

            subject = SubjectMovie(
                movie_id=entry.movie_id,
                title=entry.title,
                poster_path=entry.poster_path,
                overview=entry.overview,
            )
            step = self._start(user_id, subject, others, origin_rank=entry.rank)
            logger.info(f"User {user_id} reranking movie {movie_id} from rank {entry.rank}")
            return step

    def _comparison_list(self, user_id: int, session: ComparisonSession) -> List[RankedMovie]:
        return [e for e in self.store.list(user_id) if e.movie_id != session.subject.movie_id]

    def _finalize(self, user_id: int, session: ComparisonSession, position: int) -> RankedMovie:
        entry = self.store.get(user_id, session.subject.movie_id)
        if entry is None:
            self.sessions.end_session(user_id)
            raise RankedMovieNotFoundError(session.subject.movie_id)

        entry = self.store.move(user_id, entry.rank, position)
        self._announce(entry)
        return entry
