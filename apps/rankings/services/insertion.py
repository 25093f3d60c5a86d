#!/usr/bin/env python3
"""Add-movie flow: direct placement on an empty list, otherwise binary insertion"""

import logging
from typing import List, Optional
from sqlalchemy.orm import Session

from apps.rankings.errors import DuplicateRankingError
from apps.rankings.models import RankedMovie
from apps.rankings.schemas.comparison import ComparisonSession, SessionMode, SubjectMovie
from apps.rankings.services.catalog import CatalogError, TmdbCatalog, get_catalog
from apps.rankings.services.comparison_flow import ComparisonController, RankingStep
from apps.social.services.watchlist import remove_if_present

logger = logging.getLogger(__name__)


class InsertionController(ComparisonController):
    mode = SessionMode.INSERT

    def __init__(self, db: Session, catalog: Optional[TmdbCatalog] = None, **kwargs):
        super().__init__(db, **kwargs)
        self.catalog = catalog or get_catalog()

    def add_movie(self, user_id: int, subject: SubjectMovie) -> RankingStep:
        with self.sessions.lock(user_id):
            entries = self.store.list(user_id)

            if any(e.movie_id == subject.movie_id for e in entries):
                remove_if_present(self.db, user_id, subject.movie_id)
                raise DuplicateRankingError(subject.movie_id)

            if not entries:
                entry = self._place(user_id, subject, position=1)
                return RankingStep.added(entry)

            step = self._start(user_id, subject, entries)
            remove_if_present(self.db, user_id, subject.movie_id)
            logger.info(
                f"User {user_id} placing movie {subject.movie_id} into {len(entries)} entries, "
                f"first comparator {step.compare_with.movie_id}"
            )
            return step

    def _comparison_list(self, user_id: int, session: ComparisonSession) -> List[RankedMovie]:
        return self.store.list(user_id)

    def _finalize(self, user_id: int, session: ComparisonSession, position: int) -> RankedMovie:
        if self.store.get(user_id, session.subject.movie_id) is not None:
            self.sessions.end_session(user_id)
            raise DuplicateRankingError(session.subject.movie_id)
        return self._place(user_id, session.subject, position)

    def _place(self, user_id: int, subject: SubjectMovie, position: int) -> RankedMovie:
        subject = self.backfill(subject)
        entry = self.store.insert_at(
            user_id,
            position,
            movie_id=subject.movie_id,
            title=subject.title,
            poster_path=subject.poster_path,
            overview=subject.overview,
        )
        remove_if_present(self.db, user_id, subject.movie_id)
        self._announce(entry)
        return entry

    def backfill(self, subject: SubjectMovie) -> SubjectMovie:
        """Fill missing poster/overview from the catalog; keeps what it has on failure"""
        if subject.poster_path and subject.overview:
            return subject
        try:
            metadata = self.catalog.fetch_metadata(subject.movie_id)
        except CatalogError as e:
            logger.warning(f"Metadata backfill failed for movie {subject.movie_id}: {e}")
            return subject

        return subject.model_copy(update={
            "poster_path": subject.poster_path or metadata.get("poster_path"),
            "overview": subject.overview or metadata.get("overview"),
        })
