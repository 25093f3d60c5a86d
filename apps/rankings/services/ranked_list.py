#!/usr/bin/env python3
"""Persisted per-user ranked list"""

import logging
from typing import List, Optional
from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from apps.core.db import atomic
from apps.rankings.errors import PersistenceError, RankedMovieNotFoundError, ValidationError
from apps.rankings.models import RankedMovie
from apps.rankings.services.rank_shift import shift_for_insert, shift_for_move, shift_for_remove

logger = logging.getLogger(__name__)


class RankedListStore:
    """Owns the contiguous-rank invariant: ranks of a user are exactly 1..N.

    Every mutating method is one transaction; on any database error it is
    rolled back and re-raised as PersistenceError.
    """

    def __init__(self, db: Session):
        self.db = db

    def list(self, user_id: int) -> List[RankedMovie]:
        """Entries in ascending rank order"""
        stmt = select(RankedMovie).where(RankedMovie.user_id == user_id).order_by(RankedMovie.rank.asc())
        return list(self.db.execute(stmt).scalars().all())

    def count(self, user_id: int) -> int:
        stmt = select(func.count(RankedMovie.id)).where(RankedMovie.user_id == user_id)
        return self.db.execute(stmt).scalar_one()

    def get(self, user_id: int, movie_id: int) -> Optional[RankedMovie]:
        stmt = select(RankedMovie).where(
            RankedMovie.user_id == user_id,
            RankedMovie.movie_id == movie_id,
        )
        return self.db.execute(stmt).scalar_one_or_none()

    def insert_at(
        self,
        user_id: int,
        position: int,
        movie_id: int,
        title: str,
        poster_path: Optional[str] = None,
        overview: Optional[str] = None,
    ) -> RankedMovie:
        """Insert a new entry at ``position`` (1-indexed), shifting later entries down"""
        size = self.count(user_id)
        if position < 1 or position > size + 1:
            raise ValidationError(f"Position {position} out of range 1..{size + 1}")

        entry = RankedMovie(
            user_id=user_id,
            movie_id=movie_id,
            title=title,
            poster_path=poster_path,
            overview=overview,
            rank=position,
        )
        try:
            with atomic(self.db):
                shift_for_insert(self.db, user_id, position)
                self.db.add(entry)
                self.db.flush()
        except SQLAlchemyError as e:
            logger.error(f"Failed to insert movie {movie_id} at {position} for user {user_id}: {e}")
            raise PersistenceError("Unable to save ranking. Please try again") from e

        self.db.refresh(entry)
        logger.info(f"Ranked movie {movie_id} at {position} for user {user_id}")
        return entry

    def remove_at(self, user_id: int, position: int) -> RankedMovie:
        """Delete the entry at ``position`` and close the gap; returns the removed row"""
        stmt = select(RankedMovie).where(
            RankedMovie.user_id == user_id,
            RankedMovie.rank == position,
        )
        entry = self.db.execute(stmt).scalar_one_or_none()
        if entry is None:
            raise ValidationError(f"No ranked movie at position {position}")
        movie_id = entry.movie_id

        try:
            with atomic(self.db):
                self.db.delete(entry)
                self.db.flush()
                shift_for_remove(self.db, user_id, position)
        except SQLAlchemyError as e:
            logger.error(f"Failed to remove rank {position} for user {user_id}: {e}")
            raise PersistenceError("Unable to remove from rankings. Please try again") from e

        logger.info(f"Removed movie {movie_id} (rank {position}) for user {user_id}")
        return entry

    def remove_movie(self, user_id: int, movie_id: int) -> RankedMovie:
        entry = self.get(user_id, movie_id)
        if entry is None:
            raise RankedMovieNotFoundError(movie_id)
        return self.remove_at(user_id, entry.rank)

    def move(self, user_id: int, from_position: int, to_position: int) -> RankedMovie:
        """Reposition one entry with a single combined remove+insert shift"""
        size = self.count(user_id)
        for position in (from_position, to_position):
            if position < 1 or position > size:
                raise ValidationError(f"Position {position} out of range 1..{size}")

        stmt = select(RankedMovie).where(
            RankedMovie.user_id == user_id,
            RankedMovie.rank == from_position,
        )
        entry = self.db.execute(stmt).scalar_one()

        try:
            with atomic(self.db):
                shift_for_move(self.db, user_id, entry.id, from_position, to_position)
        except SQLAlchemyError as e:
            logger.error(f"Failed to move rank {from_position} -> {to_position} for user {user_id}: {e}")
            raise PersistenceError("Unable to save ranking. Please try again") from e

        self.db.refresh(entry)
        logger.info(f"Moved movie {entry.movie_id} from {from_position} to {to_position} for user {user_id}")
        return entry
