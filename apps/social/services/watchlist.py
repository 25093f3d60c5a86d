#!/usr/bin/env python3
"""Watchlist hooks used by the ranking flow"""

import logging
from sqlalchemy import delete
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from apps.social.models import WatchlistItem

logger = logging.getLogger(__name__)


def remove_if_present(db: Session, user_id: int, movie_id: int) -> bool:
    """Drop a movie from the user's watchlist once it is ranked.

    Best-effort: errors are logged and reported as False, never raised.
    """
    try:
        result = db.execute(
            delete(WatchlistItem).where(
                WatchlistItem.user_id == user_id,
                WatchlistItem.movie_id == movie_id,
            )
        )
        db.commit()
        return result.rowcount > 0
    except SQLAlchemyError as e:
        db.rollback()
        logger.warning(f"Failed to remove watchlist item {movie_id} for user {user_id}: {e}")
        return False
