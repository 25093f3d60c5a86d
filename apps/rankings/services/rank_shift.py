#!/usr/bin/env python3
"""Rank shifting that keeps a user's ranks contiguous.

Rows are rewritten one statement at a time in an order that never lets two
rows of the same user share a rank, so the (user_id, rank) unique constraint
holds after every single statement:

* making room (increment): highest affected rank first
* closing a gap (decrement): lowest affected rank first

None of these functions commit. Callers wrap them in ``apps.core.db.atomic``
so a failure part-way rolls back the whole shift.
"""

import logging
from typing import List, Tuple
from sqlalchemy import select, update
from sqlalchemy.orm import Session

from apps.rankings.models import RankedMovie, STAGING_RANK

logger = logging.getLogger(__name__)


def _lock_ranks(db: Session, user_id: int, lower: int, upper: int = None, descending: bool = False) -> List[Tuple[int, int]]:
    """Return (id, rank) pairs in [lower, upper], row-locked for the transaction"""
    stmt = select(RankedMovie.id, RankedMovie.rank).where(
        RankedMovie.user_id == user_id,
        RankedMovie.rank >= lower,
    )
    if upper is not None:
        stmt = stmt.where(RankedMovie.rank <= upper)
    order = RankedMovie.rank.desc() if descending else RankedMovie.rank.asc()
    rows = db.execute(stmt.order_by(order).with_for_update()).all()
    return [(row.id, row.rank) for row in rows]


def _set_rank(db: Session, row_id: int, rank: int) -> None:
    db.execute(
        update(RankedMovie)
        .where(RankedMovie.id == row_id)
        .values(rank=rank)
        .execution_options(synchronize_session=False)
    )


def _increment(db: Session, user_id: int, lower: int, upper: int = None) -> int:
    rows = _lock_ranks(db, user_id, lower, upper, descending=True)
    for row_id, rank in rows:
        _set_rank(db, row_id, rank + 1)
    return len(rows)


def _decrement(db: Session, user_id: int, lower: int, upper: int = None) -> int:
    rows = _lock_ranks(db, user_id, lower, upper, descending=False)
    for row_id, rank in rows:
        _set_rank(db, row_id, rank - 1)
    return len(rows)


def shift_for_insert(db: Session, user_id: int, position: int) -> int:
    """Open a hole at ``position``: every rank >= position moves down one slot."""
    shifted = _increment(db, user_id, position)
    logger.debug(f"Shifted {shifted} ranks up from {position} for user {user_id}")
    return shifted


def shift_for_remove(db: Session, user_id: int, position: int) -> int:
    """Close the hole at ``position``: every rank > position moves up one slot."""
    shifted = _decrement(db, user_id, position + 1)
    logger.debug(f"Shifted {shifted} ranks down after {position} for user {user_id}")
    return shifted


def shift_for_move(db: Session, user_id: int, row_id: int, from_position: int, to_position: int) -> int:
    """Move one row from ``from_position`` to ``to_position`` as a single remove+insert.

    The moving row is parked at STAGING_RANK while its neighbours shift, then
    written to its target. Equal positions are an identity and touch nothing.
    """
    if from_position == to_position:
        return 0

    _set_rank(db, row_id, STAGING_RANK)
    if to_position < from_position:
        shifted = _increment(db, user_id, to_position, from_position - 1)
    else:
        shifted = _decrement(db, user_id, from_position + 1, to_position)
    _set_rank(db, row_id, to_position)

    logger.debug(
        f"Moved row {row_id} from {from_position} to {to_position} for user {user_id}, "
        f"{shifted} neighbours shifted"
    )
    return shifted
