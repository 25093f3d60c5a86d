#!/usr/bin/env python3
"""Check (and optionally repair) that every user's ranks are exactly 1..N"""

import argparse
import logging
import sys
from typing import Dict, Any, List

from sqlalchemy import select, update
from sqlalchemy.orm import Session
from apps.core.db import SessionLocal, atomic
from apps.rankings.models import RankedMovie

logger = logging.getLogger(__name__)


def broken_users(db: Session) -> Dict[int, List[int]]:
    """Map user_id -> ranks in use, for users whose ranks are not 1..N"""
    rows = db.execute(
        select(RankedMovie.user_id, RankedMovie.rank).order_by(RankedMovie.user_id, RankedMovie.rank)
    ).all()

    ranks_by_user: Dict[int, List[int]] = {}
    for row in rows:
        ranks_by_user.setdefault(row.user_id, []).append(row.rank)

    return {
        user_id: ranks
        for user_id, ranks in ranks_by_user.items()
        if ranks != list(range(1, len(ranks) + 1))
    }


def renumber(db: Session, user_id: int) -> int:
    """Rewrite a user's ranks to 1..N keeping their relative order.

    Two passes (negative, then positive) so no intermediate state collides on
    the (user_id, rank) unique constraint.
    """
    rows = db.execute(
        select(RankedMovie.id)
        .where(RankedMovie.user_id == user_id)
        .order_by(RankedMovie.rank.asc(), RankedMovie.id.asc())
        .with_for_update()
    ).scalars().all()

    with atomic(db):
        for position, row_id in enumerate(rows, start=1):
            db.execute(update(RankedMovie).where(RankedMovie.id == row_id).values(rank=-position))
        for position, row_id in enumerate(rows, start=1):
            db.execute(update(RankedMovie).where(RankedMovie.id == row_id).values(rank=position))
    return len(rows)


def check_rank_integrity(repair: bool = False) -> Dict[str, Any]:
    db = SessionLocal()
    stats = {"broken_users": 0, "repaired_users": 0, "repair": repair}
    try:
        broken = broken_users(db)
        stats["broken_users"] = len(broken)
        for user_id, ranks in broken.items():
            logger.warning(f"User {user_id} has non-contiguous ranks: {ranks}")
            if repair:
                count = renumber(db, user_id)
                stats["repaired_users"] += 1
                logger.info(f"Renumbered {count} entries for user {user_id}")
        return stats
    finally:
        db.close()


def main():
    """Main function"""
    logging.basicConfig(
        level=logging.INFO,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )
    parser = argparse.ArgumentParser(description="Verify contiguous ranks for every user")
    parser.add_argument("--repair", action="store_true", help="renumber broken lists to 1..N")
    args = parser.parse_args()

    try:
        stats = check_rank_integrity(repair=args.repair)
    except Exception as e:
        print(f"❌ Rank integrity check failed: {e}")
        sys.exit(1)

    if stats["broken_users"] and not args.repair:
        print(f"❌ {stats['broken_users']} users with broken rankings (run with --repair)")
        sys.exit(2)
    print(f"✅ Rank integrity ok: {stats}")


if __name__ == "__main__":
    main()
