#!/usr/bin/env python3
"""Read-only friend graph queries"""

from typing import Optional, Set
from sqlalchemy import select
from sqlalchemy.orm import Session

from apps.social.models import Friendship, User

DEFAULT_DISPLAY_NAME = "A friend"


def friends_of(db: Session, user_id: int) -> Set[int]:
    rows = db.execute(select(Friendship.friend_id).where(Friendship.user_id == user_id)).scalars().all()
    return set(rows)


def display_name(db: Session, user_id: int) -> str:
    name = db.execute(select(User.name).where(User.id == user_id)).scalar_one_or_none()
    return name or DEFAULT_DISPLAY_NAME


def push_token(db: Session, user_id: int) -> Optional[str]:
    return db.execute(select(User.fcm_token).where(User.id == user_id)).scalar_one_or_none()
