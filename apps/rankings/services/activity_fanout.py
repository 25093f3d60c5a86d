#!/usr/bin/env python3
"""Feed activity recording and friend notification after a rank change.

Nothing in here may fail a finalize: the activity write and every friend
notification log their errors and carry on.
"""

import logging
from typing import Callable, Optional
from sqlalchemy import delete
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from apps.core.db import SessionLocal, atomic
from apps.rankings.models import RankedMovie
from apps.rankings.services.push_notifications import PushNotifier, get_push_notifier
from apps.rankings.services.realtime import RealtimeHub, get_realtime_hub
from apps.social.models import ActivityType, FeedActivity
from apps.social.services.friend_graph import display_name, friends_of, push_token

logger = logging.getLogger(__name__)

FEED_ACTIVITY_EVENT = "feed_activity"
RANKING_CHANGED_EVENT = "ranking_changed"


class ActivityFanout:
    """Writes the latest activity for a (user, movie) and notifies friends"""

    def __init__(
        self,
        hub: Optional[RealtimeHub] = None,
        notifier: Optional[PushNotifier] = None,
        session_factory: Callable[[], Session] = None,
    ):
        self.hub = hub or get_realtime_hub()
        self.notifier = notifier or get_push_notifier()
        self.session_factory = session_factory or SessionLocal

    def record_activity(self, db: Session, entry: RankedMovie) -> Optional[FeedActivity]:
        """Replace any earlier activity for this movie with one carrying the new rank"""
        activity = FeedActivity(
            user_id=entry.user_id,
            activity_type=ActivityType.RANKED_MOVIE.value,
            movie_id=entry.movie_id,
            movie_title=entry.title,
            poster_path=entry.poster_path,
            overview=entry.overview,
            rank=entry.rank,
        )
        try:
            with atomic(db):
                db.execute(
                    delete(FeedActivity).where(
                        FeedActivity.user_id == entry.user_id,
                        FeedActivity.movie_id == entry.movie_id,
                    )
                )
                db.add(activity)
                db.flush()
            return activity
        except SQLAlchemyError as e:
            logger.error(f"Failed to record activity for movie {entry.movie_id}, user {entry.user_id}: {e}")
            return None

    def clear_activities(self, db: Session, user_id: int, movie_id: int) -> int:
        try:
            with atomic(db):
                result = db.execute(
                    delete(FeedActivity).where(
                        FeedActivity.user_id == user_id,
                        FeedActivity.movie_id == movie_id,
                    )
                )
            return result.rowcount
        except SQLAlchemyError as e:
            logger.error(f"Failed to clear activities for movie {movie_id}, user {user_id}: {e}")
            return 0

    def notify_friends(self, user_id: int, activity_id: int, movie_title: str) -> int:
        """Realtime event plus best-effort push for every friend; returns friends reached"""
        reached = 0
        try:
            db = self.session_factory()
            try:
                friend_ids = friends_of(db, user_id)
                if not friend_ids:
                    return 0
                sender_name = display_name(db, user_id)

                for friend_id in sorted(friend_ids):
                    if self._notify_friend(db, friend_id, user_id, sender_name, activity_id, movie_title):
                        reached += 1
            finally:
                db.close()
        except Exception as e:
            logger.error(f"Friend fan-out for user {user_id} aborted: {e}")

        logger.info(f"Activity {activity_id} of user {user_id} fanned out to {reached} friends")
        return reached

    def _notify_friend(
        self,
        db: Session,
        friend_id: int,
        user_id: int,
        sender_name: str,
        activity_id: int,
        movie_title: str,
    ) -> bool:
        """Realtime event and push are independent; True if either went out"""
        delivered = False
        try:
            self.hub.send(friend_id, FEED_ACTIVITY_EVENT, {"activityId": activity_id})
            delivered = True
        except Exception as e:
            logger.warning(f"Realtime event to friend {friend_id} of user {user_id} failed: {e}")

        try:
            token = push_token(db, friend_id)
            if token and self.notifier.send_feed_notification(token, sender_name, movie_title, activity_id):
                delivered = True
        except Exception as e:
            logger.warning(f"Push to friend {friend_id} of user {user_id} failed: {e}")
        return delivered

    def notify_ranking_changed(self, user_id: int) -> int:
        """Tell friends the user's list changed without a new activity (e.g. a delete)"""
        reached = 0
        try:
            db = self.session_factory()
            try:
                friend_ids = friends_of(db, user_id)
            finally:
                db.close()
            for friend_id in sorted(friend_ids):
                try:
                    self.hub.send(friend_id, RANKING_CHANGED_EVENT, {"userId": user_id})
                    reached += 1
                except Exception as e:
                    logger.warning(f"Failed to send ranking change to friend {friend_id}: {e}")
        except Exception as e:
            logger.error(f"Ranking change fan-out for user {user_id} aborted: {e}")
        return reached


# Global instance
_fanout = None


def get_activity_fanout() -> ActivityFanout:
    """Get global activity fan-out"""
    global _fanout
    if _fanout is None:
        _fanout = ActivityFanout()
    return _fanout
