from enum import Enum
from sqlalchemy import Column, Integer, String, Text, DateTime, ForeignKey, UniqueConstraint
from sqlalchemy.sql import func
from apps.core.db import Base


class ActivityType(Enum):
    """Types of feed activity"""
    RANKED_MOVIE = "ranked_movie"


class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(Text, nullable=True)
    email = Column(Text, unique=True, nullable=True)
    fcm_token = Column(Text, nullable=True)  # push token registered by the mobile app
    created_at = Column(DateTime, server_default=func.now())


class Friendship(Base):
    """Directed edge; an accepted friendship is stored once per direction"""
    __tablename__ = "friendships"
    __table_args__ = (
        UniqueConstraint("user_id", "friend_id", name="uq_friendships_pair"),
    )

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    friend_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    created_at = Column(DateTime, server_default=func.now())


class WatchlistItem(Base):
    __tablename__ = "watchlist_items"
    __table_args__ = (
        UniqueConstraint("user_id", "movie_id", name="uq_watchlist_user_movie"),
    )

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    movie_id = Column(Integer, nullable=False)
    title = Column(Text, nullable=False)
    poster_path = Column(Text, nullable=True)
    overview = Column(Text, nullable=True)
    created_at = Column(DateTime, server_default=func.now())


class FeedActivity(Base):
    """Latest ranking state of a movie for a user, as shown in friends' feeds"""
    __tablename__ = "feed_activities"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    activity_type = Column(String(32), nullable=False, default=ActivityType.RANKED_MOVIE.value)
    movie_id = Column(Integer, nullable=False)
    movie_title = Column(Text, nullable=False)
    poster_path = Column(Text, nullable=True)
    overview = Column(Text, nullable=True)
    rank = Column(Integer, nullable=True)
    created_at = Column(DateTime, server_default=func.now(), index=True)
