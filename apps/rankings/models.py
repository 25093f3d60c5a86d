from sqlalchemy import Column, Integer, Text, DateTime, ForeignKey, UniqueConstraint, Index
from sqlalchemy.sql import func
from apps.core.db import Base

# Parking slot used while a row is being moved; never visible after commit
STAGING_RANK = 0


class RankedMovie(Base):
    """One row per (user, movie); ranks per user are always 1..N"""
    __tablename__ = "ranked_movies"
    __table_args__ = (
        UniqueConstraint("user_id", "movie_id", name="uq_ranked_movies_user_movie"),
        UniqueConstraint("user_id", "rank", name="uq_ranked_movies_user_rank"),
        Index("ix_ranked_movies_user_rank", "user_id", "rank"),
    )

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    movie_id = Column(Integer, nullable=False)  # TMDB id

    title = Column(Text, nullable=False)
    poster_path = Column(Text, nullable=True)
    overview = Column(Text, nullable=True)

    rank = Column(Integer, nullable=False)  # 1 = most preferred

    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    def __repr__(self) -> str:
        return f"<RankedMovie user={self.user_id} movie={self.movie_id} rank={self.rank}>"
