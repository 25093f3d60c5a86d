#!/usr/bin/env python3
"""Pydantic schemas for comparison sessions"""

import time
import uuid
from enum import Enum
from typing import Optional
from pydantic import BaseModel, Field


def _new_token() -> str:
    return uuid.uuid4().hex


class SessionMode(str, Enum):
    INSERT = "insert"
    RERANK = "rerank"


class SubjectMovie(BaseModel):
    """Movie being placed by the comparison flow"""
    movie_id: int
    title: str
    poster_path: Optional[str] = None
    overview: Optional[str] = None


class ComparisonSession(BaseModel):
    """Binary-search state carried between compare requests.

    ``low``/``high`` are 0-based indexes into the comparison list (the user's
    ranked list, minus the subject when reranking). The subject lands at
    1-indexed position ``low + 1`` once ``low > high``.
    """
    user_id: int
    subject: SubjectMovie
    low: int = 0
    high: int
    mode: SessionMode = SessionMode.INSERT
    origin_rank: Optional[int] = None  # rerank only
    list_size: int = 0
    token: str = Field(default_factory=_new_token)
    created_at: float = Field(default_factory=time.time)
    updated_at: float = Field(default_factory=time.time)

    @property
    def middle(self) -> int:
        return (self.low + self.high) // 2

    @property
    def finished(self) -> bool:
        return self.low > self.high

    def rotate_token(self) -> None:
        self.token = _new_token()
        self.updated_at = time.time()
