#!/usr/bin/env python3
"""Domain errors raised by the ranking engine; routers map status_code to HTTP"""


class RankingError(Exception):
    """Base class for ranking engine errors"""
    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(RankingError):
    status_code = 400


class DuplicateRankingError(ValidationError):
    """Movie is already in the user's ranked list"""

    def __init__(self, movie_id: int):
        super().__init__("Movie already ranked")
        self.movie_id = movie_id


class NoActiveSessionError(ValidationError):
    def __init__(self):
        super().__init__("No active comparison session")


class InvalidPreferenceError(ValidationError):
    """Preferred movie is neither the subject nor the current comparator"""
    pass


class RankedMovieNotFoundError(RankingError):
    status_code = 404

    def __init__(self, movie_id: int):
        super().__init__("Ranked movie not found")
        self.movie_id = movie_id


class StaleSessionError(RankingError):
    status_code = 409


class PersistenceError(RankingError):
    """Rank write failed and was rolled back"""
    status_code = 500
