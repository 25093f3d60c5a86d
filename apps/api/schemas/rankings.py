from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel
from typing import Optional, List
from datetime import datetime

from apps.rankings.services.comparison_flow import RankingStep


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)


class AddMovieRequest(CamelModel):
    movie_id: int = Field(..., gt=0)
    title: str = Field(..., min_length=1, max_length=500)
    poster_path: Optional[str] = None
    overview: Optional[str] = None


class CompareRequest(CamelModel):
    preferred_movie_id: int = Field(..., gt=0)
    session_token: Optional[str] = None


class RerankStartRequest(CamelModel):
    movie_id: int = Field(..., gt=0)


class MovieCard(CamelModel):
    movie_id: int
    title: str
    poster_path: Optional[str] = None


class RankedMovieResponse(CamelModel):
    movie_id: int
    title: str
    poster_path: Optional[str] = None
    overview: Optional[str] = None
    rank: int
    created_at: Optional[datetime] = None


class RankedListResponse(CamelModel):
    items: List[RankedMovieResponse]
    count: int


class RankingStepResponse(CamelModel):
    status: str
    rank: Optional[int] = None
    entry: Optional[RankedMovieResponse] = None
    compare_with: Optional[MovieCard] = None
    session_token: Optional[str] = None

    @classmethod
    def from_step(cls, step: RankingStep) -> "RankingStepResponse":
        return cls(
            status=step.status,
            rank=step.rank,
            entry=RankedMovieResponse.model_validate(step.entry) if step.entry is not None else None,
            compare_with=MovieCard.model_validate(step.compare_with) if step.compare_with is not None else None,
            session_token=step.session_token,
        )
