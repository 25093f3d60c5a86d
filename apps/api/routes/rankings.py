#!/usr/bin/env python3
"""Ranking API: add, compare, rerank and delete ranked movies"""

import logging
from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException
from sqlalchemy.orm import Session

from apps.api.deps import get_current_user_id
from apps.api.schemas.rankings import (
    AddMovieRequest,
    CompareRequest,
    RankedListResponse,
    RankedMovieResponse,
    RankingStepResponse,
    RerankStartRequest,
)
from apps.core.db import get_db
from apps.rankings.errors import RankingError
from apps.rankings.schemas.comparison import SessionMode, SubjectMovie
from apps.rankings.services.activity_fanout import ActivityFanout, get_activity_fanout
from apps.rankings.services.catalog import TmdbCatalog, get_catalog
from apps.rankings.services.comparison_flow import ComparisonController
from apps.rankings.services.comparison_session import ComparisonSessionManager, get_session_manager
from apps.rankings.services.insertion import InsertionController
from apps.rankings.services.ranked_list import RankedListStore
from apps.rankings.services.rerank import RerankController

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/movies", tags=["rankings"])


def _http_error(e: RankingError) -> HTTPException:
    if e.status_code >= 500:
        logger.error(f"Ranking failure: {e.message}")
    return HTTPException(status_code=e.status_code, detail=e.message)


def _compare_controller(
    user_id: int,
    db: Session,
    sessions: ComparisonSessionManager,
    fanout: ActivityFanout,
    catalog: TmdbCatalog,
    background_tasks: BackgroundTasks,
) -> ComparisonController:
    """Pick the flow that owns the user's current session"""
    session = sessions.get_session(user_id)
    if session is not None and session.mode == SessionMode.RERANK:
        return RerankController(db, sessions=sessions, fanout=fanout, schedule=background_tasks.add_task)
    return InsertionController(
        db, catalog=catalog, sessions=sessions, fanout=fanout, schedule=background_tasks.add_task
    )


@router.get("/ranked", response_model=RankedListResponse)
def get_ranked_movies(
    user_id: int = Depends(get_current_user_id),
    db: Session = Depends(get_db),
):
    """Current user's ranked list, most preferred first"""
    entries = RankedListStore(db).list(user_id)
    return RankedListResponse(
        items=[RankedMovieResponse.model_validate(e) for e in entries],
        count=len(entries),
    )


@router.post("/add", response_model=RankingStepResponse)
def add_movie(
    request: AddMovieRequest,
    background_tasks: BackgroundTasks,
    user_id: int = Depends(get_current_user_id),
    db: Session = Depends(get_db),
    sessions: ComparisonSessionManager = Depends(get_session_manager),
    fanout: ActivityFanout = Depends(get_activity_fanout),
    catalog: TmdbCatalog = Depends(get_catalog),
):
    """
    Add a movie to the user's ranking.

    An empty list takes the movie at rank 1 straight away. Otherwise a
    comparison session starts and the response names the first movie to
    compare against; answer it with POST /compare.
    """
    controller = InsertionController(
        db, catalog=catalog, sessions=sessions, fanout=fanout, schedule=background_tasks.add_task
    )
    subject = SubjectMovie(
        movie_id=request.movie_id,
        title=request.title,
        poster_path=request.poster_path,
        overview=request.overview,
    )
    try:
        step = controller.add_movie(user_id, subject)
    except RankingError as e:
        raise _http_error(e)
    return RankingStepResponse.from_step(step)


@router.post("/compare", response_model=RankingStepResponse)
def compare_movies(
    request: CompareRequest,
    background_tasks: BackgroundTasks,
    user_id: int = Depends(get_current_user_id),
    db: Session = Depends(get_db),
    sessions: ComparisonSessionManager = Depends(get_session_manager),
    fanout: ActivityFanout = Depends(get_activity_fanout),
    catalog: TmdbCatalog = Depends(get_catalog),
):
    """Answer the pending comparison with the preferred movie id"""
    controller = _compare_controller(user_id, db, sessions, fanout, catalog, background_tasks)
    try:
        step = controller.compare(user_id, request.preferred_movie_id, request.session_token)
    except RankingError as e:
        raise _http_error(e)
    return RankingStepResponse.from_step(step)


@router.delete("/compare")
def cancel_comparison(
    user_id: int = Depends(get_current_user_id),
    sessions: ComparisonSessionManager = Depends(get_session_manager),
):
    """Abandon the current comparison session, if any"""
    sessions.end_session(user_id)
    return {"message": "Comparison session ended"}


@router.post("/rerank/start", response_model=RankingStepResponse)
def start_rerank(
    request: RerankStartRequest,
    background_tasks: BackgroundTasks,
    user_id: int = Depends(get_current_user_id),
    db: Session = Depends(get_db),
    sessions: ComparisonSessionManager = Depends(get_session_manager),
    fanout: ActivityFanout = Depends(get_activity_fanout),
):
    """Start repositioning an already-ranked movie"""
    controller = RerankController(db, sessions=sessions, fanout=fanout, schedule=background_tasks.add_task)
    try:
        step = controller.start(user_id, request.movie_id)
    except RankingError as e:
        raise _http_error(e)
    return RankingStepResponse.from_step(step)


@router.post("/rerank/compare", response_model=RankingStepResponse)
def compare_rerank(
    request: CompareRequest,
    background_tasks: BackgroundTasks,
    user_id: int = Depends(get_current_user_id),
    db: Session = Depends(get_db),
    sessions: ComparisonSessionManager = Depends(get_session_manager),
    fanout: ActivityFanout = Depends(get_activity_fanout),
    catalog: TmdbCatalog = Depends(get_catalog),
):
    """Same as /compare; kept as its own path for rerank clients"""
    return compare_movies(request, background_tasks, user_id, db, sessions, fanout, catalog)


@router.delete("/ranked/{movie_id}")
def delete_ranked_movie(
    movie_id: int,
    background_tasks: BackgroundTasks,
    user_id: int = Depends(get_current_user_id),
    db: Session = Depends(get_db),
    fanout: ActivityFanout = Depends(get_activity_fanout),
):
    """Remove a movie from the ranking and close the gap"""
    try:
        removed = RankedListStore(db).remove_movie(user_id, movie_id)
    except RankingError as e:
        raise _http_error(e)

    fanout.clear_activities(db, user_id, movie_id)
    background_tasks.add_task(fanout.notify_ranking_changed, user_id)
    return {"message": "Removed from rankings", "movie_id": movie_id, "rank": removed.rank}
