"""Health check endpoints exposed by the public API."""

from __future__ import annotations

import logging
from datetime import datetime, timezone

from fastapi import APIRouter, Depends
from sqlalchemy import text
from sqlalchemy.orm import Session

from apps.core.db import get_db
from apps.rankings.services.comparison_session import ComparisonSessionManager, get_session_manager

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/health", tags=["health"])


def _utc_timestamp() -> str:
    return datetime.now(timezone.utc).isoformat()


@router.get("", summary="Constant-time readiness probe")
def health_fast() -> dict[str, str]:
    """Simple readiness probe that avoids touching the database."""
    return {"status": "ok", "timestamp": _utc_timestamp()}


@router.get("/db", summary="Database connectivity check")
def health_db(db: Session = Depends(get_db)) -> dict[str, str]:
    """Deep health check that validates the database connection."""
    db.execute(text("SELECT 1"))
    return {"status": "ok", "scope": "db", "timestamp": _utc_timestamp()}


@router.get("/sessions", summary="Comparison session snapshot")
def health_sessions(
    sessions: ComparisonSessionManager = Depends(get_session_manager),
) -> dict[str, object]:
    try:
        removed = sessions.cleanup_expired()
        return {
            "status": "ok",
            "expired_removed": removed,
            "sessions": sessions.stats(),
            "timestamp": _utc_timestamp(),
        }
    except Exception as exc:  # pragma: no cover
        logger.error("Session health check failed: %s", exc)
        return {"status": "unhealthy", "error": str(exc), "timestamp": _utc_timestamp()}
