from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
import asyncio
import logging
import os

from apps.api.routes import (
    health,
    rankings,
    stream,
)
from apps.rankings.services.comparison_session import get_session_manager

SESSION_CLEANUP_INTERVAL_S = 300

# Create FastAPI app
app = FastAPI(
    title="Movie Ranking API",
    description="Comparison-driven personal movie rankings shared with friends",
    version="1.0.0"
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=False,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers
app.include_router(health.router, prefix="/api")
app.include_router(rankings.router)
app.include_router(stream.router)

logger = logging.getLogger(__name__)


@app.on_event("startup")
async def schedule_session_cleanup():
    logger.info(
        "startup complete", extra={"env": os.getenv("APP_ENV", "dev"), "port": os.getenv("PORT", "8000")}
    )

    async def worker():
        while True:
            await asyncio.sleep(SESSION_CLEANUP_INTERVAL_S)
            try:
                get_session_manager().cleanup_expired()
            except Exception as exc:  # pragma: no cover
                logger.warning("Session cleanup loop error: %s", exc)
    asyncio.create_task(worker())


@app.get("/")
async def root():
    return {"message": "Movie Ranking API", "version": "1.0.0"}
