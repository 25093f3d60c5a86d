from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import Optional


class Settings(BaseSettings):
    """Application settings for the movie ranking API."""

    # Database - PostgreSQL in deployments, SQLite accepted for local runs and tests
    database_url: str = "postgresql+psycopg://mr:mr@localhost:5432/movie_ranking"

    # Environment
    environment: str = "development"

    # TMDB catalog (metadata backfill only)
    tmdb_api_key: str = ""
    tmdb_base_url: str = "https://api.themoviedb.org/3"
    tmdb_timeout_s: int = 8

    # Push gateway; empty URL disables push notifications
    push_gateway_url: Optional[str] = None
    push_gateway_key: str = ""
    push_timeout_s: int = 5

    # Comparison sessions / realtime channel
    comparison_session_ttl_s: int = 30 * 60
    realtime_queue_size: int = 100

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )


settings = Settings()
