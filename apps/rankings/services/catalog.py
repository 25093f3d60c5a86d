#!/usr/bin/env python3
"""TMDB catalog client used to backfill poster/overview before finalize"""

import time
import logging
import requests
from typing import Optional, Dict, Any
from collections import Counter
from apps.core.config import settings

logger = logging.getLogger(__name__)


class CatalogError(Exception):
    """Custom exception for TMDB API errors"""
    pass


class TmdbCatalog:
    """Minimal TMDB client: movie details lookup with retries"""

    def __init__(self, api_key: Optional[str] = None, base_url: Optional[str] = None, timeout: Optional[int] = None):
        self.key = api_key if api_key is not None else settings.tmdb_api_key
        self.base_url = (base_url or settings.tmdb_base_url).rstrip("/")
        self.timeout = timeout or settings.tmdb_timeout_s
        self.stats = Counter()

    def _get(self, path: str, params: Dict[str, Any], retries: int = 2) -> Dict[str, Any]:
        """Make GET request to TMDB with error handling"""
        if not self.key:
            raise CatalogError("TMDB API key not configured")

        params = dict(params)
        params["api_key"] = self.key

        attempt = 0
        while True:
            attempt += 1
            try:
                response = requests.get(f"{self.base_url}/{path}", params=params, timeout=self.timeout)
                if response.status_code == 404:
                    self.stats["not_found"] += 1
                    raise CatalogError(f"Not found: {path}")
                if response.status_code == 429:
                    self.stats["rate_limited"] += 1
                    logger.warning("TMDB rate limit exceeded")
                    raise CatalogError("Rate limit exceeded")
                response.raise_for_status()
                self.stats["ok"] += 1
                return response.json()
            except requests.exceptions.RequestException as e:
                if attempt < retries:
                    time.sleep(min(attempt, 2))
                    continue
                self.stats["error"] += 1
                logger.error(f"TMDB request failed: {e}")
                raise CatalogError(f"Request failed: {e}")

    def fetch_metadata(self, movie_id: int) -> Dict[str, Optional[str]]:
        """Return {"poster_path", "overview"} for a TMDB movie id"""
        data = self._get(f"movie/{movie_id}", {"language": "en-US"})
        return {
            "poster_path": data.get("poster_path") or None,
            "overview": data.get("overview") or None,
        }


# Global instance
_catalog = None


def get_catalog() -> TmdbCatalog:
    """Get global catalog client"""
    global _catalog
    if _catalog is None:
        _catalog = TmdbCatalog()
    return _catalog
