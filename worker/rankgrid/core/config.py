"""Application configuration helpers."""

import logging
import os
from dataclasses import dataclass
from functools import lru_cache

from dotenv import load_dotenv

logger = logging.getLogger(__name__)

PROVIDERS = ("google_places", "serpapi")


class ConfigError(RuntimeError):
    """Raised when mandatory configuration is missing."""


@dataclass(frozen=True)
class Settings:
    rank_provider: str = "google_places"
    google_api_key: str = ""
    serpapi_api_key: str = ""
    scan_delay_seconds: float = 0.5
    request_timeout: float = 10.0
    places_search_radius_meters: int = 5000
    serpapi_zoom: int = 14
    max_concurrent_scans: int = 4
    worker_port: int = 8080


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Load settings from environment variables with sensible defaults."""
    load_dotenv()

    rank_provider = os.getenv("RANK_PROVIDER", "google_places").strip().lower()
    google_api_key = os.getenv("GOOGLE_API_KEY", "")
    serpapi_api_key = os.getenv("SERPAPI_API_KEY", "")
    scan_delay_seconds = float(os.getenv("SCAN_DELAY_SECONDS", "0.5"))
    request_timeout = float(os.getenv("REQUEST_TIMEOUT", "10"))
    places_search_radius_meters = int(os.getenv("PLACES_SEARCH_RADIUS_METERS", "5000"))
    serpapi_zoom = int(os.getenv("SERPAPI_ZOOM", "14"))
    max_concurrent_scans = int(os.getenv("MAX_CONCURRENT_SCANS", "4"))
    worker_port = int(os.getenv("PORT") or os.getenv("WORKER_PORT") or "8080")

    if rank_provider not in PROVIDERS:
        raise ConfigError(f"RANK_PROVIDER must be one of {', '.join(PROVIDERS)}, got {rank_provider!r}")
    if scan_delay_seconds < 0:
        raise ConfigError("SCAN_DELAY_SECONDS must not be negative")
    if rank_provider == "google_places" and not google_api_key:
        logger.warning("GOOGLE_API_KEY is not configured; Google Places rank checks will fail.")
    if rank_provider == "serpapi" and not serpapi_api_key:
        logger.warning("SERPAPI_API_KEY is not configured; SerpAPI rank checks will fail.")

    return Settings(
        rank_provider=rank_provider,
        google_api_key=google_api_key,
        serpapi_api_key=serpapi_api_key,
        scan_delay_seconds=scan_delay_seconds,
        request_timeout=request_timeout,
        places_search_radius_meters=places_search_radius_meters,
        serpapi_zoom=serpapi_zoom,
        max_concurrent_scans=max_concurrent_scans,
        worker_port=worker_port,
    )
