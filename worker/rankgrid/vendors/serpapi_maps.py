"""SerpAPI Google Maps helpers used as an alternative rank source."""

from __future__ import annotations

import logging
from typing import Any, Dict, Iterable, Optional

from serpapi import GoogleSearch

logger = logging.getLogger(__name__)

# SerpAPI reports an empty result page through its "error" field.
NO_RESULTS_MESSAGE = "hasn't returned any results"


class SerpApiError(RuntimeError):
    """Raised when SerpAPI answers with an error payload."""


def build_ll(lat: float, lng: float, zoom: int) -> str:
    """Format SerpAPI's ``ll`` parameter, e.g. ``@37.5,127.0,14z``."""
    return f"@{lat:.7f},{lng:.7f},{zoom}z"


def build_serpapi_params(query: str, api_key: str, ll: Optional[str] = None) -> Dict[str, Any]:
    """Construct SerpAPI request parameters for the Google Maps engine."""
    if not query or not query.strip():
        raise ValueError("Query must be provided for SerpAPI lookups.")

    params: Dict[str, Any] = {
        "engine": "google_maps",
        "q": query.strip(),
        "api_key": api_key,
        "type": "search",
    }
    if ll:
        params["ll"] = ll
    return params


def fetch_maps_results(query: str, api_key: str, ll: Optional[str] = None, timeout: float = 10) -> Dict[str, Any]:
    """Call SerpAPI Google Maps once and return the raw JSON response.

    SerpAPI bills every request; retries are left to the caller.
    """
    params = build_serpapi_params(query, api_key, ll)
    logger.info("Calling SerpAPI for query=%s ll=%s", query, ll)
    search = GoogleSearch(params)
    search.timeout = timeout
    data = search.get_dict()
    if not data:
        raise ValueError("SerpAPI returned an empty payload.")
    if "error" in data:
        message = data.get("error") or data
        if isinstance(message, str) and NO_RESULTS_MESSAGE in message:
            logger.info("SerpAPI returned no results for query=%s ll=%s", query, ll)
            return {**data, "local_results": []}
        raise SerpApiError(f"SerpAPI returned an error response: {message}")
    return data


def extract_local_results(data: Dict[str, Any]) -> Iterable[Any]:
    """SerpAPI sometimes returns local_results as a list or nested dict."""
    local_results = data.get("local_results")
    if isinstance(local_results, list):
        return local_results
    if isinstance(local_results, dict):
        logger.debug("local_results is dict with keys: %s", list(local_results.keys())[:10])
        candidate_lists = [
            local_results.get("places"),
            local_results.get("results"),
            local_results.get("local_results"),
        ]
        for maybe in candidate_lists:
            if isinstance(maybe, list):
                return maybe
    place_results = data.get("place_results")
    if isinstance(place_results, list):
        return place_results
    if isinstance(place_results, dict):
        return [place_results]
    return []
