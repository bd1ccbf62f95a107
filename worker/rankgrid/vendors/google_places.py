"""Client utilities for the Google Places API."""

import logging
from typing import Any, Dict, Optional

from rankgrid.vendors.session import SessionHandle

logger = logging.getLogger(__name__)
_BASE_URL = "https://maps.googleapis.com/maps/api/place"


class GooglePlacesError(RuntimeError):
    """Raised when the Places API returns a non-successful response."""


def text_search(
    query: str,
    api_key: str,
    session: SessionHandle,
    location: Optional[str] = None,
    radius: Optional[int] = None,
    timeout: float = 10,
) -> Dict[str, Any]:
    """Run a Text Search, optionally biased towards ``location`` ("lat,lng")."""
    params: Dict[str, Any] = {"query": query, "key": api_key}
    if location:
        params["location"] = location
    if radius:
        params["radius"] = radius
    response = session.get().get(f"{_BASE_URL}/textsearch/json", params=params, timeout=timeout)
    response.raise_for_status()
    payload = response.json()
    if not isinstance(payload, dict):
        raise ValueError("Places API returned a non-object payload")
    status = payload.get("status")
    if status not in {"OK", "ZERO_RESULTS"}:
        logger.error("text_search failed: status=%s, error_message=%s", status, payload.get("error_message"))
        raise GooglePlacesError(payload.get("error_message") or status)
    return payload
