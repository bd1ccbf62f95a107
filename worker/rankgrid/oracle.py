"""Rank oracles: "what rank does place X have for keyword K at (lat, lng)?"

Vendors answer in different shapes. Every oracle here reduces the answer to
either :class:`OracleOk` or :class:`OracleErr`, which is all the scanner
sees.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Iterable, List, Optional, Protocol, Tuple, Union

import requests

from rankgrid.core.config import ConfigError, Settings
from rankgrid.core.models import Competitor
from rankgrid.vendors import google_places, serpapi_maps
from rankgrid.vendors.session import SessionHandle

logger = logging.getLogger(__name__)

COMPETITOR_LIMIT = 20

ERROR_NETWORK = "network"
ERROR_TIMEOUT = "timeout"
ERROR_PARSE = "parse"
ERROR_API = "api"
ERROR_UNKNOWN = "unknown"


@dataclass(frozen=True)
class OracleOk:
    rank: Optional[int]
    competitors: Tuple[Competitor, ...] = ()


@dataclass(frozen=True)
class OracleErr:
    kind: str
    message: str = ""


OracleOutcome = Union[OracleOk, OracleErr]


class RankOracle(Protocol):
    def check_rank(self, keyword: str, lat: float, lng: float, target_id: str) -> OracleOutcome:
        ...


def classify_exception(exc: BaseException) -> str:
    """Map an exception raised while querying a vendor to an error kind."""
    if isinstance(exc, requests.exceptions.InvalidJSONError):
        return ERROR_PARSE
    if isinstance(exc, requests.Timeout):
        return ERROR_TIMEOUT
    if isinstance(exc, requests.RequestException):
        return ERROR_NETWORK
    if isinstance(exc, (google_places.GooglePlacesError, serpapi_maps.SerpApiError)):
        return ERROR_API
    if isinstance(exc, (ValueError, KeyError, TypeError)):
        return ERROR_PARSE
    return ERROR_UNKNOWN


def _safe_float(value: Any) -> float:
    try:
        return float(value) if value is not None else 0.0
    except (TypeError, ValueError):
        return 0.0


def rank_from_results(
    results: Iterable[Any], target_id: str, id_key: str = "place_id", name_keys: Tuple[str, ...] = ("name",)
) -> OracleOk:
    """Find ``target_id`` in an ordered result list and collect the top competitors."""
    if not isinstance(results, list):
        raise ValueError("results must be a list")

    rank: Optional[int] = None
    competitors: List[Competitor] = []
    for index, raw in enumerate(results, start=1):
        if not isinstance(raw, dict):
            raise ValueError(f"result #{index} is not an object")
        place_id = str(raw.get(id_key) or "")
        if rank is None and place_id and place_id == target_id:
            rank = index
        if index <= COMPETITOR_LIMIT:
            name = next((str(raw[k]) for k in name_keys if raw.get(k)), "")
            competitors.append(
                Competitor(rank=index, name=name, place_id=place_id, rating=_safe_float(raw.get("rating")))
            )
    return OracleOk(rank=rank, competitors=tuple(competitors))


class PlacesRankOracle:
    """Ranks a place by its position in a location-biased Places Text Search."""

    def __init__(
        self,
        api_key: str,
        session: Optional[SessionHandle] = None,
        search_radius_meters: int = 5000,
        timeout: float = 10,
    ):
        self.api_key = api_key
        self.session = session or SessionHandle()
        self.search_radius_meters = search_radius_meters
        self.timeout = timeout

    def check_rank(self, keyword: str, lat: float, lng: float, target_id: str) -> OracleOutcome:
        try:
            payload = google_places.text_search(
                keyword,
                self.api_key,
                self.session,
                location=f"{lat},{lng}",
                radius=self.search_radius_meters,
                timeout=self.timeout,
            )
            outcome = rank_from_results(payload.get("results", []), target_id)
        except Exception as exc:  # noqa: BLE001
            kind = classify_exception(exc)
            return OracleErr(kind=kind, message=str(exc))

        logger.debug(
            "Places keyword=%r at (%.5f, %.5f): %d results, target rank=%s",
            keyword,
            lat,
            lng,
            len(outcome.competitors),
            outcome.rank,
        )
        return outcome


class SerpApiRankOracle:
    """Ranks a place by its position in SerpAPI Google Maps local results."""

    def __init__(self, api_key: str, zoom: int = 14, timeout: float = 10):
        self.api_key = api_key
        self.zoom = zoom
        self.timeout = timeout

    def check_rank(self, keyword: str, lat: float, lng: float, target_id: str) -> OracleOutcome:
        ll = serpapi_maps.build_ll(lat, lng, self.zoom)
        try:
            data = serpapi_maps.fetch_maps_results(keyword, self.api_key, ll=ll, timeout=self.timeout)
            items = list(serpapi_maps.extract_local_results(data))
            outcome = rank_from_results(items, target_id, name_keys=("title", "name"))
        except Exception as exc:  # noqa: BLE001
            kind = classify_exception(exc)
            return OracleErr(kind=kind, message=str(exc))
        return outcome


def build_oracle(settings: Settings, session: Optional[SessionHandle] = None) -> RankOracle:
    """Create the oracle selected by ``settings.rank_provider``."""
    if settings.rank_provider == "serpapi":
        if not settings.serpapi_api_key:
            raise ConfigError("SERPAPI_API_KEY must be set to use the serpapi rank provider.")
        return SerpApiRankOracle(settings.serpapi_api_key, zoom=settings.serpapi_zoom, timeout=settings.request_timeout)

    if not settings.google_api_key:
        raise ConfigError("GOOGLE_API_KEY must be set to use the google_places rank provider.")
    return PlacesRankOracle(
        settings.google_api_key,
        session=session,
        search_radius_meters=settings.places_search_radius_meters,
        timeout=settings.request_timeout,
    )

