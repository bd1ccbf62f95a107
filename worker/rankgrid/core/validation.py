"""Input validation for probe and grid-scan requests.

Everything here runs before the first oracle call, so a rejected request
never spends provider quota.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Any, Mapping, Optional

from rankgrid.core.models import Coordinate, GridSpec

DEFAULT_GRID_SIZE = 3
DEFAULT_RADIUS_MILES = 0.5


class ScanRequestError(ValueError):
    """Raised when a probe or scan request is missing or has malformed fields."""


@dataclass(frozen=True)
class ProbeRequest:
    keyword: str
    coordinate: Coordinate
    target_id: str


@dataclass(frozen=True)
class GridRequest:
    keyword: str
    spec: GridSpec
    target_id: str
    business_name: Optional[str] = None


def _require_text(value: Any, name: str) -> str:
    text = str(value).strip() if value is not None else ""
    if not text:
        raise ScanRequestError(f"{name} is required")
    return text


def _require_float(value: Any, name: str) -> float:
    if value is None or isinstance(value, bool):
        raise ScanRequestError(f"{name} is required")
    try:
        number = float(value)
    except (TypeError, ValueError):
        raise ScanRequestError(f"{name} must be numeric") from None
    if not math.isfinite(number):
        raise ScanRequestError(f"{name} must be finite")
    return number


def validate_coordinate(lat: Any, lng: Any, lat_name: str = "lat", lng_name: str = "lng") -> Coordinate:
    latitude = _require_float(lat, lat_name)
    longitude = _require_float(lng, lng_name)
    if not -90.0 <= latitude <= 90.0:
        raise ScanRequestError(f"{lat_name} must be between -90 and 90")
    if not -180.0 <= longitude <= 180.0:
        raise ScanRequestError(f"{lng_name} must be between -180 and 180")
    return Coordinate(latitude, longitude)


def validate_probe_request(
    keyword: Any, lat: Any, lng: Any, target_id: Any
) -> ProbeRequest:
    return ProbeRequest(
        keyword=_require_text(keyword, "keyword"),
        coordinate=validate_coordinate(lat, lng),
        target_id=_require_text(target_id, "targetPlaceId"),
    )


def validate_grid_request(
    keyword: Any,
    center_lat: Any,
    center_lng: Any,
    target_id: Any,
    business_name: Any = None,
    grid_size: Any = DEFAULT_GRID_SIZE,
    radius_miles: Any = DEFAULT_RADIUS_MILES,
) -> GridRequest:
    """Validate a grid scan request and build its clamped :class:`GridSpec`."""
    keyword_text = _require_text(keyword, "keyword")
    center = validate_coordinate(center_lat, center_lng, "centerLat", "centerLng")
    target = _require_text(target_id, "targetPlaceId")

    if grid_size is None:
        grid_size = DEFAULT_GRID_SIZE
    if radius_miles is None:
        radius_miles = DEFAULT_RADIUS_MILES

    size = _require_float(grid_size, "gridSize")
    radius = _require_float(radius_miles, "radiusMiles")
    if radius <= 0:
        raise ScanRequestError("radiusMiles must be positive")

    name = str(business_name).strip() if business_name is not None else ""
    return GridRequest(
        keyword=keyword_text,
        spec=GridSpec.create(center, int(size), radius),
        target_id=target,
        business_name=name or None,
    )


def grid_request_from_payload(payload: Mapping[str, Any]) -> GridRequest:
    """Validate the JSON body of a grid scan request."""
    return validate_grid_request(
        keyword=payload.get("keyword"),
        center_lat=payload.get("centerLat"),
        center_lng=payload.get("centerLng"),
        target_id=payload.get("targetPlaceId"),
        business_name=payload.get("businessName"),
        grid_size=payload.get("gridSize"),
        radius_miles=payload.get("radiusMiles"),
    )


def probe_request_from_payload(payload: Mapping[str, Any]) -> ProbeRequest:
    return validate_probe_request(
        keyword=payload.get("keyword"),
        lat=payload.get("lat"),
        lng=payload.get("lng"),
        target_id=payload.get("targetPlaceId"),
    )
