"""Core data models shared by the grid rank scanner."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional, Tuple

MIN_DIMENSION = 3
MAX_DIMENSION = 7


class Severity(str, Enum):
    """Heat map bucket for a cell rank."""

    UNRANKED = "unranked"
    EXCELLENT = "excellent"
    GOOD = "good"
    FAIR = "fair"
    POOR = "poor"
    CRITICAL = "critical"


def clamp_dimension(dimension: int) -> int:
    """Clamp a requested grid dimension to [3, 7], rounding even values up to odd."""
    value = min(max(int(dimension), MIN_DIMENSION), MAX_DIMENSION)
    if value % 2 == 0:
        value += 1
    return value


@dataclass(frozen=True, slots=True)
class Coordinate:
    lat: float
    lng: float


@dataclass(frozen=True, slots=True)
class GridSpec:
    """Immutable scan geometry. Use :meth:`create` so the dimension is clamped."""

    center: Coordinate
    dimension: int
    radius_miles: float

    @classmethod
    def create(cls, center: Coordinate, dimension: int = 3, radius_miles: float = 0.5) -> "GridSpec":
        radius = float(radius_miles)
        if not radius > 0:
            raise ValueError(f"radius_miles must be positive, got {radius_miles!r}")
        return cls(center=center, dimension=clamp_dimension(dimension), radius_miles=radius)

    @property
    def half_width(self) -> int:
        return self.dimension // 2

    @property
    def cell_count(self) -> int:
        return self.dimension * self.dimension


@dataclass(frozen=True, slots=True)
class SampleCoordinate:
    """One grid cell; ``row`` and ``col`` are signed offsets from the center cell."""

    lat: float
    lng: float
    row: int
    col: int


@dataclass(frozen=True, slots=True)
class Competitor:
    """A business visible in the oracle's result list at a sampled location."""

    rank: int
    name: str
    place_id: str
    rating: float = 0.0


@dataclass(frozen=True, slots=True)
class CellResult:
    coordinate: SampleCoordinate
    rank: Optional[int] = None
    competitors: Tuple[Competitor, ...] = ()
    error: Optional[str] = None  # oracle error kind; None when the probe succeeded

    @property
    def failed(self) -> bool:
        return self.error is not None

    @property
    def competitor_ids(self) -> Tuple[str, ...]:
        return tuple(c.place_id for c in self.competitors)


@dataclass(frozen=True, slots=True)
class ScanResult:
    """Cells of one grid scan in generator order.

    A scan that ran to completion always holds ``spec.cell_count`` cells. A
    shorter tuple only happens when the scan was cancelled, in which case
    ``cancelled`` is set.
    """

    spec: GridSpec
    keyword: str
    target_id: str
    cells: Tuple[CellResult, ...]
    business_name: Optional[str] = None
    cancelled: bool = False

    @property
    def expected_cells(self) -> int:
        return self.spec.cell_count

    @property
    def complete(self) -> bool:
        return not self.cancelled and len(self.cells) == self.expected_cells


@dataclass(frozen=True, slots=True)
class RankStatistics:
    """Summary of a scan. Rank fields are None when no cell was ranked."""

    average_rank: Optional[float]
    best_rank: Optional[int]
    worst_rank: Optional[int]
    ranked_count: int
    unranked_count: int
    failed_count: int = 0

    @property
    def has_data(self) -> bool:
        return self.ranked_count > 0


@dataclass(frozen=True, slots=True)
class HeatCell:
    """A cell projected for display; ``row`` 0 is the northernmost row."""

    cell: CellResult
    severity: Severity
    row: int
    col: int
    color: str
    text_color: str
