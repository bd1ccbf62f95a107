"""Utilities for turning scan results into JSON-ready dictionaries."""

from dataclasses import asdict
from typing import Any, Dict, List, Optional

from rankgrid.core.models import CellResult, RankStatistics, ScanResult
from rankgrid.grid.aggregate import aggregate
from rankgrid.grid.heatmap import classify, render_order


def _format_rank(value: Optional[float]) -> str:
    if value is None:
        return "-"
    if isinstance(value, float):
        return f"{value:.1f}"
    return str(value)


def cell_to_dict(cell: CellResult) -> Dict[str, Any]:
    return {
        "lat": cell.coordinate.lat,
        "lng": cell.coordinate.lng,
        "row": cell.coordinate.row,
        "col": cell.coordinate.col,
        "rank": cell.rank,
        "severity": classify(cell).value,
        "failed": cell.failed,
        "error": cell.error,
        "competitors": [asdict(c) for c in cell.competitors],
    }


def statistics_to_dict(stats: RankStatistics) -> Dict[str, Any]:
    """Statistics with a ``display`` block using ``-`` for missing values."""
    entry = asdict(stats)
    if stats.average_rank is not None:
        entry["average_rank"] = round(stats.average_rank, 1)
    entry["display"] = {
        "average_rank": _format_rank(stats.average_rank),
        "best_rank": _format_rank(stats.best_rank),
        "worst_rank": _format_rank(stats.worst_rank),
    }
    return entry


def heatmap_to_dict(scan_result: ScanResult) -> List[Dict[str, Any]]:
    items: List[Dict[str, Any]] = []
    for heat_cell in render_order(scan_result):
        items.append(
            {
                "row": heat_cell.row,
                "col": heat_cell.col,
                "lat": heat_cell.cell.coordinate.lat,
                "lng": heat_cell.cell.coordinate.lng,
                "rank": heat_cell.cell.rank,
                "label": str(heat_cell.cell.rank) if heat_cell.cell.rank is not None else "-",
                "severity": heat_cell.severity.value,
                "color": heat_cell.color,
                "text_color": heat_cell.text_color,
            }
        )
    return items


def scan_to_payload(scan_result: ScanResult) -> Dict[str, Any]:
    """Full response body for a grid scan: raw cells, statistics and heat map."""
    spec = scan_result.spec
    return {
        "keyword": scan_result.keyword,
        "target_place_id": scan_result.target_id,
        "business_name": scan_result.business_name,
        "grid": {
            "center": {"lat": spec.center.lat, "lng": spec.center.lng},
            "dimension": spec.dimension,
            "radius_miles": spec.radius_miles,
        },
        "complete": scan_result.complete,
        "cancelled": scan_result.cancelled,
        "results": [cell_to_dict(cell) for cell in scan_result.cells],
        "statistics": statistics_to_dict(aggregate(scan_result)),
        "heatmap": heatmap_to_dict(scan_result),
    }
