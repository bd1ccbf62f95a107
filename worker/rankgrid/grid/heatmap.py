"""Heat map projection of scan results: severity buckets and display order."""

from __future__ import annotations

from typing import Dict, List, Optional, Union

from rankgrid.core.models import CellResult, HeatCell, ScanResult, Severity

SEVERITY_COLORS: Dict[Severity, str] = {
    Severity.EXCELLENT: "#22C55E",
    Severity.GOOD: "#84CC16",
    Severity.FAIR: "#EAB308",
    Severity.POOR: "#F97316",
    Severity.CRITICAL: "#F87171",
    Severity.UNRANKED: "#9CA3AF",
}

TEXT_LIGHT = "#FFFFFF"
TEXT_DARK = "#111827"
TEXT_MUTED = "#4B5563"


def classify(value: Union[CellResult, Optional[int]]) -> Severity:
    """Bucket a rank (or a cell's rank). Thresholds are inclusive upper bounds."""
    rank = value.rank if isinstance(value, CellResult) else value
    if rank is None:
        return Severity.UNRANKED
    if rank <= 3:
        return Severity.EXCELLENT
    if rank <= 5:
        return Severity.GOOD
    if rank <= 10:
        return Severity.FAIR
    if rank <= 15:
        return Severity.POOR
    return Severity.CRITICAL


def text_color(rank: Optional[int]) -> str:
    if rank is None:
        return TEXT_MUTED
    if rank <= 5:
        return TEXT_LIGHT
    return TEXT_DARK


def render_order(scan_result: ScanResult) -> List[HeatCell]:
    """Cells as they appear on a map: north row first, west to east in a row.

    The result depends only on coordinates, never on scan order.
    """
    cells = sorted(scan_result.cells, key=lambda c: (-c.coordinate.lat, c.coordinate.lng))
    latitudes = sorted({c.coordinate.lat for c in cells}, reverse=True)
    longitudes = sorted({c.coordinate.lng for c in cells})
    row_of = {lat: i for i, lat in enumerate(latitudes)}
    col_of = {lng: j for j, lng in enumerate(longitudes)}

    heat_cells: List[HeatCell] = []
    for cell in cells:
        severity = classify(cell)
        heat_cells.append(
            HeatCell(
                cell=cell,
                severity=severity,
                row=row_of[cell.coordinate.lat],
                col=col_of[cell.coordinate.lng],
                color=SEVERITY_COLORS[severity],
                text_color=text_color(cell.rank),
            )
        )
    return heat_cells


def render_rows(scan_result: ScanResult) -> List[List[HeatCell]]:
    rows: List[List[HeatCell]] = []
    for heat_cell in render_order(scan_result):
        while len(rows) <= heat_cell.row:
            rows.append([])
        rows[heat_cell.row].append(heat_cell)
    return rows


def render_text(scan_result: ScanResult) -> str:
    """Plain-text grid of ranks, ``-`` for unranked and ``x`` for failed cells."""
    lines = []
    for row in render_rows(scan_result):
        labels = []
        for heat_cell in row:
            if heat_cell.cell.failed:
                labels.append("x")
            elif heat_cell.cell.rank is None:
                labels.append("-")
            else:
                labels.append(str(heat_cell.cell.rank))
        lines.append(" ".join(label.rjust(3) for label in labels))
    return "\n".join(lines)
