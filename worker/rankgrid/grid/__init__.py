from rankgrid.grid.aggregate import aggregate
from rankgrid.grid.generator import MILES_TO_DEGREES, generate_grid
from rankgrid.grid.heatmap import classify, render_order, render_rows
from rankgrid.grid.scanner import probe_point, run_grid_scan, scan

__all__ = [
    "MILES_TO_DEGREES",
    "aggregate",
    "classify",
    "generate_grid",
    "probe_point",
    "render_order",
    "render_rows",
    "run_grid_scan",
    "scan",
]
