"""Sequential, rate-limited grid scanning against a rank oracle."""

from __future__ import annotations

import logging
import threading
import time
from typing import Callable, List, Optional

from rankgrid.core.models import CellResult, Coordinate, GridSpec, SampleCoordinate, ScanResult
from rankgrid.core.validation import validate_grid_request, validate_probe_request
from rankgrid.grid.generator import generate_spec_grid
from rankgrid.oracle import ERROR_UNKNOWN, OracleErr, OracleOk, RankOracle, classify_exception

logger = logging.getLogger(__name__)

SCAN_DELAY_SECONDS = 0.5

CellCallback = Callable[[int, CellResult], None]


def probe_cell(
    coordinate: SampleCoordinate, keyword: str, target_id: str, oracle: RankOracle
) -> CellResult:
    """Query the oracle for one cell. Never raises for oracle failures."""
    try:
        outcome = oracle.check_rank(keyword, coordinate.lat, coordinate.lng, target_id)
    except Exception as exc:  # noqa: BLE001
        outcome = OracleErr(kind=classify_exception(exc), message=str(exc))

    if isinstance(outcome, OracleOk):
        return CellResult(coordinate=coordinate, rank=outcome.rank, competitors=tuple(outcome.competitors))

    if isinstance(outcome, OracleErr):
        kind = outcome.kind
        message = outcome.message
    else:
        kind = ERROR_UNKNOWN
        message = f"unexpected oracle outcome {outcome!r}"
    logger.error(
        "Rank check failed at (%.6f, %.6f) row=%d col=%d: %s %s",
        coordinate.lat,
        coordinate.lng,
        coordinate.row,
        coordinate.col,
        kind,
        message,
    )
    return CellResult(coordinate=coordinate, error=kind)


def probe_point(keyword: str, lat: float, lng: float, target_id: str, oracle: RankOracle) -> CellResult:
    """Single-location rank check, outside of any grid.

    Raises :class:`ScanRequestError` for a missing keyword, target or
    coordinate before the oracle is called.
    """
    probe = validate_probe_request(keyword, lat, lng, target_id)
    coordinate = SampleCoordinate(lat=probe.coordinate.lat, lng=probe.coordinate.lng, row=0, col=0)
    return probe_cell(coordinate, probe.keyword, probe.target_id, oracle)


def scan(
    spec: GridSpec,
    keyword: str,
    target_id: str,
    oracle: RankOracle,
    *,
    business_name: Optional[str] = None,
    delay: float = SCAN_DELAY_SECONDS,
    sleep: Callable[[float], None] = time.sleep,
    cancel_event: Optional[threading.Event] = None,
    on_cell: Optional[CellCallback] = None,
) -> ScanResult:
    """Probe every cell of ``spec`` one at a time, in generator order.

    Each oracle call is followed by ``delay`` seconds of sleep, whether it
    succeeded or not. Failed cells are recorded with no rank and an error
    tag rather than aborting the scan, so a finished scan always has
    ``spec.cell_count`` cells. ``cancel_event`` is checked before each call;
    once set, the cells probed so far are returned with ``cancelled=True``.
    """
    coordinates = generate_spec_grid(spec)
    cells: List[CellResult] = []
    cancelled = False

    logger.info(
        "Starting grid scan target=%s business=%s keyword=%r grid=%dx%d radius=%.2fmi",
        target_id,
        business_name,
        keyword,
        spec.dimension,
        spec.dimension,
        spec.radius_miles,
    )
    started = time.monotonic()

    for index, coordinate in enumerate(coordinates):
        if cancel_event is not None and cancel_event.is_set():
            logger.warning("Grid scan cancelled after %d/%d cells", len(cells), len(coordinates))
            cancelled = True
            break

        cell = probe_cell(coordinate, keyword, target_id, oracle)
        cells.append(cell)
        logger.info(
            "[Grid] (%.4f, %.4f): rank %s",
            coordinate.lat,
            coordinate.lng,
            cell.rank if cell.rank is not None else "N/A",
        )
        if on_cell is not None:
            on_cell(index, cell)

        sleep(delay)

    failed = sum(1 for c in cells if c.failed)
    logger.info(
        "Grid scan finished: %d cells, %d failed, cancelled=%s, %.1fs",
        len(cells),
        failed,
        cancelled,
        time.monotonic() - started,
    )
    return ScanResult(
        spec=spec,
        keyword=keyword,
        target_id=target_id,
        cells=tuple(cells),
        business_name=business_name,
        cancelled=cancelled,
    )


def run_grid_scan(
    keyword: str,
    center: Coordinate,
    target_id: str,
    oracle: RankOracle,
    business_name: Optional[str] = None,
    grid_dimension: int = 3,
    radius_miles: float = 0.5,
    **kwargs,
) -> ScanResult:
    """Caller-facing grid scan; ``grid_dimension`` is clamped to 3..7.

    The request is validated first, so a bad keyword, target, center or
    radius raises :class:`ScanRequestError` without any oracle call.
    """
    grid_request = validate_grid_request(
        keyword,
        center.lat,
        center.lng,
        target_id,
        business_name=business_name,
        grid_size=grid_dimension,
        radius_miles=radius_miles,
    )
    return scan(
        grid_request.spec,
        grid_request.keyword,
        grid_request.target_id,
        oracle,
        business_name=grid_request.business_name,
        **kwargs,
    )


def estimate_duration(spec: GridSpec, delay: float = SCAN_DELAY_SECONDS, oracle_latency: float = 0.0) -> float:
    """Wall-clock seconds a full scan takes: every cell pays latency plus delay."""
    return spec.cell_count * (oracle_latency + delay)
