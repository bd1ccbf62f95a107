"""HTTP entrypoint for rank probes and grid scans (Cloud Run friendly)."""

from __future__ import annotations

import logging
import os
import threading
import time
import uuid
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Any, Dict, Optional

from flask import Flask, jsonify, request

from rankgrid.core.config import ConfigError, get_settings
from rankgrid.core.validation import (
    GridRequest,
    ScanRequestError,
    grid_request_from_payload,
    probe_request_from_payload,
)
from rankgrid.etl.serialize import cell_to_dict, scan_to_payload
from rankgrid.grid.scanner import estimate_duration, probe_point, scan
from rankgrid.oracle import RankOracle, build_oracle
from rankgrid.vendors.session import SessionHandle

# ---------- Logging ----------
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)s %(name)s - %(message)s",
)
logger = logging.getLogger(__name__)

# ---------- App & executor ----------
app = Flask(__name__)
_executor: Optional[ThreadPoolExecutor] = None
_executor_lock = threading.Lock()
_session = SessionHandle()

JOB_RUNNING = "running"
JOB_DONE = "done"
JOB_CANCELLED = "cancelled"
JOB_FAILED = "failed"

# Finished jobs are kept for polling, then dropped.
JOB_TTL_SECONDS = 15 * 60
MAX_FINISHED_JOBS = 100


@dataclass
class ScanJob:
    job_id: str
    grid_request: GridRequest
    cancel_event: threading.Event = field(default_factory=threading.Event)
    status: str = JOB_RUNNING
    cells_done: int = 0
    payload: Optional[Dict[str, Any]] = None
    error: Optional[str] = None
    finished_at: Optional[float] = None

    def to_dict(self) -> Dict[str, Any]:
        entry: Dict[str, Any] = {
            "job_id": self.job_id,
            "status": self.status,
            "cells_done": self.cells_done,
            "cells_total": self.grid_request.spec.cell_count,
        }
        if self.payload is not None:
            entry["result"] = self.payload
        if self.error:
            entry["error"] = self.error
        return entry


_jobs: Dict[str, ScanJob] = {}
_jobs_lock = threading.Lock()


def get_oracle() -> RankOracle:
    return build_oracle(get_settings(), session=_session)


def _get_executor() -> ThreadPoolExecutor:
    """Create the scan pool on first use so settings are read inside a request."""
    global _executor
    with _executor_lock:
        if _executor is None:
            _executor = ThreadPoolExecutor(max_workers=get_settings().max_concurrent_scans)
        return _executor


def _prune_jobs(now: float) -> None:
    """Drop finished jobs past their TTL, then the oldest beyond the cap. Caller holds _jobs_lock."""
    finished = sorted(
        (job for job in _jobs.values() if job.finished_at is not None),
        key=lambda job: job.finished_at,
    )
    expired = [job for job in finished if now - job.finished_at > JOB_TTL_SECONDS]
    remaining = finished[len(expired) :]
    overflow = remaining[: max(0, len(remaining) - MAX_FINISHED_JOBS)]
    for job in expired + overflow:
        del _jobs[job.job_id]
    if expired or overflow:
        logger.info("Pruned %d finished grid scan jobs", len(expired) + len(overflow))


def _error(message: str, status: int) -> Any:
    return jsonify({"error": message}), status


# ---------- Routes ----------


@app.get("/")
def root() -> Any:
    """Simple root to avoid 404 on GET /"""
    return "ok", 200


@app.get("/healthz")
def healthcheck() -> Any:
    """Lightweight health endpoint; reads settings only, never calls a provider."""
    try:
        settings = get_settings()
    except ConfigError as exc:
        logger.error("Configuration error: %s", exc)
        return _error(str(exc), 500)
    with _jobs_lock:
        running = sum(1 for job in _jobs.values() if job.status == JOB_RUNNING)
    return (
        jsonify(
            {
                "status": "ok",
                "rank_provider": settings.rank_provider,
                "running_scans": running,
                "revision": os.getenv("K_REVISION", "unknown"),
            }
        ),
        200,
    )


@app.post("/teleport")
def teleport() -> Any:
    """Check the target's rank at a single location.

    Required JSON fields: keyword, lat, lng, targetPlaceId
    """
    payload: Dict[str, Any] = request.get_json(silent=True) or {}
    try:
        probe = probe_request_from_payload(payload)
        oracle = get_oracle()
    except ScanRequestError as exc:
        return _error(str(exc), 400)
    except ConfigError as exc:
        logger.error("Configuration error: %s", exc)
        return _error(str(exc), 500)

    cell = probe_point(probe.keyword, probe.coordinate.lat, probe.coordinate.lng, probe.target_id, oracle)
    return jsonify(cell_to_dict(cell)), 200


@app.post("/teleport/grid")
def teleport_grid() -> Any:
    """Run a full grid scan and return it in the response.

    Required JSON fields: keyword, centerLat, centerLng, targetPlaceId
    Optional: businessName, gridSize (3), radiusMiles (0.5)

    A 7x7 grid makes 49 sequential calls; use /teleport/grid/jobs when the
    caller cannot hold the request open that long.
    """
    payload: Dict[str, Any] = request.get_json(silent=True) or {}
    try:
        grid_request = grid_request_from_payload(payload)
        oracle = get_oracle()
    except ScanRequestError as exc:
        return _error(str(exc), 400)
    except ConfigError as exc:
        logger.error("Configuration error: %s", exc)
        return _error(str(exc), 500)

    delay = get_settings().scan_delay_seconds
    logger.info(
        "Synchronous grid scan for %s, expected duration >= %.1fs",
        grid_request.target_id,
        estimate_duration(grid_request.spec, delay),
    )
    result = scan(
        grid_request.spec,
        grid_request.keyword,
        grid_request.target_id,
        oracle,
        business_name=grid_request.business_name,
        delay=delay,
    )
    return jsonify(scan_to_payload(result)), 200


@app.post("/teleport/grid/jobs")
def enqueue_grid_scan() -> Any:
    """Queue a grid scan in the background and return its job id."""
    payload: Dict[str, Any] = request.get_json(silent=True) or {}
    try:
        grid_request = grid_request_from_payload(payload)
        oracle = get_oracle()
    except ScanRequestError as exc:
        return _error(str(exc), 400)
    except ConfigError as exc:
        logger.error("Configuration error: %s", exc)
        return _error(str(exc), 500)

    job = ScanJob(job_id=uuid.uuid4().hex, grid_request=grid_request)
    with _jobs_lock:
        _prune_jobs(time.monotonic())
        _jobs[job.job_id] = job

    logger.info("Queueing grid scan job %s for %s", job.job_id, grid_request.target_id)
    _get_executor().submit(_run_job_safe, job, oracle)
    return jsonify({"data": {"job_id": job.job_id, "status": job.status}}), 202


@app.get("/teleport/grid/jobs/<job_id>")
def grid_scan_status(job_id: str) -> Any:
    with _jobs_lock:
        job = _jobs.get(job_id)
        entry = job.to_dict() if job else None
    if entry is None:
        return _error("job not found", 404)
    return jsonify({"data": entry}), 200


@app.delete("/teleport/grid/jobs/<job_id>")
def cancel_grid_scan(job_id: str) -> Any:
    """Ask a running scan to stop before its next cell."""
    with _jobs_lock:
        job = _jobs.get(job_id)
        if job is not None:
            job.cancel_event.set()
            entry = job.to_dict()
    if job is None:
        return _error("job not found", 404)
    logger.info("Cancellation requested for grid scan job %s", job_id)
    return jsonify({"data": entry}), 202


# ---------- Internals ----------


def _run_job_safe(job: ScanJob, oracle: RankOracle) -> None:
    def _progress(index: int, _cell: Any) -> None:
        with _jobs_lock:
            job.cells_done = index + 1

    grid_request = job.grid_request
    try:
        result = scan(
            grid_request.spec,
            grid_request.keyword,
            grid_request.target_id,
            oracle,
            business_name=grid_request.business_name,
            delay=get_settings().scan_delay_seconds,
            cancel_event=job.cancel_event,
            on_cell=_progress,
        )
    except Exception as exc:  # noqa: BLE001
        logger.exception("Grid scan job %s failed: %s", job.job_id, exc)
        with _jobs_lock:
            job.status = JOB_FAILED
            job.error = str(exc)
            job.finished_at = time.monotonic()
        return

    with _jobs_lock:
        job.payload = scan_to_payload(result)
        job.status = JOB_CANCELLED if result.cancelled else JOB_DONE
        job.finished_at = time.monotonic()


def main() -> None:
    """Bind on 0.0.0.0 using PORT (Cloud Run) or WORKER_PORT."""
    port = get_settings().worker_port
    logger.info("[BOOT] Binding on 0.0.0.0:%d", port)
    app.run(host="0.0.0.0", port=port)


if __name__ == "__main__":
    main()
