import pytest

from conftest import FakeOracle, ok
from rankgrid.core.config import ConfigError, Settings
from rankgrid.jobs import scan_server
from rankgrid.oracle import OracleErr

GRID_PAYLOAD = {"keyword": "ramen", "centerLat": 37.5, "centerLng": 127.0, "targetPlaceId": "pid"}


class DummyExecutor:
    def __init__(self):
        self.submitted = []

    def submit(self, fn, *args):
        self.submitted.append((fn, args))

    def run_all(self):
        for fn, args in self.submitted:
            fn(*args)
        self.submitted = []


@pytest.fixture
def oracle():
    return FakeOracle(default=ok(4, "a", "pid"))


@pytest.fixture(autouse=True)
def server(monkeypatch, oracle):
    executor = DummyExecutor()
    monkeypatch.setattr(scan_server, "_executor", executor)
    monkeypatch.setattr(scan_server, "_jobs", {})
    monkeypatch.setattr(scan_server, "get_settings", lambda: Settings(google_api_key="k", scan_delay_seconds=0))
    monkeypatch.setattr(scan_server, "get_oracle", lambda: oracle)
    return executor


@pytest.fixture
def client():
    return scan_server.app.test_client()


def test_health_endpoint(client):
    response = client.get("/healthz")
    assert response.status_code == 200
    body = response.get_json()
    assert body["status"] == "ok"
    assert body["rank_provider"] == "google_places"


def test_teleport_single_point(client, oracle):
    response = client.post("/teleport", json={"keyword": "ramen", "lat": 37.5, "lng": 127.0, "targetPlaceId": "pid"})

    assert response.status_code == 200
    body = response.get_json()
    assert body["rank"] == 4
    assert body["failed"] is False
    assert oracle.calls == [("ramen", 37.5, 127.0, "pid")]


def test_teleport_validates_payload(client, oracle):
    assert client.post("/teleport", json={}).status_code == 400
    assert client.post("/teleport", json={"keyword": "x", "lat": 1, "lng": 2}).status_code == 400
    assert oracle.calls == []


def test_grid_scan_returns_full_grid(client, oracle):
    oracle.outcomes = [ok(1), OracleErr("timeout")]

    response = client.post("/teleport/grid", json=dict(GRID_PAYLOAD, gridSize=1))

    assert response.status_code == 200
    body = response.get_json()
    assert body["complete"] is True
    assert body["grid"]["dimension"] == 3
    assert len(body["results"]) == 9
    assert body["results"][1]["failed"] is True
    assert body["statistics"]["best_rank"] == 1
    assert body["statistics"]["worst_rank"] == 4
    assert len(body["heatmap"]) == 9


def test_grid_scan_validation_happens_before_oracle(client, oracle):
    response = client.post("/teleport/grid", json={"keyword": "ramen", "centerLat": 37.5})
    assert response.status_code == 400
    assert "error" in response.get_json()
    assert oracle.calls == []


def test_grid_scan_config_error(client, monkeypatch):
    def broken():
        raise ConfigError("GOOGLE_API_KEY must be set")

    monkeypatch.setattr(scan_server, "get_oracle", broken)
    response = client.post("/teleport/grid", json=GRID_PAYLOAD)
    assert response.status_code == 500


def test_background_job_lifecycle(client, server):
    response = client.post("/teleport/grid/jobs", json=dict(GRID_PAYLOAD, gridSize=5))
    assert response.status_code == 202
    job_id = response.get_json()["data"]["job_id"]

    status = client.get(f"/teleport/grid/jobs/{job_id}").get_json()["data"]
    assert status["status"] == "running"
    assert status["cells_total"] == 25

    server.run_all()

    status = client.get(f"/teleport/grid/jobs/{job_id}").get_json()["data"]
    assert status["status"] == "done"
    assert status["cells_done"] == 25
    assert len(status["result"]["results"]) == 25


def test_background_job_cancellation(client, server, oracle):
    job_id = client.post("/teleport/grid/jobs", json=GRID_PAYLOAD).get_json()["data"]["job_id"]

    assert client.delete(f"/teleport/grid/jobs/{job_id}").status_code == 202
    server.run_all()

    status = client.get(f"/teleport/grid/jobs/{job_id}").get_json()["data"]
    assert status["status"] == "cancelled"
    assert status["result"]["cancelled"] is True
    assert status["result"]["complete"] is False
    assert status["result"]["results"] == []
    assert oracle.calls == []


def test_unknown_job(client):
    assert client.get("/teleport/grid/jobs/nope").status_code == 404
    assert client.delete("/teleport/grid/jobs/nope").status_code == 404


def test_finished_jobs_beyond_cap_are_dropped(client, server, monkeypatch):
    monkeypatch.setattr(scan_server, "MAX_FINISHED_JOBS", 2)
    for _ in range(5):
        client.post("/teleport/grid/jobs", json=GRID_PAYLOAD)
    server.run_all()
    assert len(scan_server._jobs) == 5

    latest = client.post("/teleport/grid/jobs", json=GRID_PAYLOAD).get_json()["data"]["job_id"]

    statuses = [job.status for job in scan_server._jobs.values()]
    assert len(statuses) == 3
    assert statuses.count("done") == 2
    assert scan_server._jobs[latest].status == "running"


def test_expired_jobs_are_dropped(client, server):
    old = client.post("/teleport/grid/jobs", json=GRID_PAYLOAD).get_json()["data"]["job_id"]
    server.run_all()
    scan_server._jobs[old].finished_at -= scan_server.JOB_TTL_SECONDS + 1

    client.post("/teleport/grid/jobs", json=GRID_PAYLOAD)

    assert old not in scan_server._jobs
    assert client.get(f"/teleport/grid/jobs/{old}").status_code == 404


def test_running_jobs_are_never_dropped(client, server, monkeypatch):
    monkeypatch.setattr(scan_server, "MAX_FINISHED_JOBS", 0)
    for _ in range(3):
        client.post("/teleport/grid/jobs", json=GRID_PAYLOAD)
    assert len(scan_server._jobs) == 3


def test_health_reports_config_error(client, monkeypatch):
    def broken():
        raise ConfigError("RANK_PROVIDER must be one of google_places, serpapi")

    monkeypatch.setattr(scan_server, "get_settings", broken)
    response = client.get("/healthz")
    assert response.status_code == 500
    assert "RANK_PROVIDER" in response.get_json()["error"]


def test_executor_is_created_on_first_use(monkeypatch):
    monkeypatch.setattr(scan_server, "_executor", None)
    monkeypatch.setattr(scan_server, "get_settings", lambda: Settings(max_concurrent_scans=1))

    executor = scan_server._get_executor()
    try:
        assert scan_server._get_executor() is executor
        assert executor._max_workers == 1
    finally:
        executor.shutdown(wait=False)
