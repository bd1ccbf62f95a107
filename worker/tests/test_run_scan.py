import json

import pytest

from conftest import FakeOracle, ok
from rankgrid.core.config import ConfigError, Settings
from rankgrid.jobs import run_scan


@pytest.fixture
def oracle(monkeypatch):
    fake = FakeOracle(default=ok(2))
    monkeypatch.setattr(run_scan, "get_settings", lambda: Settings(google_api_key="k", scan_delay_seconds=0))
    monkeypatch.setattr(run_scan, "build_oracle", lambda settings: fake)
    return fake


def _args(**overrides):
    args = dict(
        keyword="pizza",
        target_id="pid",
        center_lat=40.0,
        center_lng=-73.0,
        grid_size=3,
        radius_miles=0.5,
    )
    args.update(overrides)
    return args


def test_run_scan_job_text_output(oracle):
    output = run_scan.run_scan_job(**_args())

    lines = output.splitlines()
    assert lines[:3] == ["  2   2   2"] * 3
    assert "average rank: 2.0" in output
    assert "best rank:    2" in output
    assert len(oracle.calls) == 9


def test_run_scan_job_json_output(oracle):
    payload = json.loads(run_scan.run_scan_job(**_args(grid_size=5, as_json=True)))
    assert payload["grid"]["dimension"] == 5
    assert len(payload["results"]) == 25


def test_run_scan_job_rejects_bad_radius(oracle):
    with pytest.raises(ValueError):
        run_scan.run_scan_job(**_args(radius_miles=0))
    assert oracle.calls == []


def test_build_parser_defaults():
    args = run_scan.build_parser().parse_args(["cafe", "pid", "1.5", "2.5"])
    assert args.grid_size == 3
    assert args.radius_miles == 0.5
    assert args.as_json is False


def test_main_exits_2_on_config_error(monkeypatch):
    def broken(**kwargs):
        raise ConfigError("missing key")

    monkeypatch.setattr(run_scan, "run_scan_job", broken)
    with pytest.raises(SystemExit) as excinfo:
        run_scan.main(["cafe", "pid", "1.5", "2.5"])
    assert excinfo.value.code == 2


def test_main_prints_output(monkeypatch, capsys):
    monkeypatch.setattr(run_scan, "run_scan_job", lambda **kwargs: "grid")
    run_scan.main(["cafe", "pid", "1.5", "2.5", "--grid-size", "7"])
    assert capsys.readouterr().out.strip() == "grid"
