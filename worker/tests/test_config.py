import pytest

from rankgrid.core import config


def setup_function(function):
    config.get_settings.cache_clear()


def teardown_function(function):
    config.get_settings.cache_clear()


@pytest.fixture(autouse=True)
def no_dotenv(monkeypatch):
    monkeypatch.setattr(config, "load_dotenv", lambda: None)
    for name in (
        "RANK_PROVIDER",
        "GOOGLE_API_KEY",
        "SERPAPI_API_KEY",
        "SCAN_DELAY_SECONDS",
        "REQUEST_TIMEOUT",
        "PORT",
        "WORKER_PORT",
        "MAX_CONCURRENT_SCANS",
    ):
        monkeypatch.delenv(name, raising=False)


def test_get_settings_reads_env(monkeypatch):
    monkeypatch.setenv("RANK_PROVIDER", "SerpAPI")
    monkeypatch.setenv("SERPAPI_API_KEY", "abc123")
    monkeypatch.setenv("SCAN_DELAY_SECONDS", "1.25")
    monkeypatch.setenv("WORKER_PORT", "9100")
    monkeypatch.setenv("MAX_CONCURRENT_SCANS", "2")

    settings = config.get_settings()

    assert settings.rank_provider == "serpapi"
    assert settings.serpapi_api_key == "abc123"
    assert settings.scan_delay_seconds == 1.25
    assert settings.worker_port == 9100
    assert settings.max_concurrent_scans == 2


def test_port_takes_precedence(monkeypatch):
    monkeypatch.setenv("PORT", "8081")
    monkeypatch.setenv("WORKER_PORT", "9100")
    assert config.get_settings().worker_port == 8081


def test_get_settings_defaults_and_warns(caplog):
    with caplog.at_level("WARNING"):
        settings = config.get_settings()

    assert "GOOGLE_API_KEY is not configured" in " ".join(caplog.messages)
    assert settings.rank_provider == "google_places"
    assert settings.scan_delay_seconds == 0.5
    assert settings.worker_port == 8080


def test_unknown_provider_is_rejected(monkeypatch):
    monkeypatch.setenv("RANK_PROVIDER", "bing")
    with pytest.raises(config.ConfigError):
        config.get_settings()


def test_negative_delay_is_rejected(monkeypatch):
    monkeypatch.setenv("SCAN_DELAY_SECONDS", "-1")
    with pytest.raises(config.ConfigError):
        config.get_settings()
