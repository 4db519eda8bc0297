from fastapi.testclient import TestClient

from gasticker.config import get_settings
from gasticker.main import create_app
from gasticker.services.logging import request_log_store
from gasticker.services.persistence import SqliteGateway
from gasticker.services.registry import GasRegistry


class FakeWatcher:
    def __init__(self) -> None:
        self.started_with = None
        self.stopped = False

    def start(self, network: str, token: str, nickname: bool, frequency: int) -> None:
        self.started_with = (network, token, nickname, frequency)

    def stop(self) -> None:
        self.stopped = True


registry = GasRegistry(watcher_factory=FakeWatcher)
client = TestClient(create_app(registry=registry))


def setup_function(_) -> None:
    registry.shutdown()
    request_log_store.clear()


def _gas_payload(network: str = "ETH", token: str = "abc") -> dict:
    return {"network": network, "discord_bot_token": token, "set_nickname": True, "frequency": 30}


def test_create_gas_returns_entry_without_token() -> None:
    response = client.post("/gas", json=_gas_payload())

    assert response.status_code == 200
    body = response.json()
    assert body == {"network": "ETH", "set_nickname": True, "frequency": 30}
    assert "discord_bot_token" not in body
    assert "token" not in body
    assert "abc" not in response.text


def test_gas_lifecycle_scenario() -> None:
    assert client.post("/gas", json=_gas_payload()).status_code == 200
    assert client.post("/gas", json=_gas_payload()).status_code == 409

    listing = client.get("/gas")
    assert listing.status_code == 200
    assert list(listing.json()) == ["ETH"]

    assert client.delete("/gas/ETH").status_code == 204
    assert client.get("/gas").json() == {}
    assert client.delete("/gas/ETH").status_code == 404


def test_create_requires_network_and_token() -> None:
    assert client.post("/gas", json={"network": "", "discord_bot_token": "abc"}).status_code == 400
    assert client.post("/gas", json={"network": "BTC"}).status_code == 400
    assert client.get("/gas").json() == {}


def test_malformed_body_is_bad_request() -> None:
    response = client.post("/gas", content=b"{not json", headers={"content-type": "application/json"})
    assert response.status_code == 400

    response = client.post("/gas", json={"network": "ETH", "discord_bot_token": "abc", "frequency": "soon"})
    assert response.status_code == 400
    assert "ETH" not in registry


def test_network_is_case_insensitive() -> None:
    response = client.post("/gas", json=_gas_payload(network="matic"))
    assert response.json()["network"] == "MATIC"

    assert client.post("/gas", json=_gas_payload(network="Matic")).status_code == 409
    assert client.delete("/gas/matic").status_code == 204
    assert "MATIC" not in registry


def test_frequency_defaults_to_sixty() -> None:
    client.post("/gas", json={"network": "BSC", "discord_bot_token": "abc", "frequency": 0})
    client.post("/gas", json={"network": "FTM", "discord_bot_token": "abc"})

    listing = client.get("/gas").json()
    assert listing["BSC"]["frequency"] == 60
    assert listing["FTM"]["frequency"] == 60
    assert listing["FTM"]["set_nickname"] is False


def test_watcher_start_failure_is_internal_error() -> None:
    def broken_factory():
        watcher = FakeWatcher()

        def _fail(*_args) -> None:
            raise RuntimeError("thread limit")

        watcher.start = _fail
        return watcher

    broken_client = TestClient(create_app(registry=GasRegistry(watcher_factory=broken_factory)))

    response = broken_client.post("/gas", json=_gas_payload())
    assert response.status_code == 500
    assert broken_client.get("/gas").json() == {}


def test_metrics_report_gas_count() -> None:
    client.post("/gas", json=_gas_payload(network="ETH"))
    client.post("/gas", json=_gas_payload(network="BTC"))

    response = client.get("/metrics")
    assert response.status_code == 200
    assert "gasticker_gas_count 2.0" in response.text


def test_request_logs_are_recorded_under_correlation_id() -> None:
    client.post("/gas", json=_gas_payload(), headers={"x-correlation-id": "req-eth"})

    response = client.get("/api/requests/req-eth/logs")
    body = response.json()

    assert response.status_code == 200
    events = [entry["extra"].get("event") for entry in body["logs"]]
    assert "gas.added" in events
    assert all(entry["extra"].get("network") == "ETH" for entry in body["logs"])
    assert "abc" not in response.text


def test_registry_missing_without_lifespan_is_unavailable() -> None:
    assert TestClient(create_app()).get("/gas").status_code == 503


def test_lifespan_builds_registry_from_settings(monkeypatch, tmp_path) -> None:
    monkeypatch.setenv("DATABASE_PATH", str(tmp_path / "gas.db"))
    get_settings.cache_clear()
    try:
        app = create_app()
        with TestClient(app) as lifespan_client:
            assert lifespan_client.get("/gas").json() == {}
            assert isinstance(app.state.registry.gateway, SqliteGateway)
    finally:
        get_settings.cache_clear()


def test_string_zero_frequency_defaults_to_sixty() -> None:
    response = client.post("/gas", json={"network": "ETH", "discord_bot_token": "abc", "frequency": "0"})

    assert response.status_code == 200
    assert response.json()["frequency"] == 60
    assert client.get("/gas").json()["ETH"]["frequency"] == 60
