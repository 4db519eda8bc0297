"""Tests for the persistence gateways."""

import sqlite3
from pathlib import Path

import pytest

from gasticker.config import Settings
from gasticker.services.persistence import (
    NullGateway,
    PersistedRow,
    PersistenceError,
    SqliteGateway,
    build_gateway,
)


def _gateway(tmp_path: Path) -> SqliteGateway:
    gateway = SqliteGateway(tmp_path / "gas.db")
    gateway.ensure_schema()
    return gateway


def _count_rows(db_path: Path, network: str) -> int:
    conn = sqlite3.connect(db_path)
    try:
        return conn.execute("SELECT COUNT(*) FROM gases WHERE network = ?", (network,)).fetchone()[0]
    finally:
        conn.close()


def test_upsert_inserts_then_updates_single_row(tmp_path: Path) -> None:
    gateway = _gateway(tmp_path)

    first_id = gateway.upsert(PersistedRow(network="ETH", token="old", nickname=False, frequency=60))
    second_id = gateway.upsert(PersistedRow(network="ETH", token="new", nickname=True, frequency=15))
    gateway.close()

    assert first_id == second_id
    assert _count_rows(tmp_path / "gas.db", "ETH") == 1


def test_lookup_returns_latest_values(tmp_path: Path) -> None:
    gateway = _gateway(tmp_path)
    gateway.upsert(PersistedRow(network="ETH", token="old", nickname=False, frequency=60))
    gateway.upsert(PersistedRow(network="ETH", token="new", nickname=True, frequency=15))

    row = gateway.lookup("ETH")

    assert row is not None
    assert (row.token, row.nickname, row.frequency) == ("new", True, 15)
    assert gateway.lookup("BTC") is None


def test_rows_survive_reopen(tmp_path: Path) -> None:
    gateway = _gateway(tmp_path)
    row_id = gateway.upsert(PersistedRow(network="BSC", token="t", nickname=True, frequency=30))
    gateway.close()

    reopened = _gateway(tmp_path)
    row = reopened.lookup("BSC")

    assert row is not None
    assert row.id == row_id


def test_store_errors_raise_persistence_error(tmp_path: Path) -> None:
    gateway = SqliteGateway(tmp_path / "gas.db")  # schema never created

    with pytest.raises(PersistenceError):
        gateway.upsert(PersistedRow(network="ETH", token="t", nickname=False, frequency=60))


def test_null_gateway_is_unconfigured() -> None:
    gateway = NullGateway()

    assert gateway.is_configured is False
    assert gateway.lookup("ETH") is None
    assert gateway.upsert(PersistedRow(network="ETH", token="t", nickname=False, frequency=60)) == 0


def test_build_gateway_follows_settings(tmp_path: Path) -> None:
    assert isinstance(build_gateway(Settings(database_path=None)), NullGateway)

    gateway = build_gateway(Settings(database_path=str(tmp_path / "gas.db")))
    try:
        assert isinstance(gateway, SqliteGateway)
        assert gateway.is_configured is True
        assert gateway.lookup("ETH") is None
    finally:
        gateway.close()


def test_build_gateway_degrades_when_store_unusable(tmp_path: Path) -> None:
    gateway = build_gateway(Settings(database_path=str(tmp_path / "missing" / "gas.db")))

    assert isinstance(gateway, NullGateway)
