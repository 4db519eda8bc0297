"""Persistence gateways that mirror watched networks into a backing store."""
from __future__ import annotations

import logging
import sqlite3
from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path

from ..config import Settings, get_settings


logger = logging.getLogger(__name__)


class PersistenceError(Exception):
    """Raised when the backing store rejects a read or write."""


@dataclass(slots=True)
class PersistedRow:
    """Store-side mirror of a gas entry, keyed by ``network``."""

    network: str
    token: str
    nickname: bool
    frequency: int
    id: int | None = None


class PersistenceGateway(ABC):
    """Upsert/lookup-by-network contract for the registry's store."""

    @property
    def is_configured(self) -> bool:
        return True

    @abstractmethod
    def lookup(self, network: str) -> PersistedRow | None:
        """Return the stored row for ``network`` or ``None``."""

    @abstractmethod
    def upsert(self, row: PersistedRow) -> int:
        """Update the row for ``row.network`` if one exists, else insert it. Returns the row id."""

    def close(self) -> None:
        """Release any held connection."""


class NullGateway(PersistenceGateway):
    """Gateway used when no store is configured; every call is a no-op."""

    @property
    def is_configured(self) -> bool:
        return False

    def lookup(self, network: str) -> PersistedRow | None:
        return None

    def upsert(self, row: PersistedRow) -> int:
        return 0


class SqliteGateway(PersistenceGateway):
    """Gateway backed by a sqlite file.

    ``upsert`` is a lookup followed by an update or insert, not a single
    statement. Callers must serialize upserts for the same network; the gas
    registry does so with its write lock.
    """

    def __init__(self, db_path: Path | str) -> None:
        self.db_path = Path(db_path)
        try:
            self.conn = sqlite3.connect(self.db_path, check_same_thread=False)
        except sqlite3.Error as exc:
            raise PersistenceError(f"Unable to open gas store {self.db_path}: {exc}") from exc
        self.conn.row_factory = sqlite3.Row

    def close(self) -> None:
        self.conn.close()

    def ensure_schema(self) -> None:
        try:
            self.conn.execute(
                """
                CREATE TABLE IF NOT EXISTS gases(
                  id INTEGER PRIMARY KEY AUTOINCREMENT,
                  token TEXT NOT NULL,
                  nickname BOOLEAN NOT NULL DEFAULT 0,
                  network TEXT NOT NULL,
                  frequency INTEGER NOT NULL DEFAULT 60
                )
                """
            )
            self.conn.commit()
        except sqlite3.Error as exc:
            raise PersistenceError(f"Unable to create gas schema: {exc}") from exc

    def lookup(self, network: str) -> PersistedRow | None:
        try:
            cur = self.conn.execute(
                "SELECT id, token, nickname, network, frequency FROM gases WHERE network = ? LIMIT 1",
                (network,),
            )
            record = cur.fetchone()
        except sqlite3.Error as exc:
            raise PersistenceError(f"Unable to query gas in db {network}: {exc}") from exc
        if record is None:
            return None
        return PersistedRow(
            id=record["id"],
            token=record["token"],
            nickname=bool(record["nickname"]),
            network=record["network"],
            frequency=record["frequency"],
        )

    def upsert(self, row: PersistedRow) -> int:
        existing = self.lookup(row.network)
        try:
            if existing is not None and existing.id:
                self.conn.execute(
                    "UPDATE gases SET token = ?, nickname = ?, network = ?, frequency = ? WHERE id = ?",
                    (row.token, row.nickname, row.network, row.frequency, existing.id),
                )
                row_id = existing.id
                logger.info("updated gas in db", extra={"network": row.network, "row_id": row_id})
            else:
                cur = self.conn.execute(
                    "INSERT INTO gases(token, nickname, network, frequency) VALUES (?, ?, ?, ?)",
                    (row.token, row.nickname, row.network, row.frequency),
                )
                row_id = int(cur.lastrowid)
                logger.info("stored gas in db", extra={"network": row.network, "row_id": row_id})
            self.conn.commit()
        except sqlite3.Error as exc:
            self.conn.rollback()
            raise PersistenceError(f"Unable to store gas in db {row.network}: {exc}") from exc
        row.id = row_id
        return row_id


def build_gateway(settings: Settings | None = None) -> PersistenceGateway:
    """Factory that picks the sqlite gateway when a database path is configured.

    An unusable store degrades to ``NullGateway`` instead of failing startup.
    """

    settings = settings or get_settings()
    if not settings.database_path:
        logger.info("no database configured; gas entries will not be persisted")
        return NullGateway()
    gateway: SqliteGateway | None = None
    try:
        gateway = SqliteGateway(settings.database_path)
        gateway.ensure_schema()
    except PersistenceError:
        logger.warning(
            "gas store unavailable; gas entries will not be persisted",
            extra={"database_path": settings.database_path},
            exc_info=True,
        )
        if gateway is not None:
            gateway.close()
        return NullGateway()
    logger.info("gas store ready", extra={"database_path": settings.database_path})
    return gateway


__all__ = [
    "NullGateway",
    "PersistedRow",
    "PersistenceError",
    "PersistenceGateway",
    "SqliteGateway",
    "build_gateway",
]
