"""In-memory registry of watched networks."""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from functools import partial
from typing import Callable, Dict, List

from ..config import Settings, get_settings
from ..schemas import GasEntryOut, GasRequest
from .locks import ReadWriteLock
from .persistence import NullGateway, PersistedRow, PersistenceError, PersistenceGateway, build_gateway
from .watcher import GasWatcher, Watcher


logger = logging.getLogger(__name__)

CountListener = Callable[[int], None]
WatcherFactory = Callable[[], Watcher]


class RegistryError(Exception):
    """Base error for registry operations."""


class GasValidationError(RegistryError):
    """Raised when a request is missing the network or the bot token."""


class GasConflictError(RegistryError):
    """Raised when the network is already being watched."""


class GasNotFoundError(RegistryError):
    """Raised when deleting a network that is not being watched."""


@dataclass
class GasEntry:
    """A watched network and the handle of its running watcher."""

    network: str
    token: str = field(repr=False)
    nickname: bool
    frequency: int
    watcher: Watcher = field(repr=False, compare=False)

    def sanitized_dict(self) -> Dict[str, object]:
        """Return a dictionary without the bot token."""

        return GasEntryOut(network=self.network, set_nickname=self.nickname, frequency=self.frequency).model_dump()

    def to_row(self) -> PersistedRow:
        return PersistedRow(network=self.network, token=self.token, nickname=self.nickname, frequency=self.frequency)


class GasRegistry:
    """Owns the network -> entry map.

    ``add`` and ``delete`` hold the write lock for their whole duration,
    including the watcher start/stop and the store upsert. ``list`` holds the
    read lock.
    """

    def __init__(
        self,
        watcher_factory: WatcherFactory,
        gateway: PersistenceGateway | None = None,
    ) -> None:
        self._watcher_factory = watcher_factory
        self._gateway = gateway or NullGateway()
        self._entries: Dict[str, GasEntry] = {}
        self._lock = ReadWriteLock()
        self._listeners: List[CountListener] = []

    @property
    def gateway(self) -> PersistenceGateway:
        return self._gateway

    def subscribe(self, listener: CountListener) -> None:
        """Register a callback invoked with the new entry count after every change."""

        self._listeners.append(listener)

    def add(self, request: GasRequest) -> GasEntry:
        with self._lock.write():
            if not request.token:
                raise GasValidationError("Discord token required")
            if not request.network:
                raise GasValidationError("Network required")
            network = request.network.upper()
            if network in self._entries:
                raise GasConflictError(f"Network already exists: {network}")

            watcher = self._watcher_factory()
            watcher.start(network, request.token, request.nickname, request.frequency)
            entry = GasEntry(
                network=network,
                token=request.token,
                nickname=request.nickname,
                frequency=request.frequency,
                watcher=watcher,
            )
            self._entries[network] = entry
            self._emit_count()
            self._persist(entry)
            logger.info("added gas", extra={"network": network, "frequency": entry.frequency})
            return entry

    def delete(self, network: str) -> None:
        network = (network or "").upper()
        with self._lock.write():
            entry = self._entries.get(network)
            if entry is None:
                raise GasNotFoundError(f"No gas found: {network}")
            # stop() only signals; the watcher thread exits on its own
            entry.watcher.stop()
            del self._entries[network]
            self._emit_count()
            logger.info("deleted gas", extra={"network": network})

    def list(self) -> Dict[str, Dict[str, object]]:
        with self._lock.read():
            return {network: entry.sanitized_dict() for network, entry in self._entries.items()}

    def __len__(self) -> int:
        with self._lock.read():
            return len(self._entries)

    def __contains__(self, network: object) -> bool:
        if not isinstance(network, str):
            return False
        with self._lock.read():
            return network.upper() in self._entries

    def shutdown(self) -> None:
        """Stop every watcher and empty the registry. The gateway stays open."""

        with self._lock.write():
            for entry in self._entries.values():
                entry.watcher.stop()
            stopped = len(self._entries)
            self._entries.clear()
            self._emit_count()
        logger.info("gas registry shut down", extra={"stopped": stopped})

    def close(self) -> None:
        self.shutdown()
        self._gateway.close()

    def _persist(self, entry: GasEntry) -> None:
        if not self._gateway.is_configured:
            return
        try:
            self._gateway.upsert(entry.to_row())
        except PersistenceError:
            logger.warning("unable to persist gas", extra={"network": entry.network}, exc_info=True)

    def _emit_count(self) -> None:
        count = len(self._entries)
        for listener in list(self._listeners):
            listener(count)


def build_registry(settings: Settings | None = None) -> GasRegistry:
    """Factory wiring the configured store and ``GasWatcher`` into a registry."""

    settings = settings or get_settings()
    return GasRegistry(watcher_factory=partial(GasWatcher, settings), gateway=build_gateway(settings))


__all__ = [
    "GasConflictError",
    "GasEntry",
    "GasNotFoundError",
    "GasRegistry",
    "GasValidationError",
    "RegistryError",
    "build_registry",
]
