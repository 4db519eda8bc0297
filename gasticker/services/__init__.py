"""Registry, persistence and watcher services."""
from .persistence import NullGateway, PersistedRow, PersistenceError, PersistenceGateway, SqliteGateway, build_gateway
from .registry import (
    GasConflictError,
    GasEntry,
    GasNotFoundError,
    GasRegistry,
    GasValidationError,
    RegistryError,
    build_registry,
)
from .watcher import GasWatcher, Watcher

__all__ = [
    "GasConflictError",
    "GasEntry",
    "GasNotFoundError",
    "GasRegistry",
    "GasValidationError",
    "GasWatcher",
    "NullGateway",
    "PersistedRow",
    "PersistenceError",
    "PersistenceGateway",
    "RegistryError",
    "SqliteGateway",
    "Watcher",
    "build_gateway",
    "build_registry",
]
