"""Prometheus metrics for the gas registry."""
from __future__ import annotations

from prometheus_client import Gauge

from .services.registry import GasRegistry

GAS_COUNT = Gauge(
    "gasticker_gas_count",
    "Number of networks currently being watched",
)


def track_registry(registry: GasRegistry) -> None:
    """Mirror the registry's entry count into ``GAS_COUNT``."""

    registry.subscribe(GAS_COUNT.set)
    GAS_COUNT.set(len(registry))
