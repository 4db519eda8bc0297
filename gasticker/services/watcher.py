"""Background pollers that publish a network's gas price to a Discord bot."""
from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from typing import Any, Iterable, List, Mapping, Protocol

import httpx

from ..config import Settings, get_settings


logger = logging.getLogger(__name__)


class Watcher(Protocol):
    """Handle the registry holds for each running entry."""

    def start(self, network: str, token: str, nickname: bool, frequency: int) -> None:
        ...

    def stop(self) -> None:
        ...


class GasPriceError(Exception):
    """Raised when a gas price or Discord response cannot be interpreted."""


@dataclass(slots=True)
class GasPrices:
    fast: float
    average: float
    slow: float

    def nickname(self) -> str:
        return f"{_fmt(self.fast)} gwei"

    def activity(self) -> str:
        return f"Fast: {_fmt(self.fast)} Avg: {_fmt(self.average)} Slow: {_fmt(self.slow)}"


def parse_gas_prices(payload: Any) -> GasPrices:
    """Normalize a gas price response into fast/average/slow gwei.

    Accepts a ``speeds`` list ordered slow to fast, or flat
    ``fast``/``average``/``slow`` keys (``standard`` and ``safeLow`` are
    accepted as aliases).
    """

    if not isinstance(payload, Mapping):
        raise GasPriceError("gas price response was not a JSON object")

    speeds = payload.get("speeds")
    if isinstance(speeds, list) and speeds:
        values = [_speed_value(speed) for speed in speeds]
        return GasPrices(fast=values[-1], average=values[len(values) // 2], slow=values[0])

    source = payload.get("result") if isinstance(payload.get("result"), Mapping) else payload
    fast = _maybe_float(_first_present(source, "fast", "FastGasPrice"))
    average = _maybe_float(_first_present(source, "average", "standard", "ProposeGasPrice"))
    slow = _maybe_float(_first_present(source, "slow", "safeLow", "SafeGasPrice"))
    if fast is None or average is None or slow is None:
        raise GasPriceError("gas price response missing fast/average/slow values")
    return GasPrices(fast=fast, average=average, slow=slow)


class GasWatcher:
    """Polls a gas price endpoint on its own thread until stopped."""

    def __init__(
        self,
        settings: Settings | None = None,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self._settings = settings or get_settings()
        self._transport = transport
        self._stop_event = threading.Event()
        self._thread: threading.Thread | None = None
        self.network = ""
        self.nickname = False
        self.frequency = self._settings.default_frequency_seconds
        self._token = ""
        self.last_prices: GasPrices | None = None

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self, network: str, token: str, nickname: bool, frequency: int) -> None:
        if self._thread is not None:
            raise RuntimeError(f"watcher for {self.network} already started")
        self.network = network
        self._token = token
        self.nickname = nickname
        self.frequency = frequency or self._settings.default_frequency_seconds
        self._thread = threading.Thread(target=self._run, name=f"gas-{network}", daemon=True)
        self._thread.start()
        logger.info(
            "gas watcher started",
            extra={"network": network, "frequency": self.frequency, "set_nickname": nickname},
        )

    def stop(self) -> None:
        if self._stop_event.is_set():
            return
        self._stop_event.set()
        logger.info("gas watcher stop requested", extra={"network": self.network})

    def _run(self) -> None:
        with self._client() as client:
            while not self._stop_event.is_set():
                try:
                    self.tick(client)
                except (httpx.HTTPError, GasPriceError):
                    logger.warning("gas watcher tick failed", extra={"network": self.network}, exc_info=True)
                self._stop_event.wait(self.frequency)
        logger.info("gas watcher exited", extra={"network": self.network})

    def _client(self) -> httpx.Client:
        return httpx.Client(timeout=self._settings.http_timeout_seconds, transport=self._transport)

    def tick(self, client: httpx.Client) -> GasPrices:
        prices = self.fetch_prices(client)
        self.last_prices = prices
        if self.nickname:
            self.set_nickname(client, prices.nickname())
        else:
            logger.info("gas price update", extra={"network": self.network, "activity": prices.activity()})
        return prices

    def fetch_prices(self, client: httpx.Client) -> GasPrices:
        url = self._settings.gas_price_url.format(network=self.network.lower())
        response = client.get(url)
        response.raise_for_status()
        try:
            payload = response.json()
        except ValueError as exc:
            raise GasPriceError("gas price endpoint returned invalid JSON") from exc
        prices = parse_gas_prices(payload)
        logger.debug(
            "gas prices fetched",
            extra={"network": self.network, "fast": prices.fast, "average": prices.average, "slow": prices.slow},
        )
        return prices

    def set_nickname(self, client: httpx.Client, nick: str) -> List[str]:
        """Rename the bot in every guild it belongs to; returns the guild ids touched."""

        base = self._settings.discord_api_url.rstrip("/")
        headers = {"Authorization": f"Bot {self._token}"}
        response = client.get(f"{base}/users/@me/guilds", headers=headers)
        response.raise_for_status()
        try:
            payload = response.json()
        except ValueError as exc:
            raise GasPriceError("guild listing returned invalid JSON") from exc
        guild_ids = [str(guild["id"]) for guild in _guilds(payload)]
        for guild_id in guild_ids:
            patch = client.patch(f"{base}/guilds/{guild_id}/members/@me", headers=headers, json={"nick": nick})
            if patch.is_error:
                logger.warning(
                    "unable to set nickname",
                    extra={"network": self.network, "guild_id": guild_id, "status_code": patch.status_code},
                )
        logger.info("nickname updated", extra={"network": self.network, "nick": nick, "guilds": len(guild_ids)})
        return guild_ids


def _guilds(payload: Any) -> Iterable[Mapping[str, Any]]:
    if not isinstance(payload, list):
        return []
    return [guild for guild in payload if isinstance(guild, Mapping) and guild.get("id")]


def _first_present(source: Mapping[str, Any], *keys: str) -> Any:
    for key in keys:
        if source.get(key) is not None:
            return source[key]
    return None


def _speed_value(speed: Any) -> float:
    if isinstance(speed, Mapping):
        value = _maybe_float(_first_present(speed, "gasPrice", "maxFeePerGas"))
    else:
        value = _maybe_float(speed)
    if value is None:
        raise GasPriceError(f"unusable gas speed entry: {speed!r}")
    return value


def _maybe_float(value: Any) -> float | None:
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def _fmt(value: float) -> str:
    return f"{value:.0f}" if value >= 10 else f"{value:.2f}".rstrip("0").rstrip(".")


__all__ = ["GasPriceError", "GasPrices", "GasWatcher", "Watcher", "parse_gas_prices"]
