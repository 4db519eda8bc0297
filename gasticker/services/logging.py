"""Request-scoped logging helpers and in-memory log store."""
from __future__ import annotations

import logging
import threading
import uuid
from collections import OrderedDict, deque
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Deque, Dict, List, Mapping


class RequestLogStore:
    """Lightweight in-memory store so engineers can inspect milestones.

    Keeps the most recent ``max_requests`` request ids, each with at most
    ``max_entries`` milestones.
    """

    def __init__(self, max_requests: int = 500, max_entries: int = 50) -> None:
        self._records: OrderedDict[str, Deque[Mapping[str, Any]]] = OrderedDict()
        self._max_requests = max_requests
        self._max_entries = max_entries
        self._lock = threading.Lock()

    def append(self, request_id: str, entry: Mapping[str, Any]) -> None:
        with self._lock:
            records = self._records.get(request_id)
            if records is None:
                records = self._records[request_id] = deque(maxlen=self._max_entries)
                while len(self._records) > self._max_requests:
                    self._records.popitem(last=False)
            else:
                self._records.move_to_end(request_id)
            records.append(entry)

    def get(self, request_id: str) -> List[Mapping[str, Any]]:
        with self._lock:
            return list(self._records.get(request_id, []))

    def clear(self) -> None:
        with self._lock:
            self._records.clear()


request_log_store = RequestLogStore()


@dataclass
class RequestContext:
    """State bag that injects IDs into every log line for a request."""

    request_id: str = field(default_factory=lambda: uuid.uuid4().hex)
    network: str | None = None
    _store: RequestLogStore = field(default=request_log_store, repr=False)

    def with_network(self, network: str | None) -> "RequestContext":
        if network:
            self.network = network.upper()
        return self

    def extra(self, **fields: Any) -> Dict[str, Any]:
        payload: Dict[str, Any] = {"request_id": self.request_id}
        if self.network:
            payload["network"] = self.network
        for key, value in fields.items():
            if value is not None:
                payload[key] = value
        return payload

    def log(
        self,
        logger: logging.Logger,
        level: int,
        message: str,
        *,
        exc_info: bool | BaseException | None = None,
        **fields: Any,
    ) -> None:
        extra_payload = self.extra(**fields)
        logger.log(level, message, extra=extra_payload, exc_info=exc_info)
        self._store.append(
            self.request_id,
            {
                "timestamp": datetime.now(timezone.utc).isoformat(timespec="milliseconds"),
                "level": logging.getLevelName(level),
                "message": message,
                "extra": extra_payload,
            },
        )

    def debug(self, logger: logging.Logger, message: str, **fields: Any) -> None:
        self.log(logger, logging.DEBUG, message, **fields)

    def info(self, logger: logging.Logger, message: str, **fields: Any) -> None:
        self.log(logger, logging.INFO, message, **fields)

    def warning(self, logger: logging.Logger, message: str, *, exc_info: bool | BaseException | None = None, **fields: Any) -> None:
        self.log(logger, logging.WARNING, message, exc_info=exc_info, **fields)

    def exception(self, logger: logging.Logger, message: str, **fields: Any) -> None:
        self.log(logger, logging.ERROR, message, exc_info=True, **fields)


__all__ = ["RequestContext", "request_log_store", "RequestLogStore"]
