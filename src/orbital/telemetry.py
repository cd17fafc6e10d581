"""Bounded FIFO queue of diagnostic telemetry records."""

from __future__ import annotations

from collections import deque
from collections.abc import Callable, Mapping
from copy import deepcopy
from dataclasses import dataclass, field, replace
from datetime import UTC, datetime
import logging
from typing import Any

from .logging_utils import Tracer

LOGGER = logging.getLogger(__name__)

DEFAULT_CAPACITY = 50


@dataclass(frozen=True)
class TelemetryRecord:
    type: str
    payload: Any = field(default_factory=dict)
    timestamp: datetime = field(default_factory=lambda: datetime.now(UTC))
    context: str = "/"

    def to_dict(self) -> dict[str, Any]:
        return {
            "type": self.type,
            "payload": deepcopy(self.payload),
            "timestamp": self.timestamp.isoformat(),
            "context": self.context,
        }


def _copy_value(value: Any) -> Any:
    try:
        return deepcopy(value)
    except Exception:  # noqa: BLE001 - only the uncopyable parts degrade to repr.
        if isinstance(value, Mapping):
            return {str(key): _copy_value(item) for key, item in value.items()}
        if isinstance(value, (list, tuple)):
            return [_copy_value(item) for item in value]
        return repr(value)


def _copy_payload(payload: Any) -> Any:
    if payload is None:
        return {}
    return _copy_value(payload)


class TelemetryQueue:
    """Hold the most recent diagnostic records, oldest evicted first.

    ``record`` and ``snapshot`` never raise: telemetry is best-effort and a
    malformed payload must not disturb the caller.
    """

    def __init__(
        self,
        capacity: int = DEFAULT_CAPACITY,
        context_provider: Callable[[], str] | None = None,
        tracer: Tracer | None = None,
    ) -> None:
        if capacity < 1:
            raise ValueError("capacity must be at least 1.")
        self._records: deque[TelemetryRecord] = deque(maxlen=capacity)
        self._context_provider = context_provider or (lambda: "/")
        self._tracer = tracer or Tracer()

    @property
    def capacity(self) -> int:
        return self._records.maxlen or DEFAULT_CAPACITY

    def record(
        self, type: str, payload: Any = None, context: str | None = None
    ) -> None:
        """Append a record at the tail, evicting the oldest on overflow."""
        try:
            entry = TelemetryRecord(
                type=type if isinstance(type, str) else str(type),
                payload=_copy_payload(payload),
                context=(
                    context if context is not None else str(self._context_provider())
                ),
            )
            self._records.append(entry)
            self._tracer.trace("telemetry", entry.type, entry.payload)
        except Exception:  # noqa: BLE001 - telemetry failures are never fatal.
            LOGGER.warning(
                "telemetry.record.failed",
                extra={"event": "telemetry.record.failed"},
                exc_info=True,
            )

    def snapshot(self) -> list[TelemetryRecord]:
        """Return an independent copy of the queue in creation order."""
        try:
            return [
                replace(entry, payload=_copy_payload(entry.payload))
                for entry in self._records
            ]
        except Exception:  # noqa: BLE001 - telemetry failures are never fatal.
            LOGGER.warning(
                "telemetry.snapshot.failed",
                extra={"event": "telemetry.snapshot.failed"},
                exc_info=True,
            )
            return []

    def clear(self) -> None:
        self._records.clear()

    def __len__(self) -> int:
        return len(self._records)
