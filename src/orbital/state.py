"""Reactive key-value state store with per-key subscribers."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
import logging
from typing import Any

from .events.domain import HandlerFailure, describe_callable
from .exceptions import FatalError
from .logging_utils import Tracer

LOGGER = logging.getLogger(__name__)

Subscriber = Callable[[Any], None]
FailureReporter = Callable[[HandlerFailure], None]


class _UnsetType:
    """Marker returned by ``StateStore.get`` for keys never written."""

    _instance: _UnsetType | None = None

    def __new__(cls) -> _UnsetType:
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "<UNSET>"

    def __bool__(self) -> bool:
        return False

    def __copy__(self) -> _UnsetType:
        return self

    def __deepcopy__(self, memo: dict[int, Any]) -> _UnsetType:
        return self

    def __reduce__(self) -> str:
        return "UNSET"


UNSET = _UnsetType()


@dataclass(eq=False)
class _Entry:
    callback: Subscriber


class Subscription:
    """Disposable handle for a single ``subscribe`` registration."""

    def __init__(self, store: StateStore, key: str, entry: _Entry) -> None:
        self._store = store
        self._entry = entry
        self.key = key
        self.active = True

    def dispose(self) -> None:
        """Remove this registration; calling it again does nothing."""
        if not self.active:
            return
        self.active = False
        self._store._remove_entry(self.key, self._entry)

    def __enter__(self) -> Subscription:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.dispose()


class StateStore:
    """Key-value store that synchronously notifies per-key subscribers.

    Writes are unconditional: every ``set`` notifies, even when the value is
    unchanged. Subscribers are not called with the current value when they
    subscribe, so state is never replayed to late subscribers.
    """

    def __init__(
        self,
        tracer: Tracer | None = None,
        on_error: FailureReporter | None = None,
    ) -> None:
        self._values: dict[str, Any] = {}
        self._subscribers: dict[str, list[_Entry]] = {}
        self._tracer = tracer or Tracer()
        self._on_error = on_error

    def get(self, key: str) -> Any:
        """Return the last written value, or ``UNSET``."""
        return self._values.get(key, UNSET)

    def set(self, key: str, value: Any) -> None:
        """Store a value and notify a snapshot of the key's subscribers."""
        self._values[key] = value
        self._tracer.trace("state", key, value)

        for entry in tuple(self._subscribers.get(key, ())):
            try:
                entry.callback(value)
            except FatalError:
                raise
            except Exception as exc:
                self._handle_failure(key, entry.callback, exc)

    def subscribe(self, key: str, fn: Subscriber) -> Subscription:
        """Register ``fn`` for future writes to ``key``."""
        entry = _Entry(fn)
        self._subscribers.setdefault(key, []).append(entry)
        LOGGER.debug("Subscribed to state key: %s", key)
        return Subscription(self, key, entry)

    def unsubscribe(self, key: str, fn: Subscriber) -> None:
        """Remove every registration of ``fn`` for ``key``."""
        entries = self._subscribers.get(key)
        if not entries:
            return
        self._replace(key, [e for e in entries if e.callback != fn])

    def _remove_entry(self, key: str, entry: _Entry) -> None:
        entries = self._subscribers.get(key)
        if not entries:
            return
        self._replace(key, [e for e in entries if e is not entry])

    def _replace(self, key: str, entries: list[_Entry]) -> None:
        # Rebind rather than mutate so in-flight snapshots stay untouched.
        if entries:
            self._subscribers[key] = entries
        else:
            self._subscribers.pop(key, None)

    def _handle_failure(self, key: str, callback: Subscriber, exc: Exception) -> None:
        LOGGER.error(
            "state.subscriber.failed",
            extra={
                "event": "state.subscriber.failed",
                "key": key,
                "handler": describe_callable(callback),
                "error_type": type(exc).__name__,
                "error": str(exc),
            },
        )
        if self._on_error is not None:
            self._on_error(HandlerFailure.from_exception("state", key, callback, exc))

    def subscriber_count(self, key: str) -> int:
        return len(self._subscribers.get(key, ()))

    def keys(self) -> list[str]:
        return list(self._values)

    def as_dict(self) -> dict[str, Any]:
        """Return a shallow copy of every written entry."""
        return dict(self._values)
