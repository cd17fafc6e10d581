"""Restore persisted state keys at startup and save them on every write."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from ..bootstrap import Module
from ..state import Subscription

if TYPE_CHECKING:
    from ..context import CoordinationContext
    from ..persistence import PersistentStore

LOGGER = logging.getLogger(__name__)

STORAGE_AVAILABLE_KEY = "storage:available"


class PersistenceModule(Module):
    """Mirror selected state keys into the persistent key-value store.

    Restores happen before the save subscriptions are registered, so a
    restored value is not written straight back.
    """

    name = "persistence"
    description = "Restore and auto-persist selected state keys"

    def __init__(self, keys: list[str] | None = None) -> None:
        self._keys = keys
        self._subscriptions: list[Subscription] = []

    def initialize(self, context: CoordinationContext) -> None:
        store = context.persistence
        if store is None:
            context.state.set(STORAGE_AVAILABLE_KEY, False)
            LOGGER.info("Persistence disabled; state will not be restored")
            return

        context.state.set(STORAGE_AVAILABLE_KEY, store.available())

        keys = (
            self._keys
            if self._keys is not None
            else list(context.config["persistence"]["keys"])
        )
        for key in keys:
            value = store.load(key)
            if value is not None:
                context.state.set(key, value)
                LOGGER.debug("Restored persisted key: %s", key)

        for key in keys:
            self._subscriptions.append(
                context.state.subscribe(key, self._saver(store, key))
            )

    @staticmethod
    def _saver(store: PersistentStore, key: str):
        def save(value: Any) -> None:
            store.save(key, value)

        save.__qualname__ = f"persist[{key}]"
        return save

    def shutdown(self) -> None:
        for subscription in self._subscriptions:
            subscription.dispose()
        self._subscriptions.clear()
