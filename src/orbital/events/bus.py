"""Event bus for decoupled module communication.

Usage:
    bus = EventBus()

    def on_click(data):
        print(f"Clicked: {data['id']}")

    bus.register("ui:button:click", on_click)
    bus.publish("ui:button:click", {"id": "cta"})

Dispatch is synchronous and iterates over a snapshot of the handler list
taken when ``publish`` is entered. Handlers registered or removed while a
dispatch pass is running only take part from the next ``publish`` call.
"""

from __future__ import annotations

from collections.abc import Callable
import logging
from typing import Any

from ..exceptions import FatalError
from ..logging_utils import Tracer
from .domain import CORE_ERROR, HandlerFailure, describe_callable

LOGGER = logging.getLogger(__name__)

Handler = Callable[[Any], None]


class EventBus:
    """Topic-keyed publish/subscribe registry.

    Enables loose coupling between modules by letting them communicate via
    topics rather than direct calls. A failing handler is reported on the
    ``core:error`` topic and does not stop its siblings; only ``FatalError``
    escapes ``publish``.
    """

    def __init__(self, tracer: Tracer | None = None) -> None:
        self._handlers: dict[str, list[Handler]] = {}
        self._tracer = tracer or Tracer()

    def register(self, topic: str, handler: Handler) -> None:
        """Append a handler to a topic.

        Args:
            topic: Topic to listen for (e.g., "modal:open")
            handler: Callable invoked with the published data
        """
        if topic not in self._handlers:
            self._handlers[topic] = []
        self._handlers[topic].append(handler)
        LOGGER.debug("Registered handler for topic: %s", topic)

    def unregister(self, topic: str, handler: Handler) -> None:
        """Remove every registration of a handler from a topic.

        Args:
            topic: Topic to stop listening to
            handler: Handler to remove; equal handlers are all removed
        """
        handlers = self._handlers.get(topic)
        if not handlers:
            return
        # Rebind rather than mutate so in-flight snapshots stay untouched.
        remaining = [h for h in handlers if h != handler]
        if remaining:
            self._handlers[topic] = remaining
        else:
            del self._handlers[topic]
        LOGGER.debug("Unregistered handler from topic: %s", topic)

    def publish(self, topic: str, data: Any = None) -> None:
        """Invoke every handler registered for a topic, in registration order.

        Args:
            topic: Topic name
            data: Sole argument passed to each handler
        """
        self._tracer.trace("event", topic, data)
        handlers = tuple(self._handlers.get(topic, ()))

        if not handlers:
            LOGGER.debug("No handlers for topic: %s", topic)
            return

        for handler in handlers:
            try:
                handler(data)
            except FatalError:
                raise
            except Exception as exc:
                self._handle_failure(topic, handler, exc)

    def report_failure(self, failure: HandlerFailure) -> None:
        """Publish an isolated failure on the dedicated error topic."""
        self.publish(CORE_ERROR, failure)

    def _handle_failure(self, topic: str, handler: Handler, exc: Exception) -> None:
        LOGGER.error(
            "events.handler.failed",
            extra={
                "event": "events.handler.failed",
                "topic": topic,
                "handler": describe_callable(handler),
                "error_type": type(exc).__name__,
                "error": str(exc),
            },
        )
        if topic == CORE_ERROR:
            # Failures inside error handlers are only logged.
            return
        self.report_failure(HandlerFailure.from_exception("event", topic, handler, exc))

    def handlers(self, topic: str) -> tuple[Handler, ...]:
        """Return a copy of the handlers currently registered for a topic."""
        return tuple(self._handlers.get(topic, ()))

    def topics(self) -> list[str]:
        """Return topics with at least one registered handler."""
        return list(self._handlers)

    def clear(self, topic: str | None = None) -> None:
        """Clear handlers.

        Args:
            topic: Specific topic to clear, or None for all
        """
        if topic is not None:
            self._handlers.pop(topic, None)
        else:
            self._handlers.clear()
