"""Translate bus traffic into telemetry records."""

from __future__ import annotations

from collections.abc import Callable, Mapping
import logging
import time
from typing import TYPE_CHECKING, Any

from ..bootstrap import Module
from ..events import domain
from ..events.domain import HandlerFailure

if TYPE_CHECKING:
    from ..context import CoordinationContext

LOGGER = logging.getLogger(__name__)


def _field(data: Any, name: str) -> Any:
    if isinstance(data, Mapping):
        return data.get(name)
    return getattr(data, name, None)


class _BusModule(Module):
    """Module whose bus registrations are undone at shutdown."""

    def __init__(self) -> None:
        self._context: CoordinationContext | None = None
        self._registrations: list[tuple[str, Callable[[Any], None]]] = []

    def _register(self, topic: str, handler: Callable[[Any], None]) -> None:
        assert self._context is not None
        self._context.bus.register(topic, handler)
        self._registrations.append((topic, handler))

    def shutdown(self) -> None:
        if self._context is not None:
            for topic, handler in self._registrations:
                self._context.bus.unregister(topic, handler)
        self._registrations.clear()


class UITrackingModule(_BusModule):
    """Record button clicks, form submissions and modal transitions."""

    name = "ui_tracking"
    description = "Forward UI interaction topics into telemetry"

    def initialize(self, context: CoordinationContext) -> None:
        self._context = context
        self._register(domain.BUTTON_CLICK, self._on_button_click)
        self._register(domain.FORM_SUBMIT, self._on_form_submit)
        self._register(domain.MODAL_OPEN, self._on_modal_open)
        self._register(domain.MODAL_CLOSE, self._on_modal_close)

    def _record(self, record_type: str, payload: Any) -> None:
        assert self._context is not None
        self._context.telemetry.record(record_type, payload)

    def _on_button_click(self, data: Any) -> None:
        self._record("button_click", data)

    def _on_form_submit(self, data: Any) -> None:
        self._record("form_submit", {"valid": _field(data, "valid")})

    def _on_modal_open(self, modal: Any) -> None:
        self._record("modal_open", {"id": _field(modal, "id")})

    def _on_modal_close(self, modal: Any) -> None:
        self._record("modal_close", {"id": _field(modal, "id")})


class ErrorTrackingModule(_BusModule):
    """Record every isolated failure published on the error topic."""

    name = "error_tracking"
    description = "Forward core:error failures into telemetry"

    def initialize(self, context: CoordinationContext) -> None:
        self._context = context
        self._register(domain.CORE_ERROR, self._on_error)

    def _on_error(self, failure: Any) -> None:
        assert self._context is not None
        payload = failure.to_dict() if isinstance(failure, HandlerFailure) else failure
        self._context.telemetry.record("handler_error", payload)


class SessionModule(_BusModule):
    """Track visibility changes and report session duration at shutdown."""

    name = "session"
    description = "Session visibility and duration telemetry"

    def __init__(self, clock: Callable[[], float] = time.monotonic) -> None:
        super().__init__()
        self._clock = clock
        self._started_at: float | None = None

    def initialize(self, context: CoordinationContext) -> None:
        self._context = context
        self._started_at = self._clock()
        self._register(domain.VISIBILITY_CHANGE, self._on_visibility_change)

    def _on_visibility_change(self, data: Any) -> None:
        assert self._context is not None
        self._context.telemetry.record(
            "visibility_change", {"state": _field(data, "state")}
        )

    def shutdown(self) -> None:
        if self._context is not None and self._started_at is not None:
            duration_ms = int((self._clock() - self._started_at) * 1000)
            payload = {"duration": duration_ms}
            self._context.telemetry.record("session_end", payload)
            self._context.bus.publish(domain.SESSION_END, payload)
            self._started_at = None
        super().shutdown()
