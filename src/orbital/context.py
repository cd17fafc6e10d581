"""Coordination context shared by every module of one application instance."""

from __future__ import annotations

from dataclasses import dataclass, field
import logging
from typing import Any

from .config import resolve_config
from .events.bus import EventBus
from .logging_utils import TraceSink, Tracer
from .persistence import PersistentStore
from .state import StateStore
from .telemetry import TelemetryQueue

LOGGER = logging.getLogger(__name__)


@dataclass
class CoordinationContext:
    """Registry, store and queue owned by one application instance.

    Modules receive the context at initialization instead of reaching for a
    process-wide global, so several isolated instances can coexist.
    """

    config: dict[str, dict[str, Any]]
    tracer: Tracer
    bus: EventBus
    state: StateStore
    telemetry: TelemetryQueue
    persistence: PersistentStore | None = None
    closed: bool = field(default=False, init=False)

    @property
    def debug(self) -> bool:
        return self.tracer.enabled

    def close(self) -> None:
        """Drop every bus registration; safe to call more than once."""
        if self.closed:
            return
        self.bus.clear()
        self.closed = True
        LOGGER.debug("Coordination context closed")


def build_context(
    config: dict[str, Any] | None = None,
    *,
    persistence: PersistentStore | None = None,
    trace_sink: TraceSink | None = None,
) -> CoordinationContext:
    """Build a fresh, isolated coordination context.

    Args:
        config: Full or partial config mapping; missing values use defaults
        persistence: Optional persisted key-value store
        trace_sink: Optional replacement for the structlog trace output
    """
    resolved = resolve_config(config)
    tracer = Tracer(enabled=resolved["core"]["debug"], sink=trace_sink)
    bus = EventBus(tracer)
    state = StateStore(tracer, on_error=bus.report_failure)

    record_context = resolved["telemetry"]["context"]
    telemetry = TelemetryQueue(
        capacity=resolved["telemetry"]["capacity"],
        context_provider=lambda: record_context,
        tracer=tracer,
    )
    return CoordinationContext(
        config=resolved,
        tracer=tracer,
        bus=bus,
        state=state,
        telemetry=telemetry,
        persistence=persistence,
    )
