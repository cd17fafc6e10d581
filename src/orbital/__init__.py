"""Top-level package for the Orbital coordination core."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from .bootstrap import BootstrapSequencer, LifecyclePhase, Module
    from .config import ensure_config_dir, load_config
    from .context import CoordinationContext, build_context
    from .events import EventBus, HandlerFailure
    from .exceptions import (
        BootstrapError,
        ConfigValidationError,
        FatalError,
        OrbitalError,
        PersistenceError,
    )
    from .persistence import PersistentStore
    from .state import UNSET, StateStore, Subscription
    from .telemetry import TelemetryQueue, TelemetryRecord

__all__ = [
    "BootstrapError",
    "BootstrapSequencer",
    "ConfigValidationError",
    "CoordinationContext",
    "EventBus",
    "FatalError",
    "HandlerFailure",
    "LifecyclePhase",
    "Module",
    "OrbitalError",
    "PersistenceError",
    "PersistentStore",
    "StateStore",
    "Subscription",
    "TelemetryQueue",
    "TelemetryRecord",
    "UNSET",
    "build_context",
    "ensure_config_dir",
    "load_config",
]


def __getattr__(name: str) -> Any:
    """Lazily import symbols so ``import orbital`` stays cheap."""
    if name in {"ensure_config_dir", "load_config"}:
        from .config import ensure_config_dir, load_config

        return {"ensure_config_dir": ensure_config_dir, "load_config": load_config}[name]
    if name in {
        "BootstrapError",
        "ConfigValidationError",
        "FatalError",
        "OrbitalError",
        "PersistenceError",
    }:
        from . import exceptions

        return getattr(exceptions, name)
    if name in {"EventBus", "HandlerFailure"}:
        from .events import EventBus, HandlerFailure

        return {"EventBus": EventBus, "HandlerFailure": HandlerFailure}[name]
    if name in {"UNSET", "StateStore", "Subscription"}:
        from . import state

        return getattr(state, name)
    if name in {"TelemetryQueue", "TelemetryRecord"}:
        from .telemetry import TelemetryQueue, TelemetryRecord

        return {"TelemetryQueue": TelemetryQueue, "TelemetryRecord": TelemetryRecord}[
            name
        ]
    if name in {"BootstrapSequencer", "LifecyclePhase", "Module"}:
        from . import bootstrap

        return getattr(bootstrap, name)
    if name in {"CoordinationContext", "build_context"}:
        from .context import CoordinationContext, build_context

        return {"CoordinationContext": CoordinationContext, "build_context": build_context}[
            name
        ]
    if name == "PersistentStore":
        from .persistence import PersistentStore

        return PersistentStore
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
