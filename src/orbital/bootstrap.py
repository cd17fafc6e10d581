"""Module interface and the one-shot bootstrap sequencer.

Usage:
    # Define a module
    class ThemeModule(Module):
        name = "theme"

        def initialize(self, context):
            context.state.set("theme", "dark")

    context = build_context()
    sequencer = BootstrapSequencer(context)
    sequencer.add(ThemeModule())
    sequencer.add(lambda ctx: ctx.telemetry.record("boot"), name="boot_marker")

    # Host "environment ready" signal
    sequencer.fire()
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Callable, Iterable
from dataclasses import dataclass
from enum import Enum
import logging
from typing import TYPE_CHECKING, Any, Union

from .events.domain import APP_INIT, APP_READY, HandlerFailure, describe_callable
from .exceptions import BootstrapError, FatalError

if TYPE_CHECKING:
    from .context import CoordinationContext

LOGGER = logging.getLogger(__name__)


class LifecyclePhase(str, Enum):
    """Bootstrap lifecycle; there is no transition out of STEADY."""

    LOADING = "LOADING"
    READY = "READY"
    STEADY = "STEADY"


class Module(ABC):
    """Base class for feature modules.

    Modules register bus handlers and state subscribers in ``initialize``.
    Anything a module needs from another module's state at startup must be
    subscribed here, because state writes are not replayed.
    """

    name: str = "unknown"
    description: str = ""

    @abstractmethod
    def initialize(self, context: CoordinationContext) -> None:
        """Initialize the module.

        Args:
            context: Coordination context (config, bus, state, telemetry)
        """

    def shutdown(self) -> None:
        """Clean up module resources."""


Initializer = Union[Module, Callable[["CoordinationContext"], Any]]


@dataclass
class _Step:
    name: str
    target: Initializer

    def run(self, context: CoordinationContext) -> None:
        if isinstance(self.target, Module):
            self.target.initialize(context)
        else:
            self.target(context)


class BootstrapSequencer:
    """Run declared initializers, in order, when the lifecycle signal fires.

    Responsibilities:
    - Keep an explicit, ordered list of initializers
    - Guard that the coordination context exists before firing
    - Publish ``app:init`` once and run every initializer synchronously
    - Isolate initializer failures unless they are fatal
    - Shut modules down in reverse order
    """

    def __init__(self, context: CoordinationContext | None) -> None:
        self.context = context
        self._steps: list[_Step] = []
        self._phase = LifecyclePhase.LOADING
        self._fired = False
        self._ran = False
        self._shut_down = False
        self.initialized: list[str] = []
        self.failed: list[str] = []
        if context is not None and getattr(context, "bus", None) is not None:
            context.bus.register(APP_INIT, self._run_initializers)

    @property
    def phase(self) -> LifecyclePhase:
        return self._phase

    @property
    def names(self) -> list[str]:
        return [step.name for step in self._steps]

    def add(self, initializer: Initializer, name: str | None = None) -> None:
        """Append an initializer to the declared order.

        Args:
            initializer: Module instance or callable taking the context
            name: Unique name; defaults to the module name or callable name
        """
        if self._phase is not LifecyclePhase.LOADING:
            raise BootstrapError(
                "Initializers can only be added before the lifecycle signal fires."
            )
        if name is None:
            if isinstance(initializer, Module):
                name = initializer.name
            else:
                name = self._default_name(initializer)
        if name in self.names:
            raise BootstrapError(f"Initializer {name!r} is already registered.")
        self._steps.append(_Step(name=name, target=initializer))
        LOGGER.debug("Registered initializer: %s", name)

    def _default_name(self, initializer: Callable[..., Any]) -> str:
        # Unnamed callables (e.g. lambdas) get a numbered suffix on collision.
        base = getattr(initializer, "__name__", None) or describe_callable(initializer)
        name, counter = base, 1
        while name in self.names:
            counter += 1
            name = f"{base}#{counter}"
        return name

    def extend(self, initializers: Iterable[Initializer]) -> None:
        for initializer in initializers:
            self.add(initializer)

    def _guard(self) -> CoordinationContext:
        context = self.context
        if context is None:
            raise BootstrapError("Coordination context missing.")
        for attribute in ("bus", "state", "telemetry"):
            if getattr(context, attribute, None) is None:
                raise BootstrapError(f"Coordination context has no {attribute}.")
        if getattr(context, "closed", False):
            raise BootstrapError("Coordination context is closed.")
        return context

    def fire(self) -> bool:
        """Fire the lifecycle signal.

        Returns:
            True on the first call; later calls are logged no-ops
        """
        context = self._guard()
        if self._fired:
            LOGGER.warning(
                "bootstrap.already_fired",
                extra={"event": "bootstrap.already_fired"},
            )
            return False

        self._fired = True
        self._phase = LifecyclePhase.READY
        LOGGER.info(
            "bootstrap.fire",
            extra={"event": "bootstrap.fire", "initializers": self.names},
        )
        context.bus.publish(APP_INIT, context)
        return True

    def _run_initializers(self, _data: Any) -> None:
        context = self._guard()
        if self._ran:
            LOGGER.warning(
                "bootstrap.already_fired",
                extra={"event": "bootstrap.already_fired"},
            )
            return
        self._ran = True
        # Reached through a direct app:init publish as well as through fire().
        self._fired = True
        self._phase = LifecyclePhase.READY

        for step in list(self._steps):
            try:
                step.run(context)
            except FatalError:
                LOGGER.critical(
                    "bootstrap.initializer.fatal",
                    extra={
                        "event": "bootstrap.initializer.fatal",
                        "initializer": step.name,
                    },
                )
                raise
            except Exception as exc:
                self.failed.append(step.name)
                LOGGER.error(
                    "bootstrap.initializer.failed",
                    extra={
                        "event": "bootstrap.initializer.failed",
                        "initializer": step.name,
                        "error_type": type(exc).__name__,
                        "error": str(exc),
                    },
                )
                context.bus.report_failure(
                    HandlerFailure.from_exception("bootstrap", step.name, step.name, exc)
                )
            else:
                self.initialized.append(step.name)
                LOGGER.info("Initialized module: %s", step.name)

        self._phase = LifecyclePhase.STEADY
        context.bus.publish(
            APP_READY,
            {"initialized": list(self.initialized), "failed": list(self.failed)},
        )

    def shutdown(self) -> None:
        """Shut initialized modules down in reverse order and close the context."""
        if self._shut_down:
            return
        self._shut_down = True

        for step in reversed(self._steps):
            if step.name not in self.initialized or not isinstance(step.target, Module):
                continue
            try:
                step.target.shutdown()
                LOGGER.info("Shutdown module: %s", step.name)
            except Exception as e:
                LOGGER.error(f"Error shutting down module {step.name}: {e}")

        if self.context is not None:
            self.context.close()
