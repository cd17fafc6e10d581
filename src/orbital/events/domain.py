from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any

# Lifecycle
APP_INIT = "app:init"
APP_READY = "app:ready"

# Dedicated channel for isolated handler/initializer failures
CORE_ERROR = "core:error"

# UI interactions forwarded by host adapters
BUTTON_CLICK = "ui:button:click"
FORM_SUBMIT = "form:submit"
MODAL_OPEN = "modal:open"
MODAL_CLOSE = "modal:close"
THEME_TOGGLE = "theme:toggle"

# Diagnostics
DEBUG_TOGGLE = "debug:toggle"

# Session
VISIBILITY_CHANGE = "visibility:change"
SESSION_END = "session:end"


@dataclass
class HandlerFailure:
    source: str  # "event", "state" or "bootstrap"
    subject: str  # topic, state key or initializer name
    handler: str
    error_type: str
    error: str
    timestamp: datetime = field(default_factory=lambda: datetime.now(UTC))

    @classmethod
    def from_exception(
        cls, source: str, subject: str, handler: Any, exc: BaseException
    ) -> HandlerFailure:
        return cls(
            source=source,
            subject=subject,
            handler=describe_callable(handler),
            error_type=type(exc).__name__,
            error=str(exc),
        )

    def to_dict(self) -> dict[str, str]:
        return {
            "source": self.source,
            "subject": self.subject,
            "handler": self.handler,
            "error_type": self.error_type,
            "error": self.error,
            "timestamp": self.timestamp.isoformat(),
        }


def describe_callable(handler: Any) -> str:
    """Return a readable name for a handler, initializer or module."""
    if isinstance(handler, str):
        return handler
    name = getattr(handler, "__qualname__", None) or getattr(handler, "__name__", None)
    if name is None:
        name = getattr(handler, "name", None) or type(handler).__name__
    return str(name)
