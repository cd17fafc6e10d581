"""Event bus and well-known topics for decoupled module communication."""

from . import domain
from .bus import EventBus, Handler
from .domain import HandlerFailure

__all__ = ["EventBus", "Handler", "HandlerFailure", "domain"]
