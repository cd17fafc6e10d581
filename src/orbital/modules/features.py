"""Feature availability report and runtime diagnostics toggle."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from ..bootstrap import Module
from ..events import domain
from .persistence import STORAGE_AVAILABLE_KEY

if TYPE_CHECKING:
    from ..context import CoordinationContext

LOGGER = logging.getLogger(__name__)

FEATURE_REPORT_KEY = "feature:report"


class FeatureReportModule(Module):
    """Publish which optional capabilities this run can rely on.

    Must run after ``PersistenceModule`` so ``storage:available`` is set.
    """

    name = "feature_report"
    description = "Publish feature:report and log degraded features"

    def initialize(self, context: CoordinationContext) -> None:
        context.state.subscribe(FEATURE_REPORT_KEY, self._notice_degradation)
        report = {
            "persistent_storage": context.state.get(STORAGE_AVAILABLE_KEY) is True,
            "reduced_motion": not context.config["core"]["motion"],
        }
        context.state.set(FEATURE_REPORT_KEY, report)

    @staticmethod
    def _notice_degradation(report: dict[str, Any]) -> None:
        if not report.get("persistent_storage"):
            LOGGER.info(
                "Persistent storage unavailable. State will not survive restarts."
            )


class DiagnosticsModule(Module):
    """Flip diagnostic tracing on ``debug:toggle``."""

    name = "diagnostics"

    def initialize(self, context: CoordinationContext) -> None:
        context.bus.register(domain.DEBUG_TOGGLE, lambda _data: context.tracer.toggle())
