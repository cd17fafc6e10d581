"""Built-in modules wired into the bootstrap sequence.

Available modules:
- PersistenceModule: Restore and auto-persist selected state keys
- DiagnosticsModule: Runtime toggle for diagnostic tracing
- UITrackingModule: UI interaction topics to telemetry
- ErrorTrackingModule: Isolated failures to telemetry
- SessionModule: Visibility and session duration telemetry
- FeatureReportModule: Feature availability report in state
"""

from __future__ import annotations

from ..bootstrap import Module
from .features import FEATURE_REPORT_KEY, DiagnosticsModule, FeatureReportModule
from .persistence import STORAGE_AVAILABLE_KEY, PersistenceModule
from .tracking import ErrorTrackingModule, SessionModule, UITrackingModule


def default_modules() -> list[Module]:
    """Return fresh instances of the built-in modules in their declared order."""
    return [
        PersistenceModule(),
        DiagnosticsModule(),
        UITrackingModule(),
        ErrorTrackingModule(),
        SessionModule(),
        FeatureReportModule(),
    ]


__all__ = [
    "DiagnosticsModule",
    "ErrorTrackingModule",
    "FEATURE_REPORT_KEY",
    "FeatureReportModule",
    "PersistenceModule",
    "STORAGE_AVAILABLE_KEY",
    "SessionModule",
    "UITrackingModule",
    "default_modules",
]
