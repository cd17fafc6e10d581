"""Domain exception hierarchy for the Orbital coordination core."""

from __future__ import annotations


class OrbitalError(RuntimeError):
    """Base class for all domain-level coordination errors."""


class FatalError(OrbitalError):
    """Raised for failures that must not be isolated by handler dispatch."""


class BootstrapError(FatalError):
    """Raised when the lifecycle signal cannot be fired safely."""


class ConfigValidationError(OrbitalError):
    """Raised when configuration cannot be validated safely."""


class PersistenceError(OrbitalError):
    """Raised when the persistent key-value store is misconfigured."""
