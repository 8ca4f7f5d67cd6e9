"""Exception types raised by skytrail.

All errors derive from ``SkytrailError`` so callers can catch the whole family
at the session boundary. Each also derives from the closest builtin so code
that already handles ``OSError``/``ValueError`` keeps working.

Errors are raised while loading data or building configuration, before any
animation starts. Per-frame computation never raises one of these.
"""


class SkytrailError(Exception):
    """Base class for all skytrail errors."""


class LoadError(SkytrailError, OSError):
    """A trajectory source could not be fetched or parsed."""

    def __init__(self, source: str, reason: str) -> None:
        self.source = source
        self.reason = reason
        super().__init__(f"Failed to load {source}: {reason}")

    def __str__(self) -> str:
        return f"Failed to load {self.source}: {self.reason}"


class ValidationError(SkytrailError, ValueError):
    """Trajectory data violates the path/timestamp invariants."""


class ConfigurationError(SkytrailError, ValueError):
    """Session configuration is unusable (e.g. non-positive loop length)."""
