"""
cadence.errors
==============

Structured failures raised by the lifecycle engine.

Every error carries a machine-readable ``kind``, a human ``message`` and
the ``field`` that caused it (when one field is to blame).  The HTTP
layer turns them into JSON with :pymeth:`LifecycleError.to_dict`.

Unknown ids are *not* part of this hierarchy: stores raise
:class:`KeyError`, exactly like a dictionary lookup would.
"""

from __future__ import annotations

from typing import Any, Dict, Optional


class LifecycleError(ValueError):
    """Base class for every rejected lifecycle request."""

    kind = "lifecycle_error"

    def __init__(self, message: str, field: Optional[str] = None) -> None:
        super().__init__(message)
        self.message = message
        self.field = field

    def to_dict(self) -> Dict[str, Any]:
        return {"kind": self.kind, "message": self.message, "field": self.field}


class InvalidTransition(LifecycleError):
    """The requested edge is not in the status table."""

    kind = "invalid_transition"


class TransitionDenied(LifecycleError):
    """
    The edge exists but the guard refused it for the given dates.

    ``forceable`` is *True* when the same request would pass with
    ``force=True`` and a reason.
    """

    kind = "transition_denied"

    def __init__(self, message: str, field: Optional[str] = None, forceable: bool = False) -> None:
        super().__init__(message, field)
        self.forceable = forceable

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data["forceable"] = self.forceable
        return data


class ActiveConflict(LifecycleError):
    """Another entity of the family already holds the active status."""

    kind = "active_conflict"


class DateOverlap(LifecycleError):
    """A date window collides with a sibling window."""

    kind = "date_overlap"


class StaleState(LifecycleError):
    """The entity changed between read and write."""

    kind = "stale_state"


class ValidationError(LifecycleError):
    """Malformed request, rejected before any guard runs."""

    kind = "validation_error"


__all__ = [
    "LifecycleError",
    "InvalidTransition",
    "TransitionDenied",
    "ActiveConflict",
    "DateOverlap",
    "StaleState",
    "ValidationError",
]
