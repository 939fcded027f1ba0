# /// script
# requires-python = ">=3.12"
# dependencies = []
# ///
"""Error taxonomy for the scoring engine.

Every error carries a machine-readable ``code`` so the HTTP layer can
render it through the shared error envelope.

  ValidationError     -- rejected before any state change
  RecordNotFound      -- a referenced record does not exist
  PersistenceError    -- a Record Store read/write failed; later steps skipped
  LogicInconsistency  -- state clamped to the nearest valid value and reported
"""

from __future__ import annotations

from typing import Any


class ScorebookError(Exception):
    """Base class for all scoring engine errors."""

    code = "SCOREBOOK_ERROR"

    def __init__(self, message: str, **context: Any) -> None:
        super().__init__(message)
        self.message = message
        self.context = context

    def to_dict(self) -> dict:
        return {"error_code": self.code, "message": self.message, **self.context}


class ValidationError(ScorebookError):
    """Invalid scorer input: result label, batting order, duplicate assignment."""

    code = "VALIDATION_ERROR"

    def __init__(self, message: str, parameter: str | None = None, **context: Any) -> None:
        if parameter is not None:
            context["parameter"] = parameter
        super().__init__(message, **context)
        self.parameter = parameter

    @classmethod
    def from_pydantic(cls, exc: Exception) -> "ValidationError":
        """Convert a pydantic ``ValidationError`` naming the first failing field."""
        errors = exc.errors() if hasattr(exc, "errors") else []
        if not errors:
            return cls(str(exc))
        first = errors[0]
        param = ".".join(str(p) for p in first.get("loc", ())) or None
        msg = first.get("msg", "invalid value")
        if param:
            msg = f"Parameter '{param}': {msg}"
        return cls(msg, parameter=param)


class RecordNotFound(ValidationError):
    code = "NOT_FOUND"


class PersistenceError(ScorebookError):
    """A Record Store operation failed.

    ``event_id`` and ``completed_steps`` are filled in by the batting event
    processor when the failure happens after the event row was written, so
    the caller knows a manual correction (or ``resume``) is needed.
    """

    code = "PERSISTENCE_ERROR"

    def __init__(
        self,
        message: str,
        event_id: str | None = None,
        completed_steps: tuple[int, ...] = (),
        **context: Any,
    ) -> None:
        super().__init__(message, **context)
        self.event_id = event_id
        self.completed_steps = tuple(completed_steps)

    def to_dict(self) -> dict:
        d = super().to_dict()
        if self.event_id is not None:
            d["event_id"] = self.event_id
            d["completed_steps"] = list(self.completed_steps)
        return d


class LogicInconsistency(ScorebookError):
    """An impossible state was clamped; reported as an anomaly, never raised
    across the processor boundary."""

    code = "LOGIC_INCONSISTENCY"
