# /// script
# requires-python = ">=3.12"
# dependencies = []
# ///
"""Structured API response helpers.

Every endpoint answers with the same top-level structure:

  Success:
    {
      "status": "ok",
      "operation": "<operation_name>",
      "data": { ... }
    }

  Error:
    {
      "status": "error",
      "operation": "<operation_name>",
      "error_code": "<ERROR_CODE>",
      "message": "Human-readable error description"
    }

Error bodies may carry extra context from the raised error (the failing
``parameter``, or ``event_id`` / ``completed_steps`` for a plate appearance
that was stored but not fully applied).
"""

from typing import Any

from errors import PersistenceError, RecordNotFound, ScorebookError

HTTP_STATUS: dict[type, int] = {
    RecordNotFound: 404,
    PersistenceError: 502,
}


def success_response(operation: str, data: Any) -> dict[str, Any]:
    return {
        "status": "ok",
        "operation": operation,
        "data": data,
    }


def error_response(operation: str, error_code: str, message: str, **context: Any) -> dict[str, Any]:
    body = {
        "status": "error",
        "operation": operation,
        "error_code": error_code,
        "message": message,
    }
    body.update({k: v for k, v in context.items() if k not in body})
    return body


def error_from_exception(operation: str, exc: ScorebookError) -> tuple[dict[str, Any], int]:
    """Build the error body and HTTP status for a scoring engine error."""
    details = exc.to_dict()
    details.pop("error_code", None)
    details.pop("message", None)
    status = 400
    for cls, code in HTTP_STATUS.items():
        if isinstance(exc, cls):
            status = code
            break
    return error_response(operation, exc.code, exc.message, **details), status
