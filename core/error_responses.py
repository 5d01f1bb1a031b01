"""
ERROR_RESPONSES.PY - Error payloads for the signals API

Usage:
    from core.error_responses import ErrorCode, make_error

    return JSONResponse(
        status_code=400,
        content=make_error(ErrorCode.INSUFFICIENT_SPINS, "At least 3 spins are required", "spins"),
    )

Payload:
    {
        "status": "error",
        "error": "operand must be within 0..36",
        "errors": [
            {"code": "POSITION_OUT_OF_RANGE", "message": "...", "field": "operand_a"}
        ],
        "request_id": "req-abc123def456",
        "timestamp": "2026-10-19T13:00:00+00:00"
    }

Keys whose value is None are left out.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Optional

POSITION_RANGE_MARKER = "must be within"


class ErrorCode:
    # Request validation
    VALIDATION_ERROR = "VALIDATION_ERROR"
    POSITION_OUT_OF_RANGE = "POSITION_OUT_OF_RANGE"

    # Engine preconditions
    NO_ACTIVE_TYPES = "NO_ACTIVE_TYPES"
    RECORD_ALREADY_CONFIRMED = "RECORD_ALREADY_CONFIRMED"
    INSUFFICIENT_SPINS = "INSUFFICIENT_SPINS"
    TOO_MANY_SPINS = "TOO_MANY_SPINS"

    INTERNAL_ERROR = "INTERNAL_ERROR"


def _without_none(values: Dict[str, Any]) -> Dict[str, Any]:
    return {k: v for k, v in values.items() if v is not None}


@dataclass
class ErrorDetail:
    code: str
    message: str
    field: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return _without_none({"code": self.code, "message": self.message, "field": self.field})


@dataclass
class ErrorResponse:
    errors: List[ErrorDetail] = field(default_factory=list)
    request_id: Optional[str] = None
    timestamp: Optional[str] = None

    @property
    def error(self) -> Optional[str]:
        """Headline message: the first error's."""
        return self.errors[0].message if self.errors else None

    def to_dict(self) -> Dict[str, Any]:
        payload = {
            "status": "error",
            "error": self.error,
            "errors": [e.to_dict() for e in self.errors] or None,
            "request_id": self.request_id,
            "timestamp": self.timestamp,
        }
        return _without_none(payload)


def make_errors(
    errors: Iterable[Dict[str, Optional[str]]],
    request_id: Optional[str] = None,
    include_timestamp: bool = True,
) -> Dict[str, Any]:
    """Payload for several errors given as {code, message, field?} dicts."""
    response = ErrorResponse(
        errors=[ErrorDetail(e["code"], e["message"], e.get("field")) for e in errors],
        request_id=request_id,
        timestamp=datetime.now(timezone.utc).isoformat() if include_timestamp else None,
    )
    return response.to_dict()


def make_error(
    code: str,
    message: str,
    field: Optional[str] = None,
    request_id: Optional[str] = None,
    include_timestamp: bool = True,
) -> Dict[str, Any]:
    """Payload for a single error."""
    return make_errors(
        [{"code": code, "message": message, "field": field}],
        request_id=request_id,
        include_timestamp=include_timestamp,
    )


def validation_errors(errors: Iterable[Dict[str, Any]]) -> List[Dict[str, Optional[str]]]:
    """
    Translate request validation errors into error dicts.

    The "body" location prefix is dropped, so fields read "operand_a" or
    "record.winning_position". Position range failures get their own code.
    """
    translated = []
    for error in errors:
        location = [str(part) for part in error.get("loc", ()) if part != "body"]
        message = str(error.get("msg", "Invalid value"))
        code = ErrorCode.POSITION_OUT_OF_RANGE if POSITION_RANGE_MARKER in message else ErrorCode.VALIDATION_ERROR
        translated.append({"code": code, "message": message, "field": ".".join(location) or None})
    return translated
