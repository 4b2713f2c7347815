"""
Response envelope shared by every order endpoint.

{"success": bool, "data": ..., "error": {"code", "message"} | null,
 "meta": {"timestamp", "request_id"}}
"""

from datetime import datetime
from typing import Any
from uuid import uuid4

from pydantic import BaseModel, Field
from starlette.requests import Request

from utils.timezone import now_utc


class ErrorCodes:
    """Machine-readable codes. api/errors.py pairs each with its HTTP status."""

    # Caller identity
    NOT_AUTHENTICATED = "NOT_AUTHENTICATED"
    ACTION_NOT_ALLOWED = "ACTION_NOT_ALLOWED"

    # Lookup and input
    NOT_FOUND = "NOT_FOUND"
    VALIDATION_ERROR = "VALIDATION_ERROR"
    INVALID_REQUEST = "INVALID_REQUEST"

    # Order lifecycle
    INVALID_STATUS_TRANSITION = "INVALID_STATUS_TRANSITION"
    ORDER_ALREADY_FINALIZED = "ORDER_ALREADY_FINALIZED"
    ORDER_CANNOT_FINALIZE = "ORDER_CANNOT_FINALIZE"

    INTERNAL_ERROR = "INTERNAL_ERROR"


class APIError(BaseModel):
    code: str = Field(..., description="One of ErrorCodes")
    message: str = Field(..., description="Human-readable detail")


class APIMeta(BaseModel):
    timestamp: datetime = Field(..., description="Server time, UTC")
    request_id: str = Field(..., description="Echoed in the X-Request-ID header")


class APIResponse(BaseModel):
    """Envelope returned for successes and failures alike."""

    success: bool
    data: Any | None = None
    error: APIError | None = None
    meta: APIMeta


def success_response(data: Any, request_id: str | None = None) -> APIResponse:
    return APIResponse(success=True, data=data, meta=_meta(request_id))


def error_response(code: str, message: str, request_id: str | None = None) -> APIResponse:
    return APIResponse(success=False, error=APIError(code=code, message=message), meta=_meta(request_id))


def request_id_of(request: Request) -> str | None:
    """Id assigned by RequestIDMiddleware, if it ran."""
    return getattr(request.state, "request_id", None)


def respond(request: Request, data: Any) -> dict:
    """
    JSON-ready success envelope for a route.

    Pydantic models are dumped in JSON mode; lists of them item by item.
    """
    if isinstance(data, BaseModel):
        data = data.model_dump(mode="json")
    elif isinstance(data, list):
        data = [item.model_dump(mode="json") if isinstance(item, BaseModel) else item for item in data]
    return success_response(data, request_id_of(request)).model_dump(mode="json")


def _meta(request_id: str | None) -> APIMeta:
    return APIMeta(timestamp=now_utc(), request_id=request_id or str(uuid4()))
