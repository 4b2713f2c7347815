"""Global exception handlers for FastAPI."""

import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from starlette.responses import JSONResponse

from api.base import error_response, request_id_of, ErrorCodes
from core.exceptions import (
    AlreadyFinalizedError,
    CannotFinalizeError,
    InvalidTransitionError,
    NotFoundError,
    OrderError,
    OrderValidationError,
    UnauthorizedActionError,
)

logger = logging.getLogger(__name__)

# Most specific first; the first isinstance match wins
ERROR_MAP: list[tuple[type[OrderError], int, str]] = [
    (NotFoundError, 404, ErrorCodes.NOT_FOUND),
    (InvalidTransitionError, 409, ErrorCodes.INVALID_STATUS_TRANSITION),
    (UnauthorizedActionError, 403, ErrorCodes.ACTION_NOT_ALLOWED),
    (OrderValidationError, 400, ErrorCodes.INVALID_REQUEST),
    (AlreadyFinalizedError, 409, ErrorCodes.ORDER_ALREADY_FINALIZED),
    (CannotFinalizeError, 422, ErrorCodes.ORDER_CANNOT_FINALIZE),
]


def _json_error(request: Request, status_code: int, code: str, message: str) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=error_response(code, message, request_id_of(request)).model_dump(mode="json"),
    )


def register_error_handlers(app: FastAPI) -> None:
    """Register global exception handlers on the app."""

    @app.exception_handler(OrderError)
    async def order_error_handler(request: Request, exc: OrderError):
        for exc_type, status_code, code in ERROR_MAP:
            if isinstance(exc, exc_type):
                return _json_error(request, status_code, code, str(exc))

        logger.exception("Unmapped order error")
        return _json_error(request, 500, ErrorCodes.INTERNAL_ERROR, "An internal error occurred")

    @app.exception_handler(ValueError)
    async def value_error_handler(request: Request, exc: ValueError):
        return _json_error(request, 400, ErrorCodes.INVALID_REQUEST, str(exc))

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError):
        return _json_error(request, 422, ErrorCodes.VALIDATION_ERROR, str(exc.errors()))

    @app.exception_handler(Exception)
    async def unhandled_error_handler(request: Request, exc: Exception):
        logger.exception("Unhandled exception")
        return _json_error(request, 500, ErrorCodes.INTERNAL_ERROR, "An internal error occurred")
