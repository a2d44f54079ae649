from __future__ import annotations

import logging
from http import HTTPStatus
from typing import Any, cast

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)


class PalateError(Exception):
    """Base class for predictable failures surfaced to API callers."""

    code: str = "ERROR"
    status_code: int = HTTPStatus.BAD_REQUEST
    default_message: str = "Request could not be completed"

    def __init__(self, message: str | None = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)


class NotFoundError(PalateError):
    code = "NOT_FOUND"
    status_code = HTTPStatus.NOT_FOUND
    default_message = "Lobby not found"


class InvalidStateError(PalateError):
    code = "INVALID_STATE"
    status_code = HTTPStatus.CONFLICT
    default_message = "Operation is not allowed in the current lobby state"


class UnauthorizedError(PalateError):
    code = "UNAUTHORIZED"
    status_code = HTTPStatus.FORBIDDEN
    default_message = "You are not allowed to do that"


class AuthenticationRequiredError(UnauthorizedError):
    code = "AUTHENTICATION_REQUIRED"
    status_code = HTTPStatus.UNAUTHORIZED
    default_message = "Authentication required"


class ValidationError(PalateError):
    code = "VALIDATION_ERROR"
    status_code = HTTPStatus.BAD_REQUEST
    default_message = "Invalid request"


class PreconditionFailedError(PalateError):
    code = "PRECONDITION_FAILED"
    status_code = HTTPStatus.PRECONDITION_FAILED
    default_message = "Preconditions for this operation are not met"


class ConflictError(PalateError):
    code = "CONFLICT"
    status_code = HTTPStatus.CONFLICT
    default_message = "Request conflicts with existing state"


def _error_payload(code: str, message: str) -> dict[str, Any]:
    return {"error": {"code": code, "message": message}}


async def handle_palate_error(_: Request, exc: PalateError) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content=_error_payload(exc.code, exc.message),
    )


async def handle_unexpected_error(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(
        status_code=HTTPStatus.INTERNAL_SERVER_ERROR,
        content=_error_payload("INTERNAL_ERROR", "An unexpected internal error occurred"),
    )


def register_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(PalateError, cast(Any, handle_palate_error))
    app.add_exception_handler(Exception, handle_unexpected_error)
