"""
HTTP error mapping
Domain errors -> status codes with a {"success": false, "error": ...} body
"""

import logging
from typing import Dict, Type

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from treasury_app.domain.errors import (
    DataIntegrityError,
    FetchError,
    ForbiddenError,
    InsufficientBalanceError,
    InvalidInputError,
    InvalidStateError,
    LedgerError,
    NoDataError,
    NotFoundError,
)

logger = logging.getLogger(__name__)

STATUS_BY_ERROR: Dict[Type[LedgerError], int] = {
    InvalidInputError: 400,
    InsufficientBalanceError: 400,
    InvalidStateError: 400,
    ForbiddenError: 403,
    NotFoundError: 404,
    DataIntegrityError: 500,
    FetchError: 502,
    NoDataError: 503,
}


def status_for(exc: LedgerError) -> int:
    for error_type in type(exc).__mro__:
        if error_type in STATUS_BY_ERROR:
            return STATUS_BY_ERROR[error_type]
    return 500


def error_response(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"success": False, "error": message})


async def ledger_error_handler(request: Request, exc: LedgerError) -> JSONResponse:
    status_code = status_for(exc)
    if status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc)
    else:
        logger.warning("%s %s rejected (%s): %s", request.method, request.url.path, status_code, exc)
    return error_response(status_code, exc.message)


async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    logger.warning("Invalid request body for %s: %s", request.url.path, exc.errors())
    return error_response(400, "invalid request body")


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(LedgerError, ledger_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)
