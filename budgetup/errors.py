"""Error taxonomy shared by services and routes.

Every failure leaves the API as ``{"error": "<message>"}``. Domain code raises
:class:`BudgetUpError` subclasses; the handlers in :func:`register_error_handlers`
translate them, plain ``HTTPException``s, request validation failures and
anything unexpected into that shape.
"""
from __future__ import annotations

import logging

from fastapi import FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

logger = logging.getLogger(__name__)

class BudgetUpError(Exception):
    status_code = 500
    message = "internal server error"

    def __init__(self, message: str | None = None):
        if message is not None:
            self.message = message
        super().__init__(self.message)

class Unauthenticated(BudgetUpError):
    status_code = 401
    message = "not authenticated"

class InvalidInput(BudgetUpError):
    status_code = 400
    message = "invalid input"

class Forbidden(BudgetUpError):
    status_code = 403
    message = "forbidden"

class NotFound(BudgetUpError):
    status_code = 404
    message = "not found"

class Conflict(BudgetUpError):
    status_code = 409
    message = "conflict"

class Expired(BudgetUpError):
    status_code = 410
    message = "expired"

def error_response(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message})

def register_error_handlers(app: FastAPI) -> None:
    @app.exception_handler(BudgetUpError)
    async def _domain_error(request: Request, exc: BudgetUpError) -> JSONResponse:
        return error_response(exc.status_code, exc.message)

    @app.exception_handler(StarletteHTTPException)
    async def _http_error(request: Request, exc: HTTPException) -> JSONResponse:
        return error_response(exc.status_code, str(exc.detail))

    @app.exception_handler(RequestValidationError)
    async def _validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:
        logger.info("invalid input on %s %s: %s", request.method, request.url.path, exc.errors())
        return error_response(400, "invalid input")

    @app.exception_handler(Exception)
    async def _unexpected_error(request: Request, exc: Exception) -> JSONResponse:
        logger.exception("unhandled error on %s %s", request.method, request.url.path)
        return error_response(500, "internal server error")
