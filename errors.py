"""Expense error types and their HTTP mapping"""
import logging
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette import status

logger = logging.getLogger(__name__)


class ExpenseError(Exception):
    """Base class for errors raised by the expense core."""
    status_code = status.HTTP_400_BAD_REQUEST
    message = "Invalid request"

    def __init__(self, message: str = None):
        self.message = message or self.message
        super().__init__(self.message)


class ExpenseValidationError(ExpenseError):
    """A field in the payload failed validation. Never reaches the store."""


class InvalidTitle(ExpenseValidationError):
    message = "Title must be at least 3 characters long"


class InvalidAmount(ExpenseValidationError):
    message = "Amount must be a number greater than 0"


class InvalidDate(ExpenseValidationError):
    message = "Invalid date format"


class MalformedId(ExpenseError):
    message = "Invalid expense id"


class ExpenseNotFound(ExpenseError):
    status_code = status.HTTP_404_NOT_FOUND
    message = "Expense not found"


def _error_response(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message})


async def expense_error_handler(request: Request, exc: ExpenseError):
    logger.warning(f"{request.method} {request.url.path} rejected: {exc.message}")
    return _error_response(exc.status_code, exc.message)


async def request_validation_handler(request: Request, exc: RequestValidationError):
    # Only reachable when the body is not a JSON object
    logger.warning(f"{request.method} {request.url.path} rejected: malformed body {exc.errors()}")
    return _error_response(status.HTTP_400_BAD_REQUEST, "Request body must be a JSON object")


async def connection_error_handler(request: Request, exc: ConnectionError):
    logger.error(f"Database error on {request.method} {request.url.path}: {exc}")
    return _error_response(status.HTTP_503_SERVICE_UNAVAILABLE, "Database service not available.")


async def server_error_handler(request: Request, exc: Exception):
    logger.exception(f"Unhandled error on {request.method} {request.url.path}")
    return _error_response(status.HTTP_500_INTERNAL_SERVER_ERROR, "Internal server error")


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(ExpenseError, expense_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(ConnectionError, connection_error_handler)
    app.add_exception_handler(Exception, server_error_handler)
