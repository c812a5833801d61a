import logging
import uuid
import traceback
from fastapi import FastAPI, Request, HTTPException
from fastapi.responses import JSONResponse
from fastapi.exceptions import RequestValidationError

from app.core.errors import AvailabilityError, ConflictError, InventoryError

log = logging.getLogger(__name__)


# Generate a clean request id for every response
def _rid():
    """Generates a unique request ID for tracing."""
    return uuid.uuid4().hex


# ----------- Exception Handlers (called by FastAPI) -----------

def inventory_error_handler(request: Request, exc: InventoryError):
    """Handles domain errors raised by the services (validation, availability, not found...)."""
    body = {
        "success": False,
        "error": exc.message,
        "code": exc.code,
        "request_id": _rid(),
    }
    if isinstance(exc, AvailabilityError):
        body["shortfall"] = exc.shortfall
        body["items"] = exc.item_names
    if isinstance(exc, ConflictError):
        body["kind"] = exc.kind
    return JSONResponse(status_code=exc.status_code, content=body)


def http_exception_handler(request: Request, exc: HTTPException):
    """Handles exceptions raised by HTTPException (e.g., 404, 400)."""
    body = {
        "success": False,
        "error": exc.detail,
        "code": "http_error",
        "request_id": _rid(),
    }
    return JSONResponse(status_code=exc.status_code, content=body)


def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Handles Pydantic validation errors (422 Unprocessable Entity)."""
    body = {
        "success": False,
        "error": "Invalid input data",
        "code": "validation_error",
        "details": [{"loc": list(e.get("loc", ())), "msg": e.get("msg")} for e in exc.errors()],
        "request_id": _rid(),
    }
    return JSONResponse(status_code=422, content=body)


def generic_exception_handler(request: Request, exc: Exception):
    """Handles all unhandled exceptions (500 Internal Server Error)."""
    # Full traceback stays in the server log, never in the response
    log.error(f"Unhandled exception on path: {request.url.path}\n{traceback.format_exc()}")

    body = {
        "success": False,
        "error": "Internal Server Error",
        "code": "server_error",
        "request_id": _rid(),
    }
    return JSONResponse(status_code=500, content=body)


# ----------- Registration Function -----------

def setup_exception_handlers(app: FastAPI):
    """Registers all custom exception handlers with the FastAPI application."""

    app.add_exception_handler(InventoryError, inventory_error_handler)
    app.add_exception_handler(HTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(Exception, generic_exception_handler)

    return app
