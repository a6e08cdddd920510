"""
Map ControlStock errors and framework errors to JSON bodies of the form
{"detail": <message>, "error": <code>}.
"""
import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from controlstock.exceptions import ControlStockError, NotFound, StoreIOError

logger = logging.getLogger(__name__)

_HTTP_CODES = {
    401: "not_authenticated",
    403: "authorization_denied",
    404: "not_found",
    405: "method_not_allowed",
}


def error_response(status_code: int, detail: str, code: str, headers=None, **extra) -> JSONResponse:
    body = {"detail": detail, "error": code}
    body.update(extra)
    return JSONResponse(status_code=status_code, content=body, headers=headers)


def _validation_message(exc: RequestValidationError) -> str:
    errors = exc.errors()
    if not errors:
        return "Validation error"
    first = errors[0]
    loc = ".".join(str(p) for p in first.get("loc", ()) if p not in ("body", "query", "path"))
    msg = first.get("msg", "invalid value")
    return f"{loc}: {msg}" if loc else msg


def register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(ControlStockError)
    async def controlstock_error_handler(request: Request, exc: ControlStockError) -> JSONResponse:
        if isinstance(exc, StoreIOError):
            logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
        elif isinstance(exc, NotFound):
            logger.warning("%s %s: %s", request.method, request.url.path, exc.message)
        extra = {}
        if getattr(exc, "field", None):
            extra["field"] = exc.field
        return error_response(exc.status_code, exc.message, exc.code, **extra)

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
        msg = exc.detail if isinstance(exc.detail, str) else "Request failed"
        code = _HTTP_CODES.get(exc.status_code, "http_error")
        return error_response(exc.status_code, msg, code, headers=getattr(exc, "headers", None))

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
        return error_response(422, _validation_message(exc), "validation_error")
