# query_gateway/logging/exception_handlers.py
"""App-level exception handlers; each stores a request log row and answers with JSON."""

import logging
import traceback

from fastapi import HTTPException, Request
from fastapi.exceptions import RequestValidationError, ResponseValidationError
from fastapi.responses import JSONResponse

from query_gateway.logging.recorder import recorder_for, safe_json_dumps

logger = logging.getLogger(__name__)


def _jsonable_errors(error):
    if isinstance(error, dict):
        return {key: _jsonable_errors(value) for key, value in error.items()}
    if isinstance(error, (list, tuple)):
        return [_jsonable_errors(item) for item in error]
    if isinstance(error, (str, int, float, bool)) or error is None:
        return error
    return str(error)


async def general_exception_handler(request: Request, exc: Exception):
    """Handle all unhandled exceptions and log them to database"""
    logger.exception(f"Unhandled error on {request.method} {request.url.path}")
    recorder_for(request).record(
        request,
        status_code=500,
        response_body=safe_json_dumps(
            {"error": str(exc), "type": type(exc).__name__, "traceback": traceback.format_exc()}
        ),
    )
    return JSONResponse(status_code=500, content={"detail": "Internal Server Error"})


async def response_validation_exception_handler(request: Request, exc: ResponseValidationError):
    logger.error(f"Response validation failed on {request.url.path}: {exc.errors()}")
    recorder_for(request).record(request, status_code=500, response_body=safe_json_dumps(exc.errors()))
    return JSONResponse(
        status_code=500,
        content={"detail": "Internal Server Error: Response validation failed."},
    )


async def request_validation_exception_handler(request: Request, exc: RequestValidationError):
    """Handle request validation errors"""
    safe_errors = _jsonable_errors(exc.errors())
    recorder_for(request).record(request, status_code=422, response_body=safe_json_dumps(safe_errors))
    return JSONResponse(status_code=422, content={"detail": safe_errors})


async def http_exception_handler(request: Request, exc: HTTPException):
    """Handle HTTP exceptions and log 4xx/5xx errors"""
    if exc.status_code >= 400:
        recorder_for(request).record(
            request,
            status_code=exc.status_code,
            response_body=safe_json_dumps({"detail": exc.detail, "headers": getattr(exc, "headers", None)}),
        )
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.detail},
        headers=getattr(exc, "headers", None),
    )
