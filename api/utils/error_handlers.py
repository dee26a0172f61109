"""
Error handling for the web API. Every error response has the shape
``{"error": "<message>"}``.
"""
from fastapi import HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
import structlog

logger = structlog.get_logger()


class ApiError(Exception):
    """Error raised by route handlers and rendered as {error} JSON."""

    def __init__(self, message: str, status_code: int = 500):
        self.message = message
        self.status_code = status_code
        super().__init__(message)


class BadRequestError(ApiError):
    def __init__(self, message: str):
        super().__init__(message, 400)


class PayloadTooLargeError(ApiError):
    def __init__(self, message: str = "File too large"):
        super().__init__(message, 413)


class NotFoundError(ApiError):
    def __init__(self, message: str):
        super().__init__(message, 404)


async def api_exception_handler(request: Request, exc: ApiError):
    """Handle errors raised deliberately by the API."""
    log = logger.warning if exc.status_code < 500 else logger.error
    log(
        "API error",
        error_message=exc.message,
        path=request.url.path,
        method=request.method,
        status_code=exc.status_code,
    )
    return JSONResponse(status_code=exc.status_code, content={"error": exc.message})


async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Handle request validation failures."""
    logger.warning(
        "Validation error",
        error_message=str(exc),
        path=request.url.path,
        method=request.method,
    )
    message = "; ".join(
        f"{'.'.join(str(part) for part in error['loc'])}: {error['msg']}"
        for error in exc.errors()
    )
    return JSONResponse(status_code=400, content={"error": message or "Invalid request"})


async def http_exception_handler(request: Request, exc: HTTPException):
    """HTTP exceptions keep their status code."""
    logger.warning(
        "HTTP error",
        status_code=exc.status_code,
        detail=exc.detail,
        path=request.url.path,
        method=request.method,
    )
    return JSONResponse(status_code=exc.status_code, content={"error": str(exc.detail)})


async def general_exception_handler(request: Request, exc: Exception):
    """Anything unexpected becomes a 500."""
    logger.error(
        "Unhandled exception",
        error_type=type(exc).__name__,
        error_message=str(exc),
        path=request.url.path,
        method=request.method,
        exc_info=True,
    )
    return JSONResponse(status_code=500, content={"error": str(exc) or "Internal server error"})
