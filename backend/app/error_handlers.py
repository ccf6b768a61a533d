"""
Exception handlers and envelope responses for FastAPI.

Security:
- Request IDs are logged server-side for tracing but NOT exposed to clients
- Generic error messages for 500 errors to prevent information disclosure
"""

import structlog
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from portal.errors import PortalError
from portal.logging import get_logger
from portal.services import ServiceResult

logger = get_logger("backend.errors")

STATUS_BY_ERROR_CODE = {
    "not_found": 404,
    "conflict": 409,
    "malformed_data": 422,
    "upstream_error": 502,
    "upstream_timeout": 504,
    "cache_write_failure": 500,
    "internal_error": 500,
}


def _get_request_id() -> str:
    """Current request ID, for server-side logging only."""
    return structlog.contextvars.get_contextvars().get("request_id", "-")


def status_for(result: ServiceResult) -> int:
    if result.success:
        return 200
    return STATUS_BY_ERROR_CODE.get(result.error_code or "", 500)


def envelope_response(result: ServiceResult) -> JSONResponse:
    """Serialize a ServiceResult with the status mapped from its error code."""
    return JSONResponse(status_code=status_for(result), content=result.model_dump(mode="json"))


def register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        logger.warning(
            "http_exception",
            detail=exc.detail,
            status_code=exc.status_code,
            request_id=_get_request_id(),
        )
        return JSONResponse(
            status_code=exc.status_code,
            content=ServiceResult.fail(str(exc.detail), "http_error").model_dump(mode="json"),
        )

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        logger.warning("validation_error", errors=len(exc.errors()), request_id=_get_request_id())
        return JSONResponse(
            status_code=422,
            content=ServiceResult.fail("Validation error", "validation_error").model_dump(mode="json"),
        )

    @app.exception_handler(PortalError)
    async def portal_exception_handler(request: Request, exc: PortalError):
        logger.warning("portal_error", error_code=exc.code, request_id=_get_request_id())
        return envelope_response(ServiceResult.from_error(exc))

    @app.exception_handler(Exception)
    async def generic_exception_handler(request: Request, exc: Exception):
        # Full details stay server-side
        logger.exception(
            "unhandled_exception",
            error=str(exc),
            error_type=type(exc).__name__,
            request_id=_get_request_id(),
        )
        return JSONResponse(
            status_code=500,
            content=ServiceResult.fail("Internal server error").model_dump(mode="json"),
        )
