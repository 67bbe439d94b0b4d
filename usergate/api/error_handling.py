"""Exception handlers that render every failure in the {success, message, errors} envelope."""

import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from usergate.core.config import get_settings
from usergate.schemas.common import Envelope, ErrorDetail
from usergate.services.errors import UsergateError

logger = logging.getLogger(__name__)

_LOCATION_PREFIXES = ("body", "query", "path", "header")


def _error_response(
    status_code: int,
    message: str,
    errors: list[ErrorDetail] | None = None,
    headers: dict[str, str] | None = None,
) -> JSONResponse:
    envelope = Envelope(success=False, message=message, errors=errors)
    return JSONResponse(
        status_code=status_code,
        content=envelope.model_dump(exclude_none=True),
        headers=headers,
    )


def _validation_details(exc: RequestValidationError) -> list[ErrorDetail]:
    details = []
    for err in exc.errors():
        loc = [str(p) for p in err.get("loc", ()) if p not in _LOCATION_PREFIXES]
        details.append(ErrorDetail(field=".".join(loc) or None, message=err.get("msg", "Invalid value")))
    return details


def register_exception_handlers(app: FastAPI) -> None:
    """Install handlers for service errors, request validation, HTTP errors and unexpected failures."""

    @app.exception_handler(UsergateError)
    async def handle_usergate_error(request: Request, exc: UsergateError) -> JSONResponse:
        log_fn = logger.error if exc.status_code >= 500 else logger.warning
        log_fn(
            "Request failed",
            extra={
                "path": request.url.path,
                "method": request.method,
                "status_code": exc.status_code,
                "error_type": type(exc).__name__,
            },
        )
        headers = {"WWW-Authenticate": "Bearer"} if exc.status_code == 401 else None
        return _error_response(exc.status_code, exc.message, exc.errors, headers)

    @app.exception_handler(RequestValidationError)
    async def handle_validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:
        details = _validation_details(exc)
        logger.warning(
            "Request validation failed",
            extra={"path": request.url.path, "method": request.method, "error_count": len(details)},
        )
        return _error_response(400, "Validation failed", details)

    @app.exception_handler(StarletteHTTPException)
    async def handle_http_exception(request: Request, exc: StarletteHTTPException) -> JSONResponse:
        return _error_response(exc.status_code, str(exc.detail), headers=getattr(exc, "headers", None))

    @app.exception_handler(Exception)
    async def handle_unexpected(request: Request, exc: Exception) -> JSONResponse:
        logger.exception(
            "Unhandled error",
            extra={"path": request.url.path, "method": request.method},
        )
        errors = None
        if get_settings().APP_ENV == "dev":
            errors = [ErrorDetail(message=str(exc) or type(exc).__name__)]
        return _error_response(500, "Something went wrong!", errors)
