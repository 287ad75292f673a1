from __future__ import annotations

from datetime import datetime, timezone
from http import HTTPStatus
import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import IntegrityError, NoResultFound, SQLAlchemyError
from starlette.exceptions import HTTPException as StarletteHTTPException

from app.core.config import get_settings
from app.core.exceptions import AppError
from app.schemas.errors import ErrorResponse

logger = logging.getLogger(__name__)


def _reason(status_code: int) -> str:
    try:
        return HTTPStatus(status_code).phrase
    except ValueError:
        return "Error"


def error_response(
    request: Request,
    *,
    status_code: int,
    message: str | list[str],
    error: str | None = None,
    extra: dict | None = None,
    headers: dict[str, str] | None = None,
    model: type[ErrorResponse] = ErrorResponse,
) -> JSONResponse:
    body = model(
        statusCode=status_code,
        message=message,
        error=error or _reason(status_code),
        timestamp=datetime.now(timezone.utc).isoformat(),
        path=request.url.path,
        **(extra or {}),
    )
    return JSONResponse(status_code=status_code, content=body.model_dump(exclude_none=True), headers=headers)


def _log(request: Request, status_code: int, exc: Exception) -> None:
    if status_code >= 500:
        logger.error("%s %s - %s", request.method, request.url.path, status_code, exc_info=exc)
    else:
        logger.warning("%s %s - %s | %s", request.method, request.url.path, status_code, exc)


async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    _log(request, exc.status_code, exc)
    return error_response(
        request,
        status_code=exc.status_code,
        message=exc.message,
        error=exc.error,
        extra=exc.payload(),
        model=exc.response_model,
    )


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    _log(request, exc.status_code, exc)
    detail = exc.detail
    if isinstance(detail, str):
        message: str | list[str] = detail
    elif isinstance(detail, list):
        message = [str(item) for item in detail]
    else:
        message = _reason(exc.status_code)
    return error_response(
        request,
        status_code=exc.status_code,
        message=message,
        headers=getattr(exc, "headers", None),
    )


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    messages: list[str] = []
    for item in exc.errors():
        location = ".".join(str(part) for part in item.get("loc", ()) if part != "body")
        text = item.get("msg", "Invalid value")
        messages.append(f"{location}: {text}" if location else text)
    _log(request, 400, exc)
    return error_response(request, status_code=400, message=messages or ["Invalid request"])


async def sqlalchemy_error_handler(request: Request, exc: SQLAlchemyError) -> JSONResponse:
    if isinstance(exc, IntegrityError):
        status_code, message = 409, "Duplicate or conflicting record"
    elif isinstance(exc, NoResultFound):
        status_code, message = 404, "Record not found"
    else:
        status_code, message = 503, "Database operation failed"
    _log(request, status_code, exc)
    return error_response(request, status_code=status_code, message=message)


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    _log(request, 500, exc)
    message = str(exc) if get_settings().is_development else "Internal server error"
    return error_response(request, status_code=500, message=message)


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(AppError, app_error_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(SQLAlchemyError, sqlalchemy_error_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)
