import enum
from typing import Any

from fastapi import FastAPI, HTTPException, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import IntegrityError
from starlette.exceptions import HTTPException as StarletteHTTPException

from foodcourt.integrations.errors import IntegrationError
from foodcourt.observability import log_event, log_exception


class ErrorCode(str, enum.Enum):
    BAD_REQUEST = "BAD_REQUEST"
    UNAUTHORIZED = "UNAUTHORIZED"
    FORBIDDEN = "FORBIDDEN"
    NOT_FOUND = "NOT_FOUND"
    METHOD_NOT_ALLOWED = "METHOD_NOT_ALLOWED"
    CONFLICT = "CONFLICT"
    VALIDATION_ERROR = "VALIDATION_ERROR"
    INVALID_CREDENTIALS = "INVALID_CREDENTIALS"
    MERCHANT_INACTIVE = "MERCHANT_INACTIVE"
    MENU_UNAVAILABLE = "MENU_UNAVAILABLE"
    ORDER_NOT_FOUND = "ORDER_NOT_FOUND"
    PAYMENT_GATEWAY_ERROR = "PAYMENT_GATEWAY_ERROR"
    SERVICE_UNAVAILABLE = "SERVICE_UNAVAILABLE"
    INTERNAL_SERVER_ERROR = "INTERNAL_SERVER_ERROR"


STATUS_ERROR_CODES: dict[int, ErrorCode] = {
    status.HTTP_400_BAD_REQUEST: ErrorCode.BAD_REQUEST,
    status.HTTP_401_UNAUTHORIZED: ErrorCode.UNAUTHORIZED,
    status.HTTP_403_FORBIDDEN: ErrorCode.FORBIDDEN,
    status.HTTP_404_NOT_FOUND: ErrorCode.NOT_FOUND,
    status.HTTP_405_METHOD_NOT_ALLOWED: ErrorCode.METHOD_NOT_ALLOWED,
    status.HTTP_409_CONFLICT: ErrorCode.CONFLICT,
    status.HTTP_502_BAD_GATEWAY: ErrorCode.PAYMENT_GATEWAY_ERROR,
    status.HTTP_503_SERVICE_UNAVAILABLE: ErrorCode.SERVICE_UNAVAILABLE,
}

GENERIC_ERROR_MESSAGE = "An unexpected error occurred"


def api_error(
    status_code: int,
    message: str,
    *,
    code: ErrorCode | None = None,
    headers: dict[str, str] | None = None,
    **extra: Any,
) -> HTTPException:
    """HTTPException whose detail carries an explicit error code and extra body fields."""
    detail: dict[str, Any] = {"message": message, **extra}
    if code is not None:
        detail["code"] = code.value
    return HTTPException(status_code=status_code, detail=detail, headers=headers)


def error_body(code: str, message: str, **extra: Any) -> dict[str, Any]:
    return {"success": False, "error": {"code": code, "message": message, **extra}}


def _code_for_status(status_code: int) -> str:
    if status_code in STATUS_ERROR_CODES:
        return STATUS_ERROR_CODES[status_code].value
    if status_code >= 500:
        return ErrorCode.INTERNAL_SERVER_ERROR.value
    return ErrorCode.BAD_REQUEST.value


async def http_exception_handler(_request: Request, exc: StarletteHTTPException) -> JSONResponse:
    code = _code_for_status(exc.status_code)
    extra: dict[str, Any] = {}
    if isinstance(exc.detail, dict):
        extra = dict(exc.detail)
        message = str(extra.pop("message", "Request failed"))
        code = str(extra.pop("code", code))
    else:
        message = str(exc.detail)
    return JSONResponse(
        status_code=exc.status_code,
        content=error_body(code, message, **extra),
        headers=getattr(exc, "headers", None),
    )


def _field_path(location: tuple | list) -> str:
    parts = [str(part) for part in location if part not in {"body", "query", "path"}]
    return ".".join(parts) or "body"


async def validation_exception_handler(
    _request: Request, exc: RequestValidationError
) -> JSONResponse:
    details = [
        {"field": _field_path(error.get("loc", ())), "message": error.get("msg", "Invalid value")}
        for error in exc.errors()
    ]
    if details:
        first = details[0]
        message = f"Invalid input: {first['field']}: {first['message']}"
    else:
        message = "Invalid input"
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content=error_body(ErrorCode.VALIDATION_ERROR.value, message, details=details),
    )


async def integrity_error_handler(request: Request, exc: IntegrityError) -> JSONResponse:
    log_event("integrity_conflict", path=request.url.path, error=type(exc.orig).__name__)
    return JSONResponse(
        status_code=status.HTTP_409_CONFLICT,
        content=error_body(ErrorCode.CONFLICT.value, "Resource conflicts with existing data"),
    )


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    log_exception("unhandled_exception", path=request.url.path, error=type(exc).__name__)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=error_body(ErrorCode.INTERNAL_SERVER_ERROR.value, GENERIC_ERROR_MESSAGE),
    )


def install_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(IntegrityError, integrity_error_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)


def gateway_http_exception(err: IntegrationError) -> HTTPException:
    return api_error(
        status.HTTP_502_BAD_GATEWAY,
        err.message,
        code=ErrorCode.PAYMENT_GATEWAY_ERROR,
        service=err.service,
        reason=err.code,
    )
