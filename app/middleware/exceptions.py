from fastapi import Request
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException
from fastapi.exceptions import RequestValidationError
from fastapi.encoders import jsonable_encoder
from app.core.exceptions import AttemptError
from app.schemas.response import ErrorResponse, ErrorDetail
from datetime import datetime, timezone
import logging
import uuid

logger = logging.getLogger(__name__)

def _get_error_code(status_code: int) -> str:
    code_map = {
        400: "bad_request",
        401: "unauthorized",
        403: "forbidden",
        404: "not_found",
        409: "conflict",
        410: "gone",
        422: "validation_error",
        429: "too_many_requests",
        500: "internal_server_error",
        501: "not_implemented",
    }
    return code_map.get(status_code, f"http_{status_code}")

def _request_id(request: Request) -> str:
    return getattr(request.state, "request_id", None) or str(uuid.uuid4())

def _render(request: Request, status_code: int, detail: ErrorDetail, request_id: str) -> JSONResponse:
    error_response = ErrorResponse(
        error=detail,
        timestamp=datetime.now(timezone.utc).isoformat(),
        path=str(request.url),
        request_id=request_id
    )
    return JSONResponse(status_code=status_code, content=jsonable_encoder(error_response))

async def validation_exception_handler(request: Request, exc: RequestValidationError):
    request_id = _request_id(request)
    errors = jsonable_encoder(exc.errors())
    logger.warning(f"[{request_id}] Validation error: {errors}", extra={"request_id": request_id})
    return _render(
        request, 422,
        ErrorDetail(code="validation_error", message="Request validation failed", details={"validation_errors": errors}),
        request_id,
    )

async def attempt_exception_handler(request: Request, exc: AttemptError):
    request_id = _request_id(request)
    logger.warning(f"[{request_id}] {exc.code} ({exc.status_code}): {exc.detail}", extra={"request_id": request_id})
    return _render(
        request, exc.status_code,
        ErrorDetail(code=exc.code, message=str(exc.detail), details=exc.details),
        request_id,
    )

async def global_exception_handler(request: Request, exc: Exception):
    request_id = _request_id(request)

    if isinstance(exc, AttemptError):
        return await attempt_exception_handler(request, exc)

    if isinstance(exc, HTTPException):
        logger.warning(f"[{request_id}] HTTP {exc.status_code}: {exc.detail}", extra={"request_id": request_id})
        return _render(
            request, exc.status_code,
            ErrorDetail(
                code=_get_error_code(exc.status_code),
                message=exc.detail if isinstance(exc.detail, str) else str(exc.detail)
            ),
            request_id,
        )

    logger.error(f"[{request_id}] Unhandled exception: {exc}", exc_info=True, extra={"request_id": request_id})
    return _render(
        request, 500,
        ErrorDetail(
            code="internal_server_error",
            message="An unexpected error occurred",
            details={"error_type": type(exc).__name__}
        ),
        request_id,
    )
