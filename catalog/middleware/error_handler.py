import logging
import traceback
from fastapi import Request, status
from fastapi.responses import JSONResponse
from fastapi.exceptions import RequestValidationError
from catalog.schemas.common import error_response
from catalog.utils.exceptions import AppException, ErrorCode

logger = logging.getLogger(__name__)


async def app_exception_handler(request: Request, exc: AppException) -> JSONResponse:
    """Handle all AppException subclasses (our custom exceptions)."""
    detail = exc.detail
    error = detail.get("error", {"code": ErrorCode.INTERNAL_SERVER_ERROR})
    if exc.status_code >= 500:
        logger.error(f"{error.get('code')} on {request.method} {request.url}: {detail.get('message')}")
    return JSONResponse(
        status_code=exc.status_code,
        content=error_response(
            detail.get("message", "An error occurred"),
            error.get("code"),
            error.get("details"),
            error.get("field"),
        )
    )


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """
    Handle request validation errors as 400.
    Missing, empty and unparseable fields are listed in the message and in details.
    """
    details = []
    for error in exc.errors():
        # loc is a tuple like ("body", "make") or ("path", "vehicle_id")
        loc = error.get("loc", [])
        field = ".".join(str(l) for l in loc if l not in ("body", "path", "query")) if loc else "unknown"
        details.append({
            "field": field or "body",
            "message": error.get("msg", "Invalid value"),
        })

    fields = sorted({d["field"] for d in details})
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content=error_response(
            f"Missing or invalid fields: {', '.join(fields)}",
            ErrorCode.VALIDATION_ERROR,
            details,
        )
    )


async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """
    Catch-all handler for unexpected exceptions.
    Logs the full traceback, returns a safe 500 response.
    """
    logger.error(
        f"Unhandled exception on {request.method} {request.url}\n"
        f"{traceback.format_exc()}"
    )
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=error_response(
            "An unexpected error occurred. Please try again later.",
            ErrorCode.INTERNAL_SERVER_ERROR,
        )
    )
