import structlog
from fastapi import Request
from fastapi.responses import JSONResponse

from ..errors import (
    EngineClosed,
    FieldAppError,
    InvalidTransition,
    LocationUnavailable,
    PermissionDenied,
    StorageFailure,
)


logger = structlog.get_logger(__name__)

STATUS_BY_ERROR = {
    PermissionDenied: 403,
    InvalidTransition: 409,
    LocationUnavailable: 503,
    StorageFailure: 507,
    EngineClosed: 503,
}


def status_for(e: FieldAppError) -> int:
    return next((code for kind, code in STATUS_BY_ERROR.items() if isinstance(e, kind)), 500)


async def field_app_error_handler(request: Request, e: FieldAppError) -> JSONResponse:
    status = status_for(e)
    logger.info("request_failed", code=e.code, status=status, detail=e.message)
    return JSONResponse(status_code=status, content={"detail": e.message, "code": e.code})
