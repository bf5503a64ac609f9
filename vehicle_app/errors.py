import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException


MSG_MALFORMED_JSON = "Request body must be valid JSON"
MSG_VALIDATION_FAILED = "Validation failed"
MSG_INTERNAL_ERROR = "Internal Server Error"

logger = logging.getLogger(__name__)


class MalformedBodyError(Exception):
    """The request body could not be decoded as JSON."""


class PayloadValidationError(Exception):
    """The request body was decoded but failed field validation."""

    def __init__(self, details: dict[str, list[str]]):
        super().__init__(MSG_VALIDATION_FAILED)
        self.details = details


async def malformed_body_handler(request: Request, exc: MalformedBodyError) -> JSONResponse:
    logger.warning(f"Malformed JSON body on {request.method} {request.url.path}")
    return JSONResponse(status_code=400, content={"error": MSG_MALFORMED_JSON})


async def payload_validation_handler(
    request: Request, exc: PayloadValidationError
) -> JSONResponse:
    logger.warning(f"Validation failed for fields: {sorted(exc.details)}")
    return JSONResponse(
        status_code=422,
        content={"error": MSG_VALIDATION_FAILED, "details": exc.details},
    )


async def http_error_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    # every HTTP error shares the {"error": ...} envelope
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": exc.detail},
        headers=getattr(exc, "headers", None),
    )


async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.error(f"Unhandled error on {request.method} {request.url.path}", exc_info=exc)
    return JSONResponse(status_code=500, content={"error": MSG_INTERNAL_ERROR})


def register_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(MalformedBodyError, malformed_body_handler)
    app.add_exception_handler(PayloadValidationError, payload_validation_handler)
    app.add_exception_handler(StarletteHTTPException, http_error_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)
