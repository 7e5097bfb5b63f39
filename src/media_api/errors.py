"""Error types raised by the media stores and the handlers mapping them to JSON responses."""

import logging
import traceback
from typing import Optional

import pydantic
from fastapi import Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)

# starlette names this constant differently across releases
HTTP_413_CONTENT_TOO_LARGE = 413


class MediaStoreError(Exception):
    """A storage backend (disk, network, remote API) failed."""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, error: str, details: Optional[str] = None):
        super().__init__(error)
        self.error = error
        self.details = details

    def to_dict(self) -> dict:
        body = {"error": self.error}
        if self.details:
            body["details"] = self.details
        return body


class UploadValidationError(MediaStoreError):
    """The upload is missing or malformed; the user can correct it."""

    status_code = status.HTTP_400_BAD_REQUEST


class UnsupportedMediaType(UploadValidationError):
    """Only image/* and video/* content is accepted."""


class PayloadTooLarge(UploadValidationError):
    status_code = HTTP_413_CONTENT_TOO_LARGE


class MediaNotFound(MediaStoreError):
    status_code = status.HTTP_404_NOT_FOUND


async def handle_media_errors(request: Request, exc: MediaStoreError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s (%s)", request.method, request.url.path, exc.error, exc.details)
    else:
        logger.info("%s %s rejected: %s", request.method, request.url.path, exc.error)
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


async def handle_request_validation_errors(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Malformed query/path/form input is a 400, matching the rest of the API."""
    details = "; ".join(
        f"{'.'.join(str(part) for part in err.get('loc', ()))}: {err.get('msg')}" for err in exc.errors()
    )
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"error": "Invalid request", "details": details},
    )


async def handle_pydantic_validation_errors(request: Request, exc: pydantic.ValidationError) -> JSONResponse:
    """A response or record failed validation on the server side."""
    logger.error("Validation error while handling %s %s: %s", request.method, request.url.path, exc)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"error": "Internal server error", "details": "invalid data produced by the server"},
    )


async def handle_broad_exceptions(request: Request, call_next):
    """Handle any exception that goes unhandled by a more specific exception handler."""
    try:
        return await call_next(request)
    except Exception:  # pylint: disable=broad-except
        logger.error("Unhandled error for %s %s\n%s", request.method, request.url.path, traceback.format_exc())
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"error": "Internal server error"},
        )
