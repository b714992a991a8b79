import logging
from typing import Optional

from fastapi import Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)


class PipelineError(Exception):
    """Base class for errors raised by the ingestion and compression pipeline."""

    status_code: int = 500

    def __init__(self, message: str, *, image_id: Optional[str] = None, cause: Optional[BaseException] = None):
        super().__init__(message)
        self.message = message
        self.image_id = image_id
        self.cause = cause


class ValidationError(PipelineError):
    """Bad client input."""

    status_code = 400


class NotFoundError(PipelineError):
    status_code = 404


class StorageError(PipelineError):
    """Local I/O failure; fatal to the request."""

    status_code = 500


class BlobNotFoundError(StorageError):
    pass


class GatewayError(PipelineError):
    """Remote compression unavailable.

    Recovered by the compression service through the fallback copy and
    never turned into an HTTP response.
    """

    status_code = 502


def create_error_response(error_message: str) -> dict:
    """Create a standardized error response"""
    return {"error": error_message}


async def pipeline_exception_handler(request: Request, exc: PipelineError) -> JSONResponse:
    """Map pipeline errors to their HTTP status with a short message."""
    cause = f" (cause: {exc.cause!r})" if exc.cause is not None else ""
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed for image {exc.image_id}: {exc.message}{cause}")
    else:
        logger.warning(f"{request.method} {request.url.path} rejected for image {exc.image_id}: {exc.message}")
    message = exc.message
    if isinstance(exc, StorageError):
        # storage messages carry local paths; keep them server side
        if request.url.path.rstrip("/").endswith("/compress"):
            message = "Failed to compress image"
        else:
            message = "Failed to process uploaded file"
    return JSONResponse(status_code=exc.status_code, content=create_error_response(message))


async def request_validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Malformed request bodies are client errors with a flat {error} body."""
    logger.warning(f"{request.method} {request.url.path} invalid request: {exc.errors()}")
    if request.url.path.rstrip("/").endswith("/compress"):
        message = "Image ID is required"
    else:
        message = "Invalid request"
    return JSONResponse(status_code=400, content=create_error_response(message))
