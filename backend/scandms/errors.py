# backend/scandms/errors.py
"""Domain exceptions raised by the ingestion, OCR and search services.

Each exception carries the HTTP status the API layer answers with, so the
services never import FastAPI. Per-page failures inside a batch are caught
by the pipeline and reported in its ``errors`` list instead of being raised.
"""
from fastapi import Request, status
from fastapi.responses import JSONResponse

from .utils.logging import api_logger


class ScanDMSError(Exception):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_message = "Internal error"

    def __init__(self, message: str | None = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class InvalidInputError(ScanDMSError):
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Invalid request"


class UnsupportedFileTypeError(InvalidInputError):
    default_message = "Unsupported file type"


class SearchQueryError(InvalidInputError):
    default_message = "Search query must be at least 2 characters long"


class PageOrderError(InvalidInputError):
    default_message = "Invalid page order payload"


class NotFoundError(ScanDMSError):
    status_code = status.HTTP_404_NOT_FOUND
    default_message = "Record not found"


class AccessDeniedError(ScanDMSError):
    status_code = status.HTTP_403_FORBIDDEN
    default_message = "Access denied to specified project"


class RasterizationError(ScanDMSError):
    status_code = 422
    default_message = "Failed to process PDF"


class OCRError(ScanDMSError):
    status_code = status.HTTP_502_BAD_GATEWAY
    default_message = "OCR processing failed"


class IndexMaintenanceError(ScanDMSError):
    default_message = "Search index maintenance failed"


async def scandms_exception_handler(request: Request, exc: ScanDMSError):
    log = api_logger.warning if exc.status_code < 500 else api_logger.error
    log("Request failed", extra={
        "path": request.url.path,
        "error_type": type(exc).__name__,
        "error_message": exc.message,
        "status_code": exc.status_code
    })
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.message})
