"""Mapping from storage/export failures to HTTP errors."""

from fastapi import HTTPException

from murmur.exceptions import (
    EncodingUnsupportedError,
    ExportBusyError,
    ExportCancelledError,
    ExportError,
    ObjectNotFoundError,
    PlaybackError,
    StorageError,
    SurfaceUnavailableError,
    UploadTooLargeError,
)

_STATUS_CODES: list[tuple[type[Exception], int]] = [
    (ObjectNotFoundError, 404),
    (UploadTooLargeError, 413),
    (StorageError, 502),
    (ExportBusyError, 409),
    (PlaybackError, 422),
    (EncodingUnsupportedError, 503),
    (SurfaceUnavailableError, 503),
    (ExportCancelledError, 409),
    (ExportError, 500),
]


def http_error(exc: Exception) -> HTTPException:
    """HTTPException carrying the user-facing message of a storage or export failure."""
    for exc_type, status_code in _STATUS_CODES:
        if isinstance(exc, exc_type):
            return HTTPException(status_code=status_code, detail=str(exc))
    return HTTPException(status_code=500, detail="Unexpected error")
