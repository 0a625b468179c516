"""Exceptions raised by the storage and export layers.

Routers translate these into HTTP responses; services never build responses themselves.
"""


class StorageError(Exception):
    """Object storage read or write failed."""


class ObjectNotFoundError(StorageError):
    """The requested storage path does not exist."""


class UploadTooLargeError(StorageError):
    """The uploaded blob exceeds the configured size limit."""


class ExportError(Exception):
    """Rendering or encoding an export artifact failed."""


class SurfaceUnavailableError(ExportError):
    """The raster surface could not be allocated."""


class EncodingUnsupportedError(ExportError):
    """The target encoding is not available in this runtime."""


class PlaybackError(ExportError):
    """The audio track could not be read for muxing."""


class ExportCancelledError(ExportError):
    """The export was cancelled through its token."""


class ExportTimeoutError(ExportError):
    """The export exceeded its wall-clock budget."""


class ExportBusyError(ExportError):
    """An export for the same message is already running."""
