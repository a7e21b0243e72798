"""Error taxonomy for the photo pipeline.

InvalidAlbumUrlError, NetworkError, ParseError and EmptyAlbumError reach the
caller and drive the HTTP status. CacheError and AlertDispatchError are
absorbed inside the pipeline and only ever logged.
"""


class PhotoFrameError(Exception):
    """Base class for all pipeline errors."""

    error_type: str = "unknown_error"
    status_code: int = 500

    def __init__(self, message: str, *, error_type: str | None = None):
        super().__init__(message)
        self.message = message
        if error_type:
            self.error_type = error_type


class NetworkError(PhotoFrameError):
    """Album page could not be fetched (transport failure or non-success status)."""

    error_type = "network_error"
    status_code = 502

    def __init__(
        self,
        message: str,
        *,
        error_type: str | None = None,
        upstream_status: int | None = None,
    ):
        super().__init__(message, error_type=error_type)
        self.upstream_status = upstream_status
        if upstream_status in (403, 404):
            self.status_code = upstream_status


class ParseError(PhotoFrameError):
    """Embedded payload missing or not shaped the way we expect."""

    error_type = "parse_error"
    status_code = 502


class EmptyAlbumError(PhotoFrameError):
    """Album reachable but yielded no usable photos."""

    error_type = "empty_album"
    status_code = 404


class CacheError(PhotoFrameError):
    error_type = "cache_error"


class AlertDispatchError(PhotoFrameError):
    error_type = "alert_dispatch_error"


class InvalidAlbumUrlError(PhotoFrameError):
    """Link is not a recognised shared album URL."""

    error_type = "invalid_input"
    status_code = 400
