"""Error types for tile download and export (UI-agnostic)."""


class OrthoError(Exception):
    """Base exception for download/export failures.

    Args:
        code: Stable error code for UI mapping.
        details: Optional technical details for logs.
    """

    def __init__(self, code: str, details: str = "") -> None:
        super().__init__(code)
        self.code = code
        self.details = details

    def __str__(self) -> str:
        if self.details:
            return f"{self.code}: {self.details}"
        return self.code


class ValidationError(OrthoError):
    """Raised when input parameters are invalid."""


class CancelledError(OrthoError):
    """Raised when the user cancels the download."""


class MosaicError(OrthoError):
    """Raised when the mosaic cannot be allocated or encoded."""


class GeocodingError(OrthoError):
    """Raised when the geocoding service cannot be queried."""


class DownloadInProgressError(OrthoError):
    """Raised when a second download is started while one is running."""
