from typing import Optional


class LabReportError(Exception):
    """Base for hard pipeline failures (they abort a parse)."""

    def __init__(self, message: str, details: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.details = details


class DownloadError(LabReportError):
    """Raised by a blob store that cannot supply the requested object."""


class FetchError(LabReportError):
    pass


class ExtractionError(LabReportError):
    def __init__(self, message: str, size: int = 0, preview: bytes = b""):
        super().__init__(message, details=f"size={size} bytes preview={preview!r}")
        self.size = size
        self.preview = preview
