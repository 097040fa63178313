from __future__ import annotations

from typing import Optional


class PdfAnalysisError(RuntimeError):
    pass


# ----------------------------------------------------------------------
# Input validation
# ----------------------------------------------------------------------
class PathValidationError(PdfAnalysisError):
    pass


class NotAbsolutePathError(PathValidationError):
    pass


class PdfNotFoundError(PathValidationError):
    pass


class PathIsDirectoryError(PathValidationError):
    pass


class WrongExtensionError(PathValidationError):
    pass


class InvalidRequestError(PathValidationError):
    pass


# ----------------------------------------------------------------------
# URL fetch
# ----------------------------------------------------------------------
class FetchError(PdfAnalysisError):
    pass


class FetchTimeoutError(FetchError):
    pass


class FetchHttpStatusError(FetchError):
    def __init__(self, status_code: int, reason: str = "") -> None:
        self.status_code = status_code
        self.reason = reason
        super().__init__(f"HTTP {status_code}: {reason}".rstrip(": "))


class ContentTypeMismatchError(FetchError):
    pass


# ----------------------------------------------------------------------
# Documents and partitions
# ----------------------------------------------------------------------
class EmptyDocumentError(PdfAnalysisError):
    pass


class InvalidPdfError(PdfAnalysisError):
    pass


class UnsplittableError(PdfAnalysisError):
    pass


# ----------------------------------------------------------------------
# Remote service
# ----------------------------------------------------------------------
class MissingApiKeyError(PdfAnalysisError):
    pass


class UploadFailedError(PdfAnalysisError):
    pass


class ProcessingTimeoutError(PdfAnalysisError):
    pass


class RemoteServiceError(PdfAnalysisError):
    def __init__(self, message: str, status_code: Optional[int] = None) -> None:
        self.status_code = status_code
        super().__init__(message)


class SizeLimitError(PdfAnalysisError):
    """The request input exceeded the model's capacity; recoverable by splitting."""

    def __init__(self, message: str, status_code: Optional[int] = None) -> None:
        self.status_code = status_code
        super().__init__(message)
