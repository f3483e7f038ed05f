"""
Exception types raised by the pipeline services.

Routers translate these into HTTP responses:
- PipelineValidationError -> 400, nothing persisted
- UpstreamServiceError    -> 502, project already committed as failed
"""

from typing import Optional


class PipelineError(Exception):
    """Base class for pipeline service errors."""

    def __init__(self, message: str, field: Optional[str] = None):
        self.message = message
        self.field = field
        super().__init__(message)


class PipelineValidationError(PipelineError):
    """Caller supplied something the pipeline cannot act on."""


class UnsafeURLError(PipelineValidationError):
    """A URL failed the outbound fetch safety check."""

    def __init__(self, url: str, field: Optional[str] = None):
        self.url = url
        super().__init__("URL is not allowed: must be public https", field=field)


class UpstreamServiceError(PipelineError):
    """An external service failed, timed out, or returned unusable data."""

    def __init__(self, message: str, service: str = "upstream"):
        self.service = service
        super().__init__(message)


class MediaDownloadError(UpstreamServiceError):
    """Media could not be fetched."""

    def __init__(self, message: str):
        super().__init__(message, service="download")


class RenderSubmissionError(UpstreamServiceError):
    """The render service rejected the job or returned no job id."""

    def __init__(self, message: str):
        super().__init__(message, service="render")


class SelectionRejectedError(UpstreamServiceError):
    """The selection model produced no usable segment list."""

    def __init__(self, message: str):
        super().__init__(message, service="selection")
