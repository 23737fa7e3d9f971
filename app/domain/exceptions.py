from __future__ import annotations


class ReportSubmissionError(Exception):
    """Raised when an incoming report submission cannot be accepted."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class MalformedFormError(ReportSubmissionError):
    """Raised when the request body is not a parseable multipart form."""


class MalformedFieldError(ReportSubmissionError):
    """Raised when a text part is not valid UTF-8."""

    def __init__(self, field: str):
        super().__init__(f"Field '{field}' must be valid UTF-8 text.")
        self.field = field


class UploadTooLargeError(ReportSubmissionError):
    """Raised when attached files exceed the configured upload cap."""

    def __init__(self, max_bytes: int):
        super().__init__(f"Attached files exceed the maximum upload size of {max_bytes} bytes.")
        self.max_bytes = max_bytes


class ClientDisconnectedError(Exception):
    """Raised when the caller went away before the report was generated."""
