"""
EXCEPTIONS MODULE
=================

Errors raised by the services and turned into JSON error payloads by app.main.
Each class carries the HTTP status and the short "error" label the API
returns, so the handler in main.py needs no per-class branching.
"""

from typing import Optional


class JournalAIError(Exception):
    """Base exception for everything the API reports as a structured error."""

    status_code = 500
    error = "Internal server error"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def to_payload(self) -> dict:
        return {"error": self.error, "message": self.message}


class ConfigurationError(JournalAIError):
    """A required setting is missing at startup."""

    error = "Configuration error"


class ServiceUnavailableError(JournalAIError):
    """A route was hit before the lifespan built its service."""

    status_code = 503
    error = "Service unavailable"


class InvalidInputError(JournalAIError):
    """Request body failed local validation; no remote call was made."""

    status_code = 400
    error = "Invalid input"


class InvalidUploadError(JournalAIError):
    """Uploaded file is missing, of the wrong type, or too large."""

    status_code = 400
    error = "Invalid upload"

    def __init__(self, message: str, status_code: Optional[int] = None, error: Optional[str] = None):
        super().__init__(message)
        if status_code is not None:
            self.status_code = status_code
        if error is not None:
            self.error = error


class RateLimitExhaustedError(JournalAIError):
    """Every model in the chain was rate limited and the retry budget is spent."""

    status_code = 429
    error = "Rate limit exceeded"

    def __init__(self, message: str, retry_after: int = 60):
        super().__init__(message)
        self.retry_after = retry_after

    def to_payload(self) -> dict:
        return {
            "error": self.error,
            "message": "Too many requests. Please wait a moment and try again.",
            "retryAfter": self.retry_after,
        }


class UpstreamError(JournalAIError):
    """Base for failures talking to the completion API."""

    status_code = 502
    error = "External API error"

    def to_payload(self) -> dict:
        return {
            "error": self.error,
            "message": "Failed to communicate with AI service. Please try again later.",
            "details": self.message,
        }


class UpstreamAPIError(UpstreamError):
    """The completion API answered with a non-success status other than 429."""

    def __init__(self, status: int, message: str):
        super().__init__(f"OpenRouter API error: {status} - {message}")
        self.status = status
        self.upstream_message = message


class UpstreamConnectionError(UpstreamError):
    """The completion API could not be reached after all retries."""


class MalformedResponseError(UpstreamError):
    """The completion API answered 2xx without the expected completion text."""


class TranscriptionError(JournalAIError):
    """Transcription failed upstream or produced no text."""

    status_code = 502
    error = "Transcription failed"

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        if status_code is not None:
            self.status_code = status_code
