"""Exception hierarchy shared by every layer.

Transport and status errors are retryable by the request executor; decoding
errors are not. ``MaxRetryError`` is the terminal error of a logical call that
exhausted its retry budget.
"""

from typing import Optional


class AuraError(Exception):
    """Base class for all auracli errors."""


class ConfigurationError(AuraError):
    """Raised when configuration is missing or malformed."""


# --- Request lifecycle ---

class RetryableError(AuraError):
    """Marker base for failures the executor may retry."""


class TransportError(RetryableError):
    """The network call could not complete (no response was obtained)."""


class HttpStatusError(RetryableError):
    """The endpoint responded with a non-success status code."""

    def __init__(self, status_code: int, body_excerpt: str = ""):
        self.status_code = status_code
        self.body_excerpt = body_excerpt
        message = f"HTTP {status_code}"
        if body_excerpt:
            message = f"{message}: {body_excerpt}"
        super().__init__(message)


class DecodingError(AuraError):
    """The response arrived but could not be interpreted as structured data."""


class MaxRetryError(AuraError):
    """Exception raised when max retries are exceeded."""

    def __init__(self, original_exception: Exception, attempts: int):
        self.original_exception = original_exception
        self.attempts = attempts
        super().__init__(f"Gave up after {attempts} attempt(s). Last error: {original_exception}")


# --- Domain / application ---

class AnalysisParseError(DecodingError):
    """The inference payload did not contain the expected nested document or image."""


class DocumentNotFoundError(AuraError):
    """Raised when updating a document that does not exist."""

    def __init__(self, collection: str, doc_id: str):
        self.collection = collection
        self.doc_id = doc_id
        super().__init__(f"Document '{doc_id}' not found in '{collection}'")


class StoreUnavailableError(AuraError):
    """Raised when the document store was not initialised or a write failed."""


class ServiceBusyError(AuraError):
    """Generic user-facing failure of the inference service.

    ``user_message`` is what the console shows; the underlying cause stays in
    the log and in ``__cause__``.
    """

    def __init__(self, user_message: str = "AI Engine Busy.", detail: Optional[str] = None):
        self.user_message = user_message
        self.detail = detail
        super().__init__(user_message)


class AccessDeniedError(AuraError):
    """Raised when the provider access key does not match."""


class LeadValidationError(AuraError):
    """Raised when a lead cannot be built from the given input."""
