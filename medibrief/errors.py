"""
Error Taxonomy for MediBrief

Every error carries a single actionable sentence in ``user_message`` that is
safe to show to a patient. The underlying cause is chained with
``raise ... from exc`` so it stays available for logging.

Hierarchy:
    MediBriefError
    ├── ExtractionError (kind: ExtractionErrorKind)
    ├── ProviderError
    │   ├── MissingCredentialError
    │   ├── QuotaExceededError
    │   ├── NetworkUnavailableError
    │   ├── ProviderHTTPError
    │   └── MalformedResponseError
    └── ValidationError
        └── EmptyInputError
"""

from __future__ import annotations

from enum import Enum


class MediBriefError(Exception):
    """Base for all pipeline errors."""

    def __init__(self, message: str):
        super().__init__(message)
        self.user_message = message


# =============================================================================
# Extraction
# =============================================================================

class ExtractionErrorKind(Enum):
    """Why a document could not be turned into text."""
    UNREADABLE_SOURCE = "unreadable_source"
    SCANNED_NO_TEXT_LAYER = "scanned_no_text_layer"
    UNSUPPORTED = "unsupported"


class ExtractionError(MediBriefError):
    """
    Raised by the DocumentExtractor.

    Attributes:
        kind: ExtractionErrorKind describing the failure class
    """

    def __init__(self, message: str, kind: ExtractionErrorKind = ExtractionErrorKind.UNREADABLE_SOURCE):
        super().__init__(message)
        self.kind = kind

    def __repr__(self) -> str:
        return f"ExtractionError(kind={self.kind.name}, message={self.user_message!r})"


# =============================================================================
# Providers
# =============================================================================

class ProviderError(MediBriefError):
    """
    Base for language model provider failures.

    Attributes:
        provider: Short name of the provider that failed
    """

    def __init__(self, message: str, provider: str | None = None):
        super().__init__(message)
        self.provider = provider


class MissingCredentialError(ProviderError):
    """No credential is configured for the selected provider. Not transient."""


class QuotaExceededError(ProviderError):
    """
    The provider rejected the call with HTTP 429.

    Attributes:
        retry_hint: Human-readable hint on when to retry
    """

    def __init__(self, message: str, provider: str | None = None, retry_hint: str = ""):
        super().__init__(message, provider)
        self.retry_hint = retry_hint


class NetworkUnavailableError(ProviderError):
    """The provider could not be reached (connection refused, DNS, timeout)."""


class ProviderHTTPError(ProviderError):
    """
    The provider answered with a non-2xx status.

    Attributes:
        status: HTTP status code
        body: Response body (or the provider's own error message)
    """

    def __init__(self, message: str, status: int, body: str = "", provider: str | None = None):
        super().__init__(message, provider)
        self.status = status
        self.body = body


class MalformedResponseError(ProviderError):
    """The provider answered 2xx but the body was not parseable."""


# =============================================================================
# Validation
# =============================================================================

class ValidationError(MediBriefError):
    """Input rejected before any work was attempted."""


class EmptyInputError(ValidationError):
    """Input was empty or whitespace only."""
