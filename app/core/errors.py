"""
Provider errors and failure classification.

Primary-provider failures carry a FailureKind set by the Gemini adapter, so the
fallback decision does not depend on parsing provider error text. Plain
exceptions that reach the classifier still fall back to matching the known
load-shedding phrases ("Service Unavailable", "overloaded").
"""

from enum import Enum

# User-facing apologies. Diagnostic detail goes to the log, never to the user.
GENERIC_ERROR_MESSAGE = "An unexpected error occurred while generating the answer."
OVERLOADED_MESSAGE = (
    "I'm sorry, the AI service is currently overloaded. Please try again in a few moments."
)
BOTH_UNAVAILABLE_MESSAGE = (
    "I'm sorry, both AI services are currently unavailable. Please try again in a few moments."
)

RETRIABLE_PHRASES: tuple[str, ...] = ("Service Unavailable", "overloaded")


class FailureKind(str, Enum):
    SERVICE_UNAVAILABLE = "service_unavailable"
    OVERLOADED = "overloaded"
    EMPTY_OUTPUT = "empty_output"
    NOT_CONFIGURED = "not_configured"
    PROVIDER_ERROR = "provider_error"


class FailureClassification(str, Enum):
    RETRIABLE = "retriable"
    FATAL = "fatal"


class ProviderError(Exception):
    """Base for errors raised by provider adapters."""

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)


class PrimaryGenerationFailure(ProviderError):
    """Raised when the primary provider errors or produces no text."""

    def __init__(self, kind: FailureKind, message: str) -> None:
        self.kind = kind
        super().__init__(message)


class FallbackTransportFailure(ProviderError):
    """Raised when the secondary provider is unreachable or returns a non-2xx status."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        self.status_code = status_code
        super().__init__(message)


class FallbackContentMissing(ProviderError):
    """Raised when the secondary provider responds without a usable answer."""


def kind_from_message(message: str) -> FailureKind | None:
    """Map known load-shedding phrasing to a kind; None when nothing matches."""
    if "Service Unavailable" in message:
        return FailureKind.SERVICE_UNAVAILABLE
    if "overloaded" in message:
        return FailureKind.OVERLOADED
    return None


def classify_failure(failure: BaseException) -> FailureClassification:
    """
    Decide whether a primary failure may be retried on the secondary provider.

    Typed failures are classified by kind: only SERVICE_UNAVAILABLE and
    OVERLOADED are retriable. Anything else is matched (case-sensitive) against
    RETRIABLE_PHRASES. Empty output is always fatal.
    """
    if isinstance(failure, PrimaryGenerationFailure):
        if failure.kind in (FailureKind.SERVICE_UNAVAILABLE, FailureKind.OVERLOADED):
            return FailureClassification.RETRIABLE
        return FailureClassification.FATAL
    message = str(failure)
    if any(phrase in message for phrase in RETRIABLE_PHRASES):
        return FailureClassification.RETRIABLE
    return FailureClassification.FATAL
