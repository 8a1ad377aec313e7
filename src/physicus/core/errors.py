"""Error taxonomy and the single point that translates service failures.

Every failure coming back from the AI service is mapped once, here, into a
closed ``ErrorKind``. Call sites then only pick the context prefix.
"""

import json
from enum import Enum
from typing import Optional

import httpx
from google.genai import errors as genai_errors
from pydantic import ValidationError

GENERIC_FAILURE = "An unknown error occurred. Please try again later."

NETWORK_FAILURE = (
    "A network request failed. Check your internet connection, and make sure "
    "your API key allows requests from this machine at "
    "https://console.cloud.google.com/apis/credentials."
)

RATE_LIMITED = "API rate limit exceeded. Please wait a moment before trying again."

MALFORMED_RESPONSE = "The tutor returned a response that could not be read. Please try again."

NO_TOPICS_FOUND = (
    "Could not identify specific topics from the conversation to generate a "
    "worksheet. Please discuss a topic first."
)


class ErrorKind(str, Enum):
    """Closed set of failure shapes surfaced to the user."""
    RATE_LIMITED = "rate_limited"
    NETWORK_UNAVAILABLE = "network_unavailable"
    MALFORMED = "malformed"
    UNKNOWN = "unknown"


class ErrorContext(str, Enum):
    """Where a failure happened; decides the message prefix."""
    CHAT = "Sorry, I encountered an error:"
    WORKSHEET = "Failed to generate worksheet:"
    INITIALIZATION = "Failed to initialize chat:"
    VALIDATION = "API connection failed:"


class PhysicusError(Exception):
    """Base class for errors raised by Physicus."""


class MissingCredentialError(PhysicusError):
    """No API key was configured; the application cannot start."""


class TutorServiceError(PhysicusError):
    """A call to the AI service failed.

    Attributes:
        kind: The classified failure shape.
        detail: The service's own message, if it gave one.
    """

    def __init__(self, kind: ErrorKind, detail: Optional[str] = None):
        super().__init__(detail or kind.value)
        self.kind = kind
        self.detail = detail


_NETWORK_MARKERS = ("failed to fetch", "connection reset", "connection refused", "name resolution")
_RATE_LIMIT_MARKERS = ("resource_exhausted", "rate limit", "quota")


def classify_error(error: BaseException) -> ErrorKind:
    """Map an exception of any shape onto an ``ErrorKind``."""
    if isinstance(error, TutorServiceError):
        return error.kind
    if isinstance(error, genai_errors.APIError):
        if error.code == 429 or (error.status or "").upper() == "RESOURCE_EXHAUSTED":
            return ErrorKind.RATE_LIMITED
    if isinstance(error, (httpx.TransportError, ConnectionError, TimeoutError)):
        return ErrorKind.NETWORK_UNAVAILABLE
    if isinstance(error, (json.JSONDecodeError, ValidationError)):
        return ErrorKind.MALFORMED
    return classify_message(str(error))


def classify_message(message: Optional[str]) -> ErrorKind:
    """Classify a bare error string, as returned by the credential check."""
    lowered = (message or "").lower()
    if any(marker in lowered for marker in _RATE_LIMIT_MARKERS):
        return ErrorKind.RATE_LIMITED
    if any(marker in lowered for marker in _NETWORK_MARKERS):
        return ErrorKind.NETWORK_UNAVAILABLE
    return ErrorKind.UNKNOWN


def translate_error(error: BaseException) -> TutorServiceError:
    """Wrap any exception as a ``TutorServiceError``; already-wrapped ones pass through."""
    if isinstance(error, TutorServiceError):
        return error
    detail = str(error).strip() or None
    return TutorServiceError(classify_error(error), detail)


def describe_error(context: ErrorContext, kind: ErrorKind, detail: Optional[str] = None) -> str:
    """Build the prefixed, user-facing sentence for a failure."""
    if kind == ErrorKind.RATE_LIMITED:
        friendly = RATE_LIMITED
    elif kind == ErrorKind.NETWORK_UNAVAILABLE:
        friendly = NETWORK_FAILURE
    elif kind == ErrorKind.MALFORMED:
        friendly = MALFORMED_RESPONSE
    else:
        friendly = detail or GENERIC_FAILURE
    return f"{context.value} {friendly}"
