"""
Classification of AI job failures.

Every failure that can happen while analysing an entry or synthesising an
insight is funnelled through :func:`classify_ai_error`, which turns raw
provider text into a :class:`ClassifiedError`. Only the classified form is
persisted or returned over HTTP; the raw message stays in the logs.

The decision table is a plain substring match over the lowercased error
text. Provider wording can change without notice, so the table lives in one
function with a test per branch and nothing else inspects error strings.
"""
import re
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict

MIN_CONTENT_LENGTH = 10
MAX_CONTENT_LENGTH = 10_000
DEFAULT_RATE_LIMIT_RETRY_AFTER = 60


class AIErrorType(str, Enum):
    TIMEOUT = "timeout"
    RATE_LIMIT = "rate_limit"
    INVALID_CREDENTIAL = "invalid_credential"
    INSUFFICIENT_QUOTA = "insufficient_quota"
    NETWORK_ERROR = "network_error"
    INVALID_RESPONSE = "invalid_response"
    CONTENT_TOO_SHORT = "content_too_short"
    CONTENT_TOO_LONG = "content_too_long"
    UNKNOWN = "unknown"


class ClassifiedError(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: AIErrorType
    message: str
    user_message: str
    retryable: bool
    retry_after: Optional[int] = None


class AIJobError(Exception):
    """Raised by the job runner; always carries a final classification."""

    def __init__(self, classified: ClassifiedError):
        super().__init__(classified.user_message)
        self.classified = classified


_RETRY_AFTER_RE = re.compile(r"retry[- _]?after[:\s]+(\d+)", re.I)

_CREDENTIAL_MARKERS = ("api key", "api_key", "unauthorized", "401")
_RATE_LIMIT_MARKERS = ("rate limit", "rate_limit", "429", "too many requests")
_QUOTA_MARKERS = ("quota", "insufficient", "billing", "credits")
_TIMEOUT_MARKERS = ("timeout", "timed out", "etimedout")
_NETWORK_MARKERS = (
    "network",
    "econnrefused",
    "enotfound",
    "fetch failed",
    "connection refused",
    "connection error",
    "name or service not known",
)
_INVALID_RESPONSE_MARKERS = ("invalid response", "json", "parse")


def _error_text(error: object) -> str:
    if isinstance(error, BaseException):
        text = str(error)
        return text or type(error).__name__
    return str(error)


def _contains_any(haystack: str, needles) -> bool:
    return any(n in haystack for n in needles)


def invalid_response_error(message: str) -> ClassifiedError:
    return ClassifiedError(
        kind=AIErrorType.INVALID_RESPONSE,
        message=message,
        user_message="Received an unexpected response from AI. Please try again.",
        retryable=True,
    )


def classify_ai_error(error: object) -> ClassifiedError:
    """Map any raw failure (exception or message) to a ClassifiedError.

    Checks run in a fixed order; the first match wins. Credential problems
    are checked first so that a message like "401 Unauthorized: network
    proxy rejected api key" is never mistaken for a transient failure.
    """
    if isinstance(error, AIJobError):
        return error.classified
    if isinstance(error, ClassifiedError):
        return error

    message = _error_text(error)
    text = message.lower()

    if _contains_any(text, _CREDENTIAL_MARKERS):
        return ClassifiedError(
            kind=AIErrorType.INVALID_CREDENTIAL,
            message=message,
            user_message="Invalid OpenAI API key. Please check your configuration.",
            retryable=False,
        )

    if _contains_any(text, _RATE_LIMIT_MARKERS):
        match = _RETRY_AFTER_RE.search(message)
        retry_after = int(match.group(1)) if match else DEFAULT_RATE_LIMIT_RETRY_AFTER
        return ClassifiedError(
            kind=AIErrorType.RATE_LIMIT,
            message=message,
            user_message=f"Rate limit reached. Please wait {retry_after} seconds before retrying.",
            retryable=True,
            retry_after=retry_after,
        )

    if _contains_any(text, _QUOTA_MARKERS):
        return ClassifiedError(
            kind=AIErrorType.INSUFFICIENT_QUOTA,
            message=message,
            user_message="OpenAI account has insufficient credits. Please check your billing settings.",
            retryable=False,
        )

    if isinstance(error, TimeoutError) or _contains_any(text, _TIMEOUT_MARKERS):
        return ClassifiedError(
            kind=AIErrorType.TIMEOUT,
            message=message,
            user_message="Request timed out. The AI service may be slow. Please try again.",
            retryable=True,
        )

    if _contains_any(text, _NETWORK_MARKERS):
        return ClassifiedError(
            kind=AIErrorType.NETWORK_ERROR,
            message=message,
            user_message="Network error. Please check your internet connection and try again.",
            retryable=True,
        )

    if _contains_any(text, _INVALID_RESPONSE_MARKERS):
        return invalid_response_error(message)

    return ClassifiedError(
        kind=AIErrorType.UNKNOWN,
        message=message,
        user_message="An unexpected error occurred during AI analysis. Please try again.",
        retryable=True,
    )


def validate_entry_content(content: str) -> Optional[ClassifiedError]:
    """Pre-flight length check. Returns None when the content may be sent."""
    trimmed = (content or "").strip()

    if len(trimmed) < MIN_CONTENT_LENGTH:
        return ClassifiedError(
            kind=AIErrorType.CONTENT_TOO_SHORT,
            message="Content is too short for meaningful analysis",
            user_message=(
                f"Entry is too short for AI analysis. Please write at least {MIN_CONTENT_LENGTH} characters."
            ),
            retryable=False,
        )

    if len(trimmed) > MAX_CONTENT_LENGTH:
        return ClassifiedError(
            kind=AIErrorType.CONTENT_TOO_LONG,
            message="Content exceeds maximum length",
            user_message=(
                f"Entry is too long for AI analysis. Please keep it under {MAX_CONTENT_LENGTH:,} characters."
            ),
            retryable=False,
        )

    return None


def format_error_for_display(classified: ClassifiedError) -> str:
    message = classified.user_message
    if classified.retryable:
        if classified.retry_after:
            return f"{message} You can retry in {classified.retry_after} seconds."
        return f"{message} Click 'Retry' to try again."
    return f"{message} Please resolve the issue before retrying."
