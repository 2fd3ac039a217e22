"""Unit tests for error classification and content validation."""
import pytest

from journal_api.analysis.errors import (
    AIErrorType,
    AIJobError,
    ClassifiedError,
    classify_ai_error,
    format_error_for_display,
    validate_entry_content,
)


@pytest.mark.parametrize(
    "message",
    [
        "Incorrect API key provided: sk-abc",
        "Error code: 401 - Unauthorized",
        "OPENAI_API_KEY is not set. Please add it to your .env file.",
    ],
)
def test_credential_errors_are_not_retryable(message):
    classified = classify_ai_error(Exception(message))
    assert classified.kind == AIErrorType.INVALID_CREDENTIAL
    assert classified.retryable is False
    assert classified.message == message


def test_rate_limit_extracts_retry_after():
    classified = classify_ai_error(Exception("Rate limit exceeded, retry-after: 17"))
    assert classified.kind == AIErrorType.RATE_LIMIT
    assert classified.retryable is True
    assert classified.retry_after == 17
    assert "17 seconds" in classified.user_message


def test_rate_limit_defaults_retry_after_to_sixty():
    classified = classify_ai_error(Exception("Error code: 429 - Too Many Requests"))
    assert classified.kind == AIErrorType.RATE_LIMIT
    assert classified.retry_after == 60


def test_quota_errors_are_not_retryable():
    classified = classify_ai_error(Exception("You exceeded your current quota, please check your plan"))
    assert classified.kind == AIErrorType.INSUFFICIENT_QUOTA
    assert classified.retryable is False
    assert classified.retry_after is None


def test_rate_limit_wins_over_quota():
    """A 429 that mentions quota is still treated as a rate limit."""
    classified = classify_ai_error(Exception("429 insufficient_quota"))
    assert classified.kind == AIErrorType.RATE_LIMIT


def test_credential_wins_over_network_wording():
    classified = classify_ai_error(Exception("401 Unauthorized: network proxy rejected api key"))
    assert classified.kind == AIErrorType.INVALID_CREDENTIAL


def test_timeout_error_instance_is_timeout_regardless_of_text():
    classified = classify_ai_error(TimeoutError())
    assert classified.kind == AIErrorType.TIMEOUT
    assert classified.retryable is True


def test_timeout_wording():
    assert classify_ai_error(Exception("Request timed out.")).kind == AIErrorType.TIMEOUT
    assert classify_ai_error(Exception("connect ETIMEDOUT 1.2.3.4:443")).kind == AIErrorType.TIMEOUT


@pytest.mark.parametrize(
    "message",
    [
        "fetch failed",
        "connect ECONNREFUSED 127.0.0.1:443",
        "getaddrinfo ENOTFOUND api.openai.com",
        "Connection error.",
        "[Errno 111] Connection refused",
    ],
)
def test_network_errors_are_retryable(message):
    classified = classify_ai_error(Exception(message))
    assert classified.kind == AIErrorType.NETWORK_ERROR
    assert classified.retryable is True


def test_invalid_response_wording():
    classified = classify_ai_error(ValueError("Failed to parse JSON from OpenAI"))
    assert classified.kind == AIErrorType.INVALID_RESPONSE
    assert classified.retryable is True


def test_unrecognised_errors_are_unknown_and_retryable():
    classified = classify_ai_error(RuntimeError("something odd happened"))
    assert classified.kind == AIErrorType.UNKNOWN
    assert classified.retryable is True
    assert "something odd" not in classified.user_message


def test_empty_exception_message_uses_type_name():
    classified = classify_ai_error(KeyError())
    assert classified.message == "KeyError"


def test_already_classified_errors_pass_through():
    original = ClassifiedError(
        kind=AIErrorType.CONTENT_TOO_SHORT,
        message="short",
        user_message="too short",
        retryable=False,
    )
    assert classify_ai_error(AIJobError(original)) is original
    assert classify_ai_error(original) is original


def test_validator_rejects_short_content_after_trimming():
    classified = validate_entry_content("   hello    ")
    assert classified is not None
    assert classified.kind == AIErrorType.CONTENT_TOO_SHORT
    assert classified.retryable is False


def test_validator_boundaries():
    assert validate_entry_content("x" * 10) is None
    assert validate_entry_content("x" * 10_000) is None
    too_long = validate_entry_content("x" * 10_001)
    assert too_long is not None
    assert too_long.kind == AIErrorType.CONTENT_TOO_LONG
    assert too_long.retryable is False


def test_format_error_for_display():
    rate_limited = classify_ai_error(Exception("rate limit, retry after 30"))
    assert format_error_for_display(rate_limited).endswith("You can retry in 30 seconds.")

    network = classify_ai_error(Exception("network down"))
    assert format_error_for_display(network).endswith("Click 'Retry' to try again.")

    credential = classify_ai_error(Exception("bad api key"))
    assert format_error_for_display(credential).endswith("Please resolve the issue before retrying.")
