"""Tests for the AI job runner: bounded wait, payload contract and failure classification."""
import datetime
import time
from types import SimpleNamespace

import pytest

from journal_api.analysis import runner
from journal_api.analysis.errors import AIErrorType, AIJobError
from tests.fakes import BATCH_PAYLOAD, ENTRY_PAYLOAD, FakeAIService

CONTENT = "I spent the afternoon gardening and felt calm for the first time in weeks."


def _entries(n=2):
    today = datetime.date.today()
    return [
        SimpleNamespace(
            date=today - datetime.timedelta(days=n - i),
            content=f"Entry number {i} about my week.",
            ai_sentiment={"score": 0.2, "label": "neutral"},
        )
        for i in range(n)
    ]


def test_entry_analysis_returns_provider_fields():
    fake = FakeAIService()
    result = runner.run_entry_analysis(fake, CONTENT, timeout=5)

    assert result.summary == ENTRY_PAYLOAD["summary"]
    assert result.sentiment.score == 0.6
    assert result.sentiment.label == "positive"
    assert result.themes == ["work", "growth"]
    assert fake.calls == [("entry", CONTENT, 5)]


def test_short_content_fails_before_any_provider_call():
    fake = FakeAIService()
    with pytest.raises(AIJobError) as exc_info:
        runner.run_entry_analysis(fake, "tiny", timeout=5)

    assert exc_info.value.classified.kind == AIErrorType.CONTENT_TOO_SHORT
    assert exc_info.value.classified.retryable is False
    assert fake.calls == []


def test_long_content_fails_before_any_provider_call():
    fake = FakeAIService()
    with pytest.raises(AIJobError) as exc_info:
        runner.run_entry_analysis(fake, "a" * 10_001, timeout=5)

    assert exc_info.value.classified.kind == AIErrorType.CONTENT_TOO_LONG
    assert fake.calls == []


def test_slow_provider_is_abandoned_as_timeout():
    fake = FakeAIService(delay=0.5)
    started = time.monotonic()
    with pytest.raises(AIJobError) as exc_info:
        runner.run_entry_analysis(fake, CONTENT, timeout=0.05)

    assert time.monotonic() - started < 0.4
    classified = exc_info.value.classified
    assert classified.kind == AIErrorType.TIMEOUT
    assert classified.retryable is True
    assert classified.message == "Request timed out after 50ms"


def test_provider_exception_is_classified():
    fake = FakeAIService(error=Exception("Error code: 429 - rate limit reached, retry after 12"))
    with pytest.raises(AIJobError) as exc_info:
        runner.run_entry_analysis(fake, CONTENT, timeout=5)

    assert exc_info.value.classified.kind == AIErrorType.RATE_LIMIT
    assert exc_info.value.classified.retry_after == 12


@pytest.mark.parametrize(
    "payload",
    [
        {"summary": "", "sentiment": {"score": 0.1, "label": "neutral"}, "themes": ["a"]},
        {"summary": "ok", "sentiment": {"score": "high", "label": "neutral"}, "themes": ["a"]},
        {"summary": "ok", "sentiment": {"score": 0.1, "label": "ecstatic"}, "themes": ["a"]},
        {"summary": "ok", "sentiment": {"score": 0.1, "label": "neutral"}, "themes": []},
        {"summary": "ok", "sentiment": {"score": 0.1, "label": "neutral"}},
        {"summary": "ok", "themes": ["a"]},
        ["not", "an", "object"],
    ],
)
def test_malformed_entry_payload_is_invalid_response(payload):
    fake = FakeAIService(entry_payload=payload)
    with pytest.raises(AIJobError) as exc_info:
        runner.run_entry_analysis(fake, CONTENT, timeout=5)

    assert exc_info.value.classified.kind == AIErrorType.INVALID_RESPONSE
    assert exc_info.value.classified.retryable is True


def test_sentiment_score_is_clamped():
    payload = dict(ENTRY_PAYLOAD, sentiment={"score": 1.7, "label": "positive"})
    result = runner.run_entry_analysis(FakeAIService(entry_payload=payload), CONTENT, timeout=5)
    assert result.sentiment.score == 1.0


def test_batch_insight_returns_reflection():
    fake = FakeAIService()
    entries = _entries(3)
    result = runner.run_batch_insight(fake, entries, "weekly", timeout=5)

    assert result.reflection == BATCH_PAYLOAD["reflection"]
    assert result.themes == ["work", "rest", "family"]
    assert result.sentiment_analysis.trajectory == "improving"
    assert fake.calls[0] == ("batch", [e.content for e in entries], "weekly")


def test_batch_insight_rejects_unknown_trajectory():
    payload = dict(BATCH_PAYLOAD, sentimentAnalysis={"overall": "x", "average": 0.1, "trajectory": "sideways"})
    with pytest.raises(AIJobError) as exc_info:
        runner.run_batch_insight(FakeAIService(batch_payload=payload), _entries(), "monthly", timeout=5)
    assert exc_info.value.classified.kind == AIErrorType.INVALID_RESPONSE


def test_batch_insight_requires_entries():
    fake = FakeAIService()
    with pytest.raises(ValueError):
        runner.run_batch_insight(fake, [], "weekly", timeout=5)
    assert fake.calls == []


def test_batch_timeout_is_classified():
    fake = FakeAIService(delay=0.5)
    with pytest.raises(AIJobError) as exc_info:
        runner.run_batch_insight(fake, _entries(), "weekly", timeout=0.05)
    assert exc_info.value.classified.kind == AIErrorType.TIMEOUT


def test_connection_check_reports_success_and_failure():
    assert runner.test_ai_connection(FakeAIService()) is True
    assert runner.test_ai_connection(FakeAIService(error=Exception("Incorrect API key provided"))) is False
