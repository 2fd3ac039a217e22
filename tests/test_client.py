"""Tests for the HTTP client used to trigger analysis."""
import json
from uuid import uuid4

import pytest
import requests

from journal_api.client.api import JournalAPIClient


def _response(status_code, body):
    resp = requests.Response()
    resp.status_code = status_code
    resp._content = json.dumps(body).encode()
    resp.headers["Content-Type"] = "application/json"
    return resp


@pytest.fixture
def api():
    return JournalAPIClient("http://journal.test/", "token-123")


def test_sends_entry_id_and_bearer_token(api, monkeypatch):
    sent = {}

    def fake_post(url, json=None, timeout=None):
        sent.update(url=url, json=json)
        return _response(200, {"success": True})

    monkeypatch.setattr(api.session, "post", fake_post)
    entry_id = uuid4()

    result = api.process_entry(entry_id)

    assert result.success is True
    assert sent == {"url": "http://journal.test/process-ai", "json": {"entryId": str(entry_id)}}
    assert api.session.headers["Authorization"] == "Bearer token-123"


def test_connection_failure_is_retryable_network_error(api, monkeypatch):
    def refuse(*args, **kwargs):
        raise requests.ConnectionError("[Errno 111] Connection refused")

    monkeypatch.setattr(api.session, "post", refuse)

    result = api.process_entry(uuid4())

    assert result.success is False
    assert result.errorType == "network_error"
    assert result.canRetry is True


def test_conflict_is_not_retryable(api, monkeypatch):
    monkeypatch.setattr(
        api.session, "post", lambda *a, **kw: _response(409, {"detail": "Entry is success, not awaiting analysis"})
    )

    result = api.process_entry(uuid4())

    assert result.success is False
    assert result.canRetry is False
    assert result.error == "Entry is success, not awaiting analysis"


def test_server_error_is_classified(api, monkeypatch):
    monkeypatch.setattr(api.session, "post", lambda *a, **kw: _response(500, {"detail": "Failed to analyze entry"}))

    result = api.process_entry(uuid4())

    assert result.errorType == "unknown"
    assert result.canRetry is True


def test_failed_job_body_is_passed_through(api, monkeypatch):
    body = {"success": False, "error": "Rate limit reached.", "errorType": "rate_limit", "canRetry": True, "retryAfter": 60}
    monkeypatch.setattr(api.session, "post", lambda *a, **kw: _response(200, body))

    result = api.process_entry(uuid4())

    assert result.model_dump(exclude_none=True) == body


def test_entry_status(api, monkeypatch):
    monkeypatch.setattr(
        api.session, "get", lambda url, timeout=None: _response(200, {"id": "x", "ai_status": "failed", "ai_error": "e"})
    )
    assert api.get_entry_status(uuid4()) == "failed"
