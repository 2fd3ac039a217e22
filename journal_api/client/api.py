"""HTTP client for the AI action endpoints, used by the retry orchestrator."""
import logging
from typing import Optional
from uuid import UUID

import requests

from journal_api.analysis.errors import classify_ai_error
from journal_api.analysis.schemas import AIActionResult
from journal_api.core.config import ENTRY_AI_TIMEOUT_SECONDS

logger = logging.getLogger(__name__)


def _detail(resp: requests.Response) -> str:
    try:
        return str(resp.json().get("detail") or resp.text)
    except ValueError:
        return resp.text


class JournalAPIClient:
    def __init__(
        self,
        base_url: str,
        access_token: str,
        timeout: float = ENTRY_AI_TIMEOUT_SECONDS + 5,
        session: Optional[requests.Session] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.session = session or requests.Session()
        self.session.headers.update({"Authorization": f"Bearer {access_token}"})

    def process_entry(self, entry_id: UUID) -> AIActionResult:
        """
        Triggers analysis of an entry.

        Transport failures and unexpected HTTP errors are classified the same
        way server-side AI failures are, so a refused connection comes back as
        a retryable ``network_error`` rather than an exception.
        """
        try:
            resp = self.session.post(
                f"{self.base_url}/process-ai",
                json={"entryId": str(entry_id)},
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            return self._failed(entry_id, e)

        if resp.status_code in (404, 409):
            return AIActionResult(success=False, error=_detail(resp), canRetry=False)
        if resp.status_code >= 400:
            return self._failed(entry_id, f"{resp.status_code} {_detail(resp)}")
        return AIActionResult.model_validate(resp.json())

    def get_entry_status(self, entry_id: UUID) -> str:
        resp = self.session.get(f"{self.base_url}/entries/{entry_id}/status", timeout=self.timeout)
        resp.raise_for_status()
        return resp.json()["ai_status"]

    def _failed(self, entry_id: UUID, error: object) -> AIActionResult:
        classified = classify_ai_error(error)
        logger.warning(f"process-ai for entry {entry_id} failed [{classified.kind.value}]: {classified.message}")
        return AIActionResult(
            success=False,
            error=classified.user_message,
            errorType=classified.kind.value,
            canRetry=classified.retryable,
            retryAfter=classified.retry_after,
        )
