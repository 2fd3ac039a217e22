from __future__ import annotations

import json
import logging
from typing import Any, Dict, List, Optional, Sequence

from openai import OpenAI

from journal_api.analysis.ai_providers.base import AIService
import journal_api.analysis.prompts.openai_prompts_templates as prompts

logger = logging.getLogger(__name__)


def _try_repair_parse(raw: str) -> Any:
    """Parse JSON, tolerating code fences or prose around a single object."""
    s = raw.strip()
    if s.startswith("```"):
        s = s.strip("`\n ")
    start = s.find("{")
    end = s.rfind("}")
    if start != -1 and end != -1 and end > start:
        return json.loads(s[start : end + 1])
    return json.loads(s)


class OpenAIAIService(AIService):
    """Chat-completions client that speaks plain JSON dicts."""

    model_tag = "chatgpt"

    def __init__(
        self,
        api_key: Optional[str],
        chat_model: str,
        insight_model: str,
        client: Optional[OpenAI] = None,
    ):
        self.chat_model = chat_model
        self.insight_model = insight_model
        # The SDK's own retries would run past the job's wait ceiling;
        # retrying is left to the caller.
        if client is None and api_key:
            client = OpenAI(api_key=api_key, max_retries=0)
        self.client = client

    def has_credential(self) -> bool:
        return self.client is not None

    def _chat_json(
        self,
        model: str,
        messages: List[dict[str, Any]],
        *,
        max_tokens: int,
        timeout: float,
    ) -> Dict[str, Any]:
        """Run a chat completion and parse the JSON object from the first choice."""
        if self.client is None:
            raise RuntimeError("OPENAI_API_KEY is not set. Please add it to your .env file.")

        resp = self.client.chat.completions.create(
            model=model,
            messages=messages,
            max_tokens=max_tokens,
            temperature=0.7,
            response_format={"type": "json_object"},
            timeout=timeout,
        )
        content = resp.choices[0].message.content if resp.choices else None
        if not content:
            raise ValueError("Invalid response: no content returned from OpenAI")
        try:
            parsed = json.loads(content)
        except json.JSONDecodeError:
            try:
                parsed = _try_repair_parse(content)
            except json.JSONDecodeError as e:
                raise ValueError(f"Failed to parse JSON from OpenAI: {e}") from e
        if not isinstance(parsed, dict):
            raise ValueError("Invalid response: expected a JSON object from OpenAI")
        return parsed

    def analyze_entry(self, content: str, *, timeout: float) -> Dict[str, Any]:
        messages = [
            {"role": "system", "content": prompts.ENTRY_PROMPT},
            {"role": "user", "content": content},
        ]
        return self._chat_json(self.chat_model, messages, max_tokens=500, timeout=timeout)

    def reflect_on_entries(self, entries: Sequence[Any], insight_type: str, *, timeout: float) -> Dict[str, Any]:
        messages = [
            {"role": "system", "content": prompts.BATCH_SYSTEM_PROMPT},
            {"role": "user", "content": prompts.build_batch_prompt(entries, insight_type)},
        ]
        logger.debug(f"Requesting {insight_type} reflection over {len(entries)} entries")
        return self._chat_json(self.insight_model, messages, max_tokens=1000, timeout=timeout)
