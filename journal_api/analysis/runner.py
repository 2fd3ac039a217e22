"""
AI job runner.

Wraps one provider call per job: validates input, bounds the wait, checks the
shape of what came back and turns every failure into an :class:`AIJobError`.
"""
import logging
from concurrent.futures import ThreadPoolExecutor, TimeoutError as FuturesTimeoutError
from typing import Any, Callable, Sequence, Type, TypeVar

from pydantic import BaseModel, ValidationError

from journal_api.analysis.ai_providers.base import AIService
from journal_api.analysis.errors import (
    AIJobError,
    classify_ai_error,
    invalid_response_error,
    validate_entry_content,
)
from journal_api.analysis.prompts.openai_prompts_templates import TEST_ENTRY_CONTENT
from journal_api.analysis.schemas import BatchInsightResult, EntryAnalysisResult
from journal_api.core.config import BATCH_AI_TIMEOUT_SECONDS, ENTRY_AI_TIMEOUT_SECONDS

logger = logging.getLogger(__name__)

T = TypeVar("T", bound=BaseModel)

# Calls that outlive their wait keep a worker until the SDK's own timeout fires.
_executor = ThreadPoolExecutor(max_workers=8, thread_name_prefix="ai-job")


def _bounded_call(fn: Callable[[], Any], timeout: float) -> Any:
    """Run ``fn`` on the shared pool and wait at most ``timeout`` seconds for it."""
    future = _executor.submit(fn)
    try:
        return future.result(timeout=timeout)
    except FuturesTimeoutError:
        if not future.done():
            # Abandoned, not cancelled: a late result is simply never read.
            raise TimeoutError(f"Request timed out after {round(timeout * 1000)}ms") from None
        raise


def _parse_payload(model: Type[T], payload: Any) -> T:
    try:
        return model.model_validate(payload)
    except ValidationError as e:
        raise AIJobError(invalid_response_error(f"Invalid response structure from AI: {e}")) from e


def run_entry_analysis(
    ai_service: AIService, content: str, timeout: float = ENTRY_AI_TIMEOUT_SECONDS
) -> EntryAnalysisResult:
    """
    Analyzes a single journal entry.

    Args:
        ai_service (AIService): Provider to call.
        content (str): Raw entry text.
        timeout (float): Seconds to wait for the provider.

    Returns:
        EntryAnalysisResult: Summary, clamped sentiment and themes.

    Raises:
        AIJobError: On invalid content or any provider failure.
    """
    invalid = validate_entry_content(content)
    if invalid is not None:
        raise AIJobError(invalid)

    try:
        payload = _bounded_call(lambda: ai_service.analyze_entry(content, timeout=timeout), timeout)
    except Exception as e:
        raise AIJobError(classify_ai_error(e)) from e

    return _parse_payload(EntryAnalysisResult, payload)


def run_batch_insight(
    ai_service: AIService,
    entries: Sequence[Any],
    insight_type: str,
    timeout: float = BATCH_AI_TIMEOUT_SECONDS,
) -> BatchInsightResult:
    """
    Produces a reflection over an ordered, non-empty list of entries.

    Raises:
        ValueError: If ``entries`` is empty. This is a caller bug, not an AI failure.
        AIJobError: On any provider failure or malformed payload.
    """
    if not entries:
        raise ValueError("run_batch_insight requires at least one entry")

    logger.debug(f"Running {insight_type} insight over {len(entries)} entries")
    try:
        payload = _bounded_call(
            lambda: ai_service.reflect_on_entries(entries, insight_type, timeout=timeout), timeout
        )
    except Exception as e:
        raise AIJobError(classify_ai_error(e)) from e

    return _parse_payload(BatchInsightResult, payload)


def test_ai_connection(ai_service: AIService) -> bool:
    """Round-trips a fixed sample entry through the provider."""
    try:
        result = run_entry_analysis(ai_service, TEST_ENTRY_CONTENT)
    except AIJobError as e:
        logger.warning(f"AI connection test failed ({e.classified.kind.value}): {e.classified.message}")
        return False
    logger.info(f"AI connection test succeeded: {result.summary[:80]}")
    return True
