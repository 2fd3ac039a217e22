"""
Job status controller for AI-bearing records.

Drives journal entries and insights through
``pending -> processing -> success | failed`` and back to ``pending`` on an
explicit retry or regenerate. Every status change is one conditional write of
the full AI field set (see :mod:`journal_api.core.ai_state`), so two triggers
racing on the same record cannot both run the job, and a late result never
overwrites a newer one.
"""
import datetime
import logging
from dataclasses import dataclass
from typing import Any, List, Optional, Tuple
from uuid import UUID

from sqlalchemy.orm import Session

from journal_api.analysis.ai_providers.base import AIService
from journal_api.analysis.errors import AIJobError, ClassifiedError
from journal_api.analysis.runner import run_batch_insight, run_entry_analysis
from journal_api.analysis.schemas import AIActionResult
from journal_api.core.ai_state import FAILED, PENDING, PROCESSING, SUCCESS, is_stale
from journal_api.core.config import (
    BATCH_AI_TIMEOUT_SECONDS,
    ENTRY_AI_TIMEOUT_SECONDS,
    STALE_PROCESSING_SECONDS,
)
from journal_api.insights.db import (
    claim_insight_for_processing,
    create_insight,
    finish_insight_failure,
    finish_insight_success,
    get_insight,
    reset_insight_ai,
)
from journal_api.journals.db import (
    claim_journal_for_processing,
    finish_journal_failure,
    finish_journal_success,
    get_journal,
    get_journals_by_date_range,
    reset_journal_ai,
)
from journal_api.journals.schemas import JournalEntryBase

logger = logging.getLogger(__name__)

# JobOutcome.reason values
NOT_FOUND = "not_found"
NOT_PENDING = "not_pending"
CONFLICT = "conflict"
SUPERSEDED = "superseded"
NO_ENTRIES = "no_entries"
INVALID_RANGE = "invalid_range"

INSIGHT_RANGE_DAYS = {"weekly": 7, "monthly": 30}


@dataclass
class JobOutcome:
    """Result of one controller call.

    ``classified`` is set when the AI job ran and failed; ``reason`` is set
    when the job did not run (or its result was discarded).
    """

    ok: bool
    status: Optional[str] = None
    classified: Optional[ClassifiedError] = None
    reason: Optional[str] = None
    message: Optional[str] = None
    insight_id: Optional[UUID] = None

    def to_result(self) -> AIActionResult:
        if self.ok:
            return AIActionResult(success=True, insightId=self.insight_id)
        if self.classified is not None:
            return AIActionResult(
                success=False,
                error=self.classified.user_message,
                errorType=self.classified.kind.value,
                canRetry=self.classified.retryable,
                retryAfter=self.classified.retry_after,
                insightId=self.insight_id,
            )
        return AIActionResult(
            success=False,
            error=self.message,
            canRetry=False,
            insightId=self.insight_id,
        )


def _is_claimable(record: Any) -> bool:
    if record.ai_status == PENDING:
        return True
    return record.ai_status == PROCESSING and is_stale(record.updated_at, STALE_PROCESSING_SECONDS)


def _not_claimable(kind: str, record_id: UUID, status: str) -> JobOutcome:
    logger.info(f"{kind} {record_id}: skipped, status is {status}")
    return JobOutcome(
        ok=False,
        status=status,
        reason=NOT_PENDING,
        message=f"{kind.capitalize()} is {status}, not awaiting analysis",
    )


def _conflict(kind: str, record_id: UUID) -> JobOutcome:
    logger.info(f"{kind} {record_id}: claim lost to a concurrent request")
    return JobOutcome(ok=False, reason=CONFLICT, message=f"{kind.capitalize()} is already being processed")


def _superseded(kind: str, record_id: UUID, attempt: int) -> JobOutcome:
    logger.warning(f"{kind} {record_id}: attempt {attempt} result discarded, record changed meanwhile")
    return JobOutcome(
        ok=False,
        reason=SUPERSEDED,
        message=f"{kind.capitalize()} was changed by another request. Refresh to see the latest result.",
    )


def _log_claim(kind: str, record_id: UUID, previous: str, attempt: int) -> None:
    if previous == PROCESSING:
        logger.warning(f"{kind} {record_id}: reclaiming stale processing record (attempt {attempt})")
    else:
        logger.info(f"{kind} {record_id}: {previous} -> processing (attempt {attempt})")


def default_insight_range(insight_type: str, today: datetime.date) -> Tuple[datetime.date, datetime.date]:
    """Weekly covers the last 7 days, monthly the last 30, both ending today."""
    try:
        days = INSIGHT_RANGE_DAYS[insight_type]
    except KeyError:
        raise ValueError(f"Unknown insight type: {insight_type}") from None
    return today - datetime.timedelta(days=days), today


def _no_entries(start_date: datetime.date, end_date: datetime.date) -> JobOutcome:
    return JobOutcome(
        ok=False,
        reason=NO_ENTRIES,
        message=f"No entries found between {start_date.isoformat()} and {end_date.isoformat()}",
    )


# ---------------- Entries ----------------

def process_entry(
    db: Session,
    entry_id: UUID,
    user_id: UUID,
    ai_service: AIService,
    timeout: float = ENTRY_AI_TIMEOUT_SECONDS,
) -> JobOutcome:
    """
    Runs AI analysis for one entry awaiting it.

    Args:
        db (Session): SQLAlchemy session.
        entry_id (UUID): Entry to analyze.
        user_id (UUID): Owner of the entry.
        ai_service (AIService): Provider used for the analysis.
        timeout (float): Seconds to wait for the provider.

    Returns:
        JobOutcome: ``ok`` on success; otherwise the classified failure or the
        reason the job did not run.
    """
    entry = get_journal(db, entry_id, user_id)
    if entry is None:
        return JobOutcome(ok=False, reason=NOT_FOUND, message="Journal entry not found")
    if not _is_claimable(entry):
        return _not_claimable("entry", entry_id, entry.ai_status)

    previous = entry.ai_status
    content = entry.content
    attempt = claim_journal_for_processing(db, entry)
    if attempt is None:
        return _conflict("entry", entry_id)
    _log_claim("entry", entry_id, previous, attempt)

    try:
        result = run_entry_analysis(ai_service, content, timeout=timeout)
    except AIJobError as e:
        classified = e.classified
        logger.warning(f"entry {entry_id}: analysis failed [{classified.kind.value}] {classified.message}")
        if not finish_journal_failure(db, entry_id, user_id, attempt, classified.user_message):
            return _superseded("entry", entry_id, attempt)
        logger.info(f"entry {entry_id}: processing -> failed")
        return JobOutcome(ok=False, status=FAILED, classified=classified)

    written = finish_journal_success(
        db,
        entry_id,
        user_id,
        attempt,
        summary=result.summary,
        sentiment=result.sentiment.model_dump(),
        themes=result.themes,
    )
    if not written:
        return _superseded("entry", entry_id, attempt)
    logger.info(f"entry {entry_id}: processing -> success")
    return JobOutcome(ok=True, status=SUCCESS)


def _reset_and_process_entry(
    db: Session, entry_id: UUID, user_id: UUID, ai_service: AIService, from_status: str, action: str
) -> JobOutcome:
    entry = get_journal(db, entry_id, user_id)
    if entry is None:
        return JobOutcome(ok=False, reason=NOT_FOUND, message="Journal entry not found")
    if entry.ai_status not in (from_status, PENDING):
        return JobOutcome(
            ok=False,
            status=entry.ai_status,
            reason=NOT_PENDING,
            message=f"Cannot {action} an entry whose analysis is {entry.ai_status}",
        )
    if entry.ai_status == from_status:
        if not reset_journal_ai(db, entry_id, user_id, expected_status=from_status):
            return _conflict("entry", entry_id)
        logger.info(f"entry {entry_id}: {from_status} -> pending ({action})")
    return process_entry(db, entry_id, user_id, ai_service)


def retry_entry_analysis(db: Session, entry_id: UUID, user_id: UUID, ai_service: AIService) -> JobOutcome:
    """Resets a failed entry to pending and analyzes it again."""
    return _reset_and_process_entry(db, entry_id, user_id, ai_service, FAILED, "retry")


def regenerate_entry_analysis(db: Session, entry_id: UUID, user_id: UUID, ai_service: AIService) -> JobOutcome:
    """Discards a successful analysis and computes a fresh one."""
    return _reset_and_process_entry(db, entry_id, user_id, ai_service, SUCCESS, "regenerate")


# ---------------- Insights ----------------

def _snapshot_range(
    db: Session, user_id: UUID, start_date: datetime.date, end_date: datetime.date
) -> List[JournalEntryBase]:
    # Detached copies: later commits expire ORM rows and the provider reads them off-thread.
    rows = get_journals_by_date_range(db, user_id, start_date, end_date)
    return [JournalEntryBase.model_validate(row) for row in rows]


def process_insight(
    db: Session,
    insight_id: UUID,
    user_id: UUID,
    ai_service: AIService,
    timeout: float = BATCH_AI_TIMEOUT_SECONDS,
    entries: Optional[List[JournalEntryBase]] = None,
) -> JobOutcome:
    """
    Runs the batch reflection for one insight awaiting it, over the entries in its date range.

    Callers that already read the range pass ``entries`` so the record is not
    claimed against a second, possibly different, read.
    """
    insight = get_insight(db, insight_id, user_id)
    if insight is None:
        return JobOutcome(ok=False, reason=NOT_FOUND, message="Insight not found")
    if not _is_claimable(insight):
        outcome = _not_claimable("insight", insight_id, insight.ai_status)
        outcome.insight_id = insight_id
        return outcome

    start_date, end_date = insight.start_date, insight.end_date
    insight_type = insight.insight_type
    if entries is None:
        entries = _snapshot_range(db, user_id, start_date, end_date)
        if not entries:
            outcome = _no_entries(start_date, end_date)
            outcome.insight_id = insight_id
            return outcome

    previous = insight.ai_status
    attempt = claim_insight_for_processing(db, insight)
    if attempt is None:
        outcome = _conflict("insight", insight_id)
        outcome.insight_id = insight_id
        return outcome
    _log_claim("insight", insight_id, previous, attempt)

    try:
        result = run_batch_insight(ai_service, entries, insight_type, timeout=timeout)
    except AIJobError as e:
        classified = e.classified
        logger.warning(f"insight {insight_id}: generation failed [{classified.kind.value}] {classified.message}")
        if not finish_insight_failure(db, insight_id, user_id, attempt, classified.user_message):
            outcome = _superseded("insight", insight_id, attempt)
            outcome.insight_id = insight_id
            return outcome
        logger.info(f"insight {insight_id}: processing -> failed")
        return JobOutcome(ok=False, status=FAILED, classified=classified, insight_id=insight_id)

    written = finish_insight_success(
        db,
        insight_id,
        user_id,
        attempt,
        content=result.reflection,
        themes=result.themes,
        sentiment_trend=result.sentiment_analysis.model_dump(),
    )
    if not written:
        outcome = _superseded("insight", insight_id, attempt)
        outcome.insight_id = insight_id
        return outcome
    logger.info(f"insight {insight_id}: processing -> success")
    return JobOutcome(ok=True, status=SUCCESS, insight_id=insight_id)


def generate_insight(
    db: Session,
    user_id: UUID,
    insight_type: str,
    ai_service: AIService,
    start_date: Optional[datetime.date] = None,
    end_date: Optional[datetime.date] = None,
    today: Optional[datetime.date] = None,
) -> JobOutcome:
    """
    Creates an insight for a date range and generates its reflection.

    Missing dates default to the last 7 (weekly) or 30 (monthly) days. A range
    with no entries fails before any insight record is created.
    """
    default_start, default_end = default_insight_range(insight_type, today or datetime.date.today())
    start_date = start_date or default_start
    end_date = end_date or default_end
    if start_date > end_date:
        return JobOutcome(ok=False, reason=INVALID_RANGE, message="Start date must be on or before end date")

    entries = _snapshot_range(db, user_id, start_date, end_date)
    if not entries:
        logger.info(f"No entries for {insight_type} insight of user {user_id} ({start_date} to {end_date})")
        return _no_entries(start_date, end_date)

    insight = create_insight(db, user_id, insight_type, start_date, end_date)
    logger.info(f"insight {insight.id}: created ({insight_type}, {start_date} to {end_date})")
    return process_insight(db, insight.id, user_id, ai_service, entries=entries)


def retry_insight(db: Session, insight_id: UUID, user_id: UUID, ai_service: AIService) -> JobOutcome:
    """Resets a failed insight to pending and generates it again."""
    insight = get_insight(db, insight_id, user_id)
    if insight is None:
        return JobOutcome(ok=False, reason=NOT_FOUND, message="Insight not found")
    if insight.ai_status not in (FAILED, PENDING):
        return JobOutcome(
            ok=False,
            status=insight.ai_status,
            reason=NOT_PENDING,
            message=f"Cannot retry an insight whose generation is {insight.ai_status}",
            insight_id=insight_id,
        )

    start_date, end_date = insight.start_date, insight.end_date
    entries = _snapshot_range(db, user_id, start_date, end_date)
    if not entries:
        outcome = _no_entries(start_date, end_date)
        outcome.insight_id = insight_id
        return outcome

    if insight.ai_status == FAILED:
        if not reset_insight_ai(db, insight_id, user_id, expected_status=FAILED):
            outcome = _conflict("insight", insight_id)
            outcome.insight_id = insight_id
            return outcome
        logger.info(f"insight {insight_id}: failed -> pending (retry)")
    return process_insight(db, insight_id, user_id, ai_service, entries=entries)
