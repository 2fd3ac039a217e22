import datetime
from uuid import UUID, uuid4
from typing import Any, Dict, List, Optional

from sqlalchemy.orm import Session
from journal_api.core.ai_state import PENDING, PROCESSING, SUCCESS, FAILED, conditional_ai_update
from journal_api.journals.models import JournalEntry
from journal_api.journals.schemas import JournalEntryCreate, JournalEntryUpdate


def _ai_values(
    status: str,
    summary: Optional[str] = None,
    sentiment: Optional[Dict[str, Any]] = None,
    themes: Optional[List[str]] = None,
    error: Optional[str] = None,
) -> Dict[str, Any]:
    return {
        "ai_status": status,
        "ai_summary": summary,
        "ai_sentiment": sentiment,
        "ai_themes": themes,
        "ai_error": error,
    }


# Journal Entry CRUD
def get_journal(db: Session, journal_id: UUID, user_id: UUID) -> Optional[JournalEntry]:
    """
    Retrieves a journal entry by its ID for a given user.

    Args:
        db (Session): SQLAlchemy session.
        journal_id (UUID): ID of the journal.
        user_id (UUID): ID of the owner.

    Returns:
        Optional[JournalEntry]: The journal if found, else None.
    """
    return db.query(JournalEntry).filter(
        JournalEntry.id == journal_id,
        JournalEntry.user_id == user_id
    ).first()


def get_user_journals(db: Session, user_id: UUID, skip: int = 0, limit: int = 100) -> List[JournalEntry]:
    """
    Retrieves a paginated list of journal entries for a user, newest first.
    """
    return (
        db.query(JournalEntry)
        .filter(JournalEntry.user_id == user_id)
        .order_by(JournalEntry.date.desc(), JournalEntry.created_at.desc())
        .offset(skip)
        .limit(limit)
        .all()
    )


def get_journals_by_date_range(
    db: Session, user_id: UUID, start_date: datetime.date, end_date: datetime.date
) -> List[JournalEntry]:
    """
    Retrieves a user's entries with start_date <= date <= end_date, oldest first.
    """
    return (
        db.query(JournalEntry)
        .filter(
            JournalEntry.user_id == user_id,
            JournalEntry.date >= start_date,
            JournalEntry.date <= end_date,
        )
        .order_by(JournalEntry.date.asc(), JournalEntry.created_at.asc())
        .all()
    )


def create_journal(db: Session, journal: JournalEntryCreate, user_id: UUID) -> JournalEntry:
    """
    Creates a new journal entry in the ``pending`` AI state.

    Args:
        db (Session): SQLAlchemy session.
        journal (JournalEntryCreate): Validated entry input.
        user_id (UUID): ID of the owner.

    Returns:
        JournalEntry: The created entry.
    """
    new_journal = JournalEntry(
        id=uuid4(),
        user_id=user_id,
        date=journal.date or datetime.date.today(),
        content=journal.content,
        mood=journal.mood,
        ai_status=PENDING,
        ai_attempt=0,
    )
    db.add(new_journal)
    db.commit()
    db.refresh(new_journal)
    return new_journal


def update_journal(db: Session, journal_id: UUID, updated_journal: JournalEntryUpdate, user_id: UUID) -> Optional[JournalEntry]:
    """
    Updates content and/or mood. AI fields are only written by the job controller.
    """
    journal = get_journal(db, journal_id, user_id)
    if journal:
        update_data = updated_journal.model_dump(exclude_unset=True)
        for field, value in update_data.items():
            setattr(journal, field, value)
        db.commit()
        db.refresh(journal)
        return journal
    return None


def delete_journal(db: Session, journal_id: UUID, user_id: UUID) -> Optional[JournalEntry]:
    journal = get_journal(db, journal_id, user_id)
    if journal:
        db.delete(journal)
        db.commit()
        return journal
    return None


# AI state writes
def update_journal_ai(
    db: Session,
    journal_id: UUID,
    user_id: UUID,
    status: str,
    *,
    summary: Optional[str] = None,
    sentiment: Optional[Dict[str, Any]] = None,
    themes: Optional[List[str]] = None,
    error: Optional[str] = None,
    attempt: Optional[int] = None,
    expected_status: Optional[str] = None,
    expected_attempt: Optional[int] = None,
) -> bool:
    """
    Writes the complete AI field set in one statement. Fields not passed are cleared.

    Args:
        attempt (Optional[int]): New value for ``ai_attempt``; left unchanged if None.
        expected_status (Optional[str]): Only write if the row is still in this status.
        expected_attempt (Optional[int]): Only write if the row is still on this attempt.

    Returns:
        bool: False if no row matched.
    """
    values = _ai_values(status, summary, sentiment, themes, error)
    if attempt is not None:
        values["ai_attempt"] = attempt
    return conditional_ai_update(
        db,
        JournalEntry,
        journal_id,
        user_id,
        values,
        expected_status=expected_status,
        expected_attempt=expected_attempt,
    )


def claim_journal_for_processing(db: Session, journal: JournalEntry) -> Optional[int]:
    """
    Moves an entry to ``processing`` if nobody else has touched it since it was read.

    Returns:
        Optional[int]: The new attempt number, or None if the claim lost a race.
    """
    attempt = journal.ai_attempt + 1
    claimed = update_journal_ai(
        db,
        journal.id,
        journal.user_id,
        PROCESSING,
        attempt=attempt,
        expected_status=journal.ai_status,
        expected_attempt=journal.ai_attempt,
    )
    return attempt if claimed else None


def finish_journal_success(
    db: Session,
    journal_id: UUID,
    user_id: UUID,
    attempt: int,
    summary: str,
    sentiment: Dict[str, Any],
    themes: List[str],
) -> bool:
    return update_journal_ai(
        db,
        journal_id,
        user_id,
        SUCCESS,
        summary=summary,
        sentiment=sentiment,
        themes=themes,
        expected_status=PROCESSING,
        expected_attempt=attempt,
    )


def finish_journal_failure(db: Session, journal_id: UUID, user_id: UUID, attempt: int, error: str) -> bool:
    return update_journal_ai(
        db, journal_id, user_id, FAILED, error=error, expected_status=PROCESSING, expected_attempt=attempt
    )


def reset_journal_ai(db: Session, journal_id: UUID, user_id: UUID, expected_status: str) -> bool:
    """
    Resets an entry to ``pending`` (clearing all output) if it is still in ``expected_status``.
    """
    return update_journal_ai(db, journal_id, user_id, PENDING, expected_status=expected_status)
