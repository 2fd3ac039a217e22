import datetime
from uuid import UUID, uuid4
from typing import Any, Dict, List, Optional

from sqlalchemy.orm import Session
from journal_api.core.ai_state import PENDING, PROCESSING, SUCCESS, FAILED, conditional_ai_update
from journal_api.insights.models import Insight


def _ai_values(
    status: str,
    content: Optional[str] = None,
    themes: Optional[List[str]] = None,
    sentiment_trend: Optional[Dict[str, Any]] = None,
    error: Optional[str] = None,
) -> Dict[str, Any]:
    return {
        "ai_status": status,
        "content": content,
        "themes": themes,
        "sentiment_trend": sentiment_trend,
        "ai_error": error,
    }


def get_insight(db: Session, insight_id: UUID, user_id: UUID) -> Optional[Insight]:
    return db.query(Insight).filter(
        Insight.id == insight_id,
        Insight.user_id == user_id
    ).first()


def get_user_insights(db: Session, user_id: UUID, skip: int = 0, limit: int = 100) -> List[Insight]:
    """
    Retrieves a user's insights, most recent period first.
    """
    return (
        db.query(Insight)
        .filter(Insight.user_id == user_id)
        .order_by(Insight.start_date.desc(), Insight.created_at.desc())
        .offset(skip)
        .limit(limit)
        .all()
    )


def create_insight(
    db: Session,
    user_id: UUID,
    insight_type: str,
    start_date: datetime.date,
    end_date: datetime.date,
) -> Insight:
    """
    Creates an insight record in the ``pending`` AI state.
    """
    insight = Insight(
        id=uuid4(),
        user_id=user_id,
        insight_type=insight_type,
        start_date=start_date,
        end_date=end_date,
        ai_status=PENDING,
        ai_attempt=0,
    )
    db.add(insight)
    db.commit()
    db.refresh(insight)
    return insight


def delete_insight(db: Session, insight_id: UUID, user_id: UUID) -> Optional[Insight]:
    insight = get_insight(db, insight_id, user_id)
    if insight:
        db.delete(insight)
        db.commit()
        return insight
    return None


def update_insight_ai(
    db: Session,
    insight_id: UUID,
    user_id: UUID,
    status: str,
    *,
    content: Optional[str] = None,
    themes: Optional[List[str]] = None,
    sentiment_trend: Optional[Dict[str, Any]] = None,
    error: Optional[str] = None,
    attempt: Optional[int] = None,
    expected_status: Optional[str] = None,
    expected_attempt: Optional[int] = None,
) -> bool:
    values = _ai_values(status, content, themes, sentiment_trend, error)
    if attempt is not None:
        values["ai_attempt"] = attempt
    return conditional_ai_update(
        db,
        Insight,
        insight_id,
        user_id,
        values,
        expected_status=expected_status,
        expected_attempt=expected_attempt,
    )


def claim_insight_for_processing(db: Session, insight: Insight) -> Optional[int]:
    attempt = insight.ai_attempt + 1
    claimed = update_insight_ai(
        db,
        insight.id,
        insight.user_id,
        PROCESSING,
        attempt=attempt,
        expected_status=insight.ai_status,
        expected_attempt=insight.ai_attempt,
    )
    return attempt if claimed else None


def finish_insight_success(
    db: Session,
    insight_id: UUID,
    user_id: UUID,
    attempt: int,
    content: str,
    themes: List[str],
    sentiment_trend: Dict[str, Any],
) -> bool:
    return update_insight_ai(
        db,
        insight_id,
        user_id,
        SUCCESS,
        content=content,
        themes=themes,
        sentiment_trend=sentiment_trend,
        expected_status=PROCESSING,
        expected_attempt=attempt,
    )


def finish_insight_failure(db: Session, insight_id: UUID, user_id: UUID, attempt: int, error: str) -> bool:
    return update_insight_ai(
        db, insight_id, user_id, FAILED, error=error, expected_status=PROCESSING, expected_attempt=attempt
    )


def reset_insight_ai(db: Session, insight_id: UUID, user_id: UUID, expected_status: str) -> bool:
    return update_insight_ai(db, insight_id, user_id, PENDING, expected_status=expected_status)
