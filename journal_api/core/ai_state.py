"""Conditional writes for rows that carry an ``ai_status`` column."""
from datetime import datetime, timezone
from typing import Any, Dict, Optional, Type
from uuid import UUID

from sqlalchemy.orm import Session

PENDING = "pending"
PROCESSING = "processing"
SUCCESS = "success"
FAILED = "failed"
TERMINAL_STATUSES = (SUCCESS, FAILED)


def conditional_ai_update(
    db: Session,
    model: Type[Any],
    entity_id: UUID,
    user_id: UUID,
    values: Dict[str, Any],
    *,
    expected_status: Optional[str] = None,
    expected_attempt: Optional[int] = None,
) -> bool:
    """
    Writes the full AI field set for one row in a single UPDATE.

    The row is matched by primary key and owner, and optionally by the
    status and attempt counter the caller last observed. Returns False when
    no row matched, which means another writer changed the row first.
    """
    query = db.query(model).filter(model.id == entity_id, model.user_id == user_id)
    if expected_status is not None:
        query = query.filter(model.ai_status == expected_status)
    if expected_attempt is not None:
        query = query.filter(model.ai_attempt == expected_attempt)

    values = dict(values)
    values["updated_at"] = datetime.now(timezone.utc)
    updated = query.update(values, synchronize_session=False)
    db.commit()
    return updated == 1


def is_stale(updated_at: Optional[datetime], stale_after_seconds: int) -> bool:
    if updated_at is None:
        return True
    if updated_at.tzinfo is None:
        updated_at = updated_at.replace(tzinfo=timezone.utc)
    age = datetime.now(timezone.utc) - updated_at
    return age.total_seconds() > stale_after_seconds
