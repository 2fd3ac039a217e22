import uuid
from datetime import datetime, timezone
from sqlalchemy import Column, String, Text, Date, DateTime, Integer, JSON, Uuid
from journal_api.core.database import Base


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class JournalEntry(Base):
    __tablename__ = "journal_entries"

    id = Column(Uuid(as_uuid=True), primary_key=True, index=True, default=uuid.uuid4)
    user_id = Column(Uuid(as_uuid=True), index=True, nullable=False)

    date = Column(Date, nullable=False, index=True)
    content = Column(Text, nullable=False)
    mood = Column(String, nullable=True)  # positive, neutral, negative, mixed

    ai_status = Column(String, nullable=False, default="pending")  # pending, processing, success, failed
    ai_summary = Column(Text, nullable=True)
    ai_sentiment = Column(JSON, nullable=True)  # {"score": float, "label": str}
    ai_themes = Column(JSON, nullable=True)
    ai_error = Column(Text, nullable=True)
    ai_attempt = Column(Integer, nullable=False, default=0)

    created_at = Column(DateTime, nullable=False, default=_utcnow)
    updated_at = Column(DateTime, nullable=False, default=_utcnow, onupdate=_utcnow)
