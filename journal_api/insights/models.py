import uuid
from datetime import datetime, timezone
from sqlalchemy import Column, String, Text, Date, DateTime, Integer, JSON, Uuid
from journal_api.core.database import Base


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Insight(Base):
    __tablename__ = "insights"

    id = Column(Uuid(as_uuid=True), primary_key=True, index=True, default=uuid.uuid4)
    user_id = Column(Uuid(as_uuid=True), index=True, nullable=False)

    insight_type = Column(String, nullable=False)  # weekly, monthly
    start_date = Column(Date, nullable=False)
    end_date = Column(Date, nullable=False)

    ai_status = Column(String, nullable=False, default="pending")
    content = Column(Text, nullable=True)
    themes = Column(JSON, nullable=True)
    sentiment_trend = Column(JSON, nullable=True)  # {"overall", "average", "trajectory"}
    ai_error = Column(Text, nullable=True)
    ai_attempt = Column(Integer, nullable=False, default=0)

    created_at = Column(DateTime, nullable=False, default=_utcnow)
    updated_at = Column(DateTime, nullable=False, default=_utcnow, onupdate=_utcnow)
