import datetime as _dt
from typing import Optional, List, Literal
from uuid import UUID
from pydantic import BaseModel, Field

from journal_api.journals.schemas import AIStatus

InsightType = Literal["weekly", "monthly"]
Trajectory = Literal["improving", "declining", "stable"]


class BaseSchema(BaseModel):
    class Config:
        from_attributes = True


class SentimentTrend(BaseSchema):
    overall: str
    average: float = Field(ge=-1.0, le=1.0)
    trajectory: Trajectory


class InsightBase(BaseSchema):
    id: UUID
    user_id: UUID
    insight_type: InsightType
    start_date: _dt.date
    end_date: _dt.date
    ai_status: AIStatus = "pending"
    content: Optional[str] = None
    themes: Optional[List[str]] = None
    sentiment_trend: Optional[SentimentTrend] = None
    ai_error: Optional[str] = None
    created_at: _dt.datetime
    updated_at: _dt.datetime


class InsightGenerateRequest(BaseModel):
    """Body of `POST /insights`; accepts camelCase or snake_case keys."""

    insight_type: InsightType = Field(alias="insightType")
    start_date: Optional[_dt.date] = Field(default=None, alias="startDate")
    end_date: Optional[_dt.date] = Field(default=None, alias="endDate")

    class Config:
        populate_by_name = True
