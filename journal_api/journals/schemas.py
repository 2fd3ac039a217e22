import datetime as _dt
from typing import Optional, List, Literal
from uuid import UUID
from pydantic import BaseModel, Field, field_validator


AIStatus = Literal["pending", "processing", "success", "failed"]
Mood = Literal["positive", "neutral", "negative", "mixed"]
SentimentLabel = Literal["positive", "negative", "neutral", "mixed"]


class BaseSchema(BaseModel):
    class Config:
        from_attributes = True


def _check_not_blank(value: Optional[str]) -> Optional[str]:
    # Length bounds are enforced when analysis runs, not on save.
    if value is not None and not value.strip():
        raise ValueError("Entry content cannot be just whitespace")
    return value


class AISentiment(BaseSchema):
    score: float = Field(ge=-1.0, le=1.0)
    label: SentimentLabel


class JournalEntryBase(BaseSchema):
    id: UUID
    user_id: UUID
    date: _dt.date
    content: str
    mood: Optional[Mood] = None
    ai_status: AIStatus = "pending"
    ai_summary: Optional[str] = None
    ai_sentiment: Optional[AISentiment] = None
    ai_themes: Optional[List[str]] = None
    ai_error: Optional[str] = None
    created_at: _dt.datetime
    updated_at: _dt.datetime


class JournalEntryCreate(BaseSchema):
    content: str = Field(min_length=1)
    mood: Optional[Mood] = None
    date: Optional[_dt.date] = None

    @field_validator("content")
    @classmethod
    def content_not_blank(cls, value: str) -> str:
        return _check_not_blank(value)


class JournalEntryUpdate(BaseSchema):
    content: Optional[str] = Field(default=None, min_length=1)
    mood: Optional[Mood] = None

    @field_validator("content")
    @classmethod
    def content_not_blank(cls, value: Optional[str]) -> Optional[str]:
        return _check_not_blank(value)


class JournalStatus(BaseSchema):
    id: UUID
    ai_status: AIStatus
    ai_error: Optional[str] = None
