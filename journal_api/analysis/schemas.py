import math
from typing import Any, List, Literal, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, StrictStr, field_validator

from journal_api.insights.schemas import Trajectory
from journal_api.journals.schemas import SentimentLabel


def _clamped_score(value: Any) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ValueError("must be a number")
    if not math.isfinite(value):
        raise ValueError("must be finite")
    return max(-1.0, min(1.0, float(value)))


def _non_blank(value: str) -> str:
    if not value.strip():
        raise ValueError("must not be blank")
    return value


# --- Structural contracts for provider payloads ---

class SentimentResult(BaseModel):
    score: float
    label: SentimentLabel

    @field_validator("score", mode="before")
    @classmethod
    def clamp_score(cls, value: Any) -> float:
        return _clamped_score(value)


class EntryAnalysisResult(BaseModel):
    summary: StrictStr
    sentiment: SentimentResult
    themes: List[StrictStr] = Field(min_length=1)

    @field_validator("summary")
    @classmethod
    def summary_not_blank(cls, value: str) -> str:
        return _non_blank(value)


class SentimentAnalysisResult(BaseModel):
    overall: StrictStr
    average: float
    trajectory: Trajectory

    @field_validator("average", mode="before")
    @classmethod
    def clamp_average(cls, value: Any) -> float:
        return _clamped_score(value)


class BatchInsightResult(BaseModel):
    """Provider batch payload; ``sentimentAnalysis`` is stored as the insight's sentiment trend."""

    model_config = ConfigDict(populate_by_name=True)

    reflection: StrictStr
    themes: List[StrictStr] = Field(min_length=1)
    sentiment_analysis: SentimentAnalysisResult = Field(alias="sentimentAnalysis")

    @field_validator("reflection")
    @classmethod
    def reflection_not_blank(cls, value: str) -> str:
        return _non_blank(value)


# --- HTTP shapes ---

class ProcessAIRequest(BaseModel):
    entryId: UUID


class AIActionResult(BaseModel):
    """Uniform outcome of every AI action endpoint."""

    success: bool
    error: Optional[str] = None
    errorType: Optional[str] = None
    canRetry: Optional[bool] = None
    retryAfter: Optional[int] = None
    insightId: Optional[UUID] = None


class AIConnectionStatus(BaseModel):
    success: bool
    message: Optional[str] = None
    error: Optional[str] = None
