from uuid import UUID
from typing import List
import logging

from fastapi import APIRouter, Depends, HTTPException, Security, status
from sqlalchemy.orm import Session

from journal_api.analysis.ai_providers.base import AIService
from journal_api.analysis.routes import outcome_to_response
from journal_api.analysis.schemas import AIActionResult
from journal_api.analysis.service import generate_insight, retry_insight
from journal_api.auth.service import get_current_user_id
from journal_api.core.database import get_db
from journal_api.core.dependency import get_ai_service
from journal_api.insights.db import delete_insight, get_insight, get_user_insights
from journal_api.insights.schemas import InsightBase, InsightGenerateRequest

router = APIRouter(prefix="/insights", tags=["Insights"])
logger = logging.getLogger(__name__)


@router.post(
    "",
    response_model=AIActionResult,
    response_model_exclude_none=True,
    summary="Generate a weekly or monthly insight",
    description="""
                Reflect on the entries in a date range. When dates are omitted the last 7 (weekly)
                or 30 (monthly) days are used. A range with no entries fails without creating an insight.
                """,
    responses={
        200: {"description": "Job ran; `insightId` is set whenever an insight record exists."},
        400: {"description": "Start date after end date."},
        401: {"description": "Unauthorized."},
        500: {"description": "Unexpected server error."},
    },
)
def generate_insight_route(
    body: InsightGenerateRequest,
    db: Session = Depends(get_db),
    user_id: UUID = Security(get_current_user_id),
    ai_service: AIService = Depends(get_ai_service),
) -> AIActionResult:
    try:
        logger.info(f"Generating {body.insight_type} insight for user {user_id}")
        outcome = generate_insight(
            db, user_id, body.insight_type, ai_service, start_date=body.start_date, end_date=body.end_date
        )
    except Exception:
        logger.exception(f"Failed generating {body.insight_type} insight for user {user_id}")
        raise HTTPException(status_code=500, detail="Failed to generate insight")
    return outcome_to_response(outcome)


@router.post(
    "/{insight_id}/retry",
    response_model=AIActionResult,
    response_model_exclude_none=True,
    summary="Retry a failed insight",
    responses={
        200: {"description": "Job ran."},
        401: {"description": "Unauthorized."},
        404: {"description": "Insight not found."},
        409: {"description": "Insight is not failed, or is already being processed."},
        500: {"description": "Unexpected server error."},
    },
)
def retry_insight_route(
    insight_id: UUID,
    db: Session = Depends(get_db),
    user_id: UUID = Security(get_current_user_id),
    ai_service: AIService = Depends(get_ai_service),
) -> AIActionResult:
    try:
        outcome = retry_insight(db, insight_id, user_id, ai_service)
    except Exception:
        logger.exception(f"Failed retrying insight {insight_id} for user {user_id}")
        raise HTTPException(status_code=500, detail="Failed to retry insight")
    return outcome_to_response(outcome)


@router.get(
    "",
    response_model=List[InsightBase],
    summary="List insights",
    responses={
        200: {"description": "Insights retrieved."},
        401: {"description": "Unauthorized."},
        500: {"description": "Failed to retrieve insights."},
    },
)
def list_insights_route(
    skip: int = 0,
    limit: int = 100,
    db: Session = Depends(get_db),
    user_id: UUID = Security(get_current_user_id),
) -> List[InsightBase]:
    try:
        return get_user_insights(db, user_id, skip, limit)
    except Exception as e:
        logger.error(f"Error fetching insights for user {user_id}: {e}")
        raise HTTPException(status_code=500, detail="Failed to fetch insights")


@router.get(
    "/{insight_id}",
    response_model=InsightBase,
    summary="Get an insight",
    responses={
        200: {"description": "Insight retrieved."},
        401: {"description": "Unauthorized."},
        404: {"description": "Insight not found."},
    },
)
def read_insight_route(
    insight_id: UUID,
    db: Session = Depends(get_db),
    user_id: UUID = Security(get_current_user_id),
) -> InsightBase:
    insight = get_insight(db, insight_id, user_id)
    if insight is None:
        raise HTTPException(status_code=404, detail="Insight not found")
    return insight


@router.delete(
    "/{insight_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete an insight",
    responses={
        204: {"description": "Insight deleted."},
        401: {"description": "Unauthorized."},
        404: {"description": "Insight not found."},
    },
)
def delete_insight_route(
    insight_id: UUID,
    db: Session = Depends(get_db),
    user_id: UUID = Security(get_current_user_id),
) -> None:
    if delete_insight(db, insight_id, user_id) is None:
        raise HTTPException(status_code=404, detail="Insight not found")
