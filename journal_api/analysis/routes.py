from uuid import UUID
import logging

from fastapi import APIRouter, Depends, HTTPException, Security
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from journal_api.analysis.ai_providers.base import AIService
from journal_api.analysis.runner import test_ai_connection
from journal_api.analysis.schemas import AIActionResult, AIConnectionStatus, ProcessAIRequest
from journal_api.analysis.service import (
    CONFLICT,
    INVALID_RANGE,
    NOT_FOUND,
    NOT_PENDING,
    JobOutcome,
    process_entry,
    regenerate_entry_analysis,
    retry_entry_analysis,
)
from journal_api.auth.service import get_current_user_id
from journal_api.core.database import get_db
from journal_api.core.dependency import get_ai_service

router = APIRouter(tags=["AI"])
logger = logging.getLogger(__name__)

_ACTION_RESPONSES = {
    200: {"description": "Job ran. `success` tells whether the AI step succeeded."},
    401: {"description": "Unauthorized."},
    404: {"description": "Record not found."},
    409: {"description": "Record is not in a state this action applies to, or is already being processed."},
    500: {"description": "Unexpected server error."},
}


def outcome_to_response(outcome: JobOutcome) -> AIActionResult:
    """
    Maps a controller outcome onto the HTTP contract.

    Missing records and wrong-state requests become 404/409; everything
    else, including AI failures, is a 200 carrying the uniform result body.
    """
    if outcome.reason == NOT_FOUND:
        raise HTTPException(status_code=404, detail=outcome.message)
    if outcome.reason in (NOT_PENDING, CONFLICT):
        raise HTTPException(status_code=409, detail=outcome.message)
    if outcome.reason == INVALID_RANGE:
        raise HTTPException(status_code=400, detail=outcome.message)
    return outcome.to_result()


def _run_action(action, label: str, record_id: UUID, user_id: UUID) -> AIActionResult:
    try:
        outcome = action()
    except Exception:
        logger.exception(f"Unexpected error during {label} for {record_id} (user {user_id})")
        raise HTTPException(status_code=500, detail=f"Failed to {label}")
    return outcome_to_response(outcome)


@router.post(
    "/process-ai",
    response_model=AIActionResult,
    response_model_exclude_none=True,
    summary="Analyze a pending entry",
    description="""
                Run AI analysis for an entry in the `pending` state (or stuck in `processing`).
                The entry moves to `processing` before the AI call and to `success` or `failed` after it.
                """,
    responses=_ACTION_RESPONSES,
)
def process_ai_route(
    body: ProcessAIRequest,
    db: Session = Depends(get_db),
    user_id: UUID = Security(get_current_user_id),
    ai_service: AIService = Depends(get_ai_service),
) -> AIActionResult:
    return _run_action(
        lambda: process_entry(db, body.entryId, user_id, ai_service),
        "analyze entry",
        body.entryId,
        user_id,
    )


@router.post(
    "/entries/{entry_id}/ai/retry",
    response_model=AIActionResult,
    response_model_exclude_none=True,
    summary="Retry a failed analysis",
    description="Reset a `failed` entry to `pending` and run the analysis again.",
    responses=_ACTION_RESPONSES,
)
def retry_ai_route(
    entry_id: UUID,
    db: Session = Depends(get_db),
    user_id: UUID = Security(get_current_user_id),
    ai_service: AIService = Depends(get_ai_service),
) -> AIActionResult:
    return _run_action(
        lambda: retry_entry_analysis(db, entry_id, user_id, ai_service),
        "retry analysis",
        entry_id,
        user_id,
    )


@router.post(
    "/entries/{entry_id}/ai/regenerate",
    response_model=AIActionResult,
    response_model_exclude_none=True,
    summary="Regenerate a successful analysis",
    description="Discard the current analysis of a `success` entry and compute a fresh one.",
    responses=_ACTION_RESPONSES,
)
def regenerate_ai_route(
    entry_id: UUID,
    db: Session = Depends(get_db),
    user_id: UUID = Security(get_current_user_id),
    ai_service: AIService = Depends(get_ai_service),
) -> AIActionResult:
    return _run_action(
        lambda: regenerate_entry_analysis(db, entry_id, user_id, ai_service),
        "regenerate analysis",
        entry_id,
        user_id,
    )


@router.get(
    "/test-ai",
    response_model=AIConnectionStatus,
    response_model_exclude_none=True,
    summary="Check the AI provider",
    description="Reports whether an API key is configured and whether a trivial analysis round-trips.",
    responses={
        200: {"description": "Provider reachable."},
        500: {"description": "Missing credential or failed round-trip."},
    },
)
def test_ai_route(ai_service: AIService = Depends(get_ai_service)):
    if not ai_service.has_credential():
        return JSONResponse(
            status_code=500,
            content={"success": False, "error": "OPENAI_API_KEY is not set in environment variables"},
        )
    if not test_ai_connection(ai_service):
        return JSONResponse(
            status_code=500,
            content={"success": False, "error": "AI connection test failed. Check the server logs for details."},
        )
    return AIConnectionStatus(success=True, message="AI connection successful")


@router.get("/health", summary="Liveness check")
def health_route():
    return {"status": "ok"}
