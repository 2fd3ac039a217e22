from uuid import UUID
from typing import List
import logging

from fastapi import APIRouter, Depends, HTTPException, Security, status
from sqlalchemy.orm import Session

from journal_api.auth.service import get_current_user_id
from journal_api.core.database import get_db
from journal_api.journals.schemas import (
    JournalEntryCreate,
    JournalEntryUpdate,
    JournalEntryBase,
    JournalStatus,
)
from journal_api.journals.db import (
    create_journal,
    get_journal,
    update_journal,
    delete_journal,
    get_user_journals,
)

router = APIRouter(prefix="/entries", tags=["Entries"])
logger = logging.getLogger(__name__)


@router.get(
    "",
    response_model=List[JournalEntryBase],
    summary="List journal entries",
    description="Retrieve a paginated list of the authenticated user's entries, newest first.",
    responses={
        200: {"description": "Entries retrieved successfully."},
        401: {"description": "Unauthorized."},
        500: {"description": "Failed to retrieve entries."},
    },
)
def list_entries_route(
    skip: int = 0,
    limit: int = 100,
    db: Session = Depends(get_db),
    user_id: UUID = Security(get_current_user_id),
) -> List[JournalEntryBase]:
    try:
        return get_user_journals(db, user_id, skip, limit)
    except Exception as e:
        logger.error(f"Error fetching entries for user {user_id}: {e}")
        raise HTTPException(status_code=500, detail="Failed to fetch journal entries")


@router.post(
    "",
    response_model=JournalEntryBase,
    status_code=status.HTTP_201_CREATED,
    summary="Create a journal entry",
    description="Create an entry in the `pending` AI state. Analysis is triggered separately via `POST /process-ai`.",
    responses={
        201: {"description": "Entry created."},
        401: {"description": "Unauthorized."},
        422: {"description": "Invalid entry body."},
        500: {"description": "Failed to create entry."},
    },
)
def create_entry_route(
    journal: JournalEntryCreate,
    db: Session = Depends(get_db),
    user_id: UUID = Security(get_current_user_id),
) -> JournalEntryBase:
    try:
        entry = create_journal(db, journal, user_id)
        logger.info(f"entry {entry.id}: created for user {user_id}")
        return entry
    except Exception as e:
        logger.error(f"Error creating entry for user {user_id}: {e}")
        raise HTTPException(status_code=500, detail="Failed to create journal entry")


@router.get(
    "/{entry_id}",
    response_model=JournalEntryBase,
    summary="Get a journal entry",
    responses={
        200: {"description": "Entry retrieved."},
        401: {"description": "Unauthorized."},
        404: {"description": "Entry not found."},
    },
)
def read_entry_route(
    entry_id: UUID,
    db: Session = Depends(get_db),
    user_id: UUID = Security(get_current_user_id),
) -> JournalEntryBase:
    entry = get_journal(db, entry_id, user_id)
    if entry is None:
        raise HTTPException(status_code=404, detail="Journal entry not found")
    return entry


@router.get(
    "/{entry_id}/status",
    response_model=JournalStatus,
    summary="Get an entry's AI status",
    description="Lightweight read of `ai_status` and `ai_error`, used by clients polling for a settled result.",
    responses={
        200: {"description": "Status retrieved."},
        401: {"description": "Unauthorized."},
        404: {"description": "Entry not found."},
    },
)
def read_entry_status_route(
    entry_id: UUID,
    db: Session = Depends(get_db),
    user_id: UUID = Security(get_current_user_id),
) -> JournalStatus:
    entry = get_journal(db, entry_id, user_id)
    if entry is None:
        raise HTTPException(status_code=404, detail="Journal entry not found")
    return entry


@router.put(
    "/{entry_id}",
    response_model=JournalEntryBase,
    summary="Update a journal entry",
    description="Update content and/or mood. AI results are left as they are; use regenerate to refresh them.",
    responses={
        200: {"description": "Entry updated."},
        401: {"description": "Unauthorized."},
        404: {"description": "Entry not found."},
        500: {"description": "Failed to update entry."},
    },
)
def update_entry_route(
    entry_id: UUID,
    journal: JournalEntryUpdate,
    db: Session = Depends(get_db),
    user_id: UUID = Security(get_current_user_id),
) -> JournalEntryBase:
    try:
        updated = update_journal(db, entry_id, journal, user_id)
    except Exception as e:
        logger.error(f"Error updating entry {entry_id} for user {user_id}: {e}")
        raise HTTPException(status_code=500, detail="Failed to update journal entry")
    if updated is None:
        raise HTTPException(status_code=404, detail="Journal entry not found")
    return updated


@router.delete(
    "/{entry_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete a journal entry",
    responses={
        204: {"description": "Entry deleted."},
        401: {"description": "Unauthorized."},
        404: {"description": "Entry not found."},
    },
)
def delete_entry_route(
    entry_id: UUID,
    db: Session = Depends(get_db),
    user_id: UUID = Security(get_current_user_id),
) -> None:
    try:
        deleted = delete_journal(db, entry_id, user_id)
    except Exception as e:
        logger.error(f"Error deleting entry {entry_id} for user {user_id}: {e}")
        raise HTTPException(status_code=500, detail="Failed to delete journal entry")
    if deleted is None:
        raise HTTPException(status_code=404, detail="Journal entry not found")
