from typing import List
import logging

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from edudesk.core.errors import AppError, PersistenceError
from edudesk.core.security import AuthContext, require_admin
from edudesk.database import get_db
from edudesk.schemas.assignment import (
    Assignment,
    AssignmentCount,
    BulkAssignRequest,
    BulkAssignResult,
    SyncAgentsRequest,
    SyncResult,
)
from edudesk.schemas.common import ApiResponse, success_response
from edudesk.services import assignments as assignment_service

router = APIRouter(prefix="/agent-university", tags=["agent-university"])
logger = logging.getLogger(__name__)


# Bulk assignment - admins only
@router.post("/univerity-broucher-bulk-assign", response_model=ApiResponse[BulkAssignResult])
def bulk_assign(
    payload: BulkAssignRequest,
    db: Session = Depends(get_db),
    ctx: AuthContext = Depends(require_admin)
):
    """
    Assign every agent in `agentIds` to every program in `universityIds`.

    Pairs that are already assigned are left untouched.
    """
    try:
        result = assignment_service.bulk_assign(
            db, payload.university_ids, payload.agent_ids, assigned_by=ctx.user_id
        )
    except AppError:
        raise
    except Exception as e:
        db.rollback()
        logger.error(f"Bulk assign error: {str(e)}", exc_info=True)
        raise PersistenceError("Failed to perform bulk assignment")
    return success_response(
        "Bulk assignment completed successfully",
        BulkAssignResult(created=result.created, skipped=result.skipped)
    )


# Statistics for counts (for listing page)
@router.get("/stats/assignment-counts", response_model=ApiResponse[List[AssignmentCount]])
def get_assignment_counts(
    db: Session = Depends(get_db),
    ctx: AuthContext = Depends(require_admin)
):
    try:
        stats = assignment_service.assignment_counts(db)
    except Exception as e:
        logger.error(f"Get assignment counts error: {str(e)}", exc_info=True)
        raise PersistenceError("Failed to get assignment counts")
    return success_response("Assignment counts retrieved successfully", stats)


@router.get("/university/{university_id}/agents", response_model=ApiResponse[List[Assignment]])
def get_assigned_agents(
    university_id: int,
    db: Session = Depends(get_db),
    ctx: AuthContext = Depends(require_admin)
):
    try:
        rows = assignment_service.get_program_agents(db, university_id)
    except Exception as e:
        logger.error(f"Get assigned agents error: {str(e)}", exc_info=True)
        raise PersistenceError("Failed to get assigned agents")
    return success_response(
        "Assigned agents retrieved successfully",
        [Assignment.model_validate(row) for row in rows]
    )


# Sync agents for a specific university (edit mode)
@router.post("/university/{university_id}/sync-agents", response_model=ApiResponse[SyncResult])
def sync_university_agents(
    university_id: int,
    payload: SyncAgentsRequest,
    db: Session = Depends(get_db),
    ctx: AuthContext = Depends(require_admin)
):
    """Add agents missing from the program and remove agents not in `agentIds`."""
    try:
        result = assignment_service.sync_program_agents(
            db, university_id, payload.agent_ids, assigned_by=ctx.user_id
        )
    except AppError:
        raise
    except Exception as e:
        db.rollback()
        logger.error(f"Sync university agents error: {str(e)}", exc_info=True)
        raise PersistenceError("Failed to sync agents")
    return success_response(
        "Agents synced successfully",
        SyncResult(added=result.added, removed=result.removed)
    )
