"""
Agent ↔ university program assignments.

Provides:
- sync of one program's agent set to a desired set (minimal inserts/deletes)
- bulk insert-if-absent over programs × agents
- lookups used for agent visibility checks and the admin statistics page
"""

import logging
from dataclasses import dataclass
from itertools import product
from typing import List, Optional, Set

from sqlalchemy import func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from edudesk.core.errors import NotFoundError, PersistenceError, ValidationError
from edudesk.models.assignment import AgentUniversityAssignment
from edudesk.models.base import utc_now
from edudesk.models.brochure import UniversityProgram
from edudesk.models.user import AgentProfile

logger = logging.getLogger(__name__)


@dataclass
class SyncResult:
    added: int
    removed: int


@dataclass
class BulkAssignResult:
    created: int
    skipped: int


def _require_id_list(value, message: str, allow_empty: bool) -> List[int]:
    if value is None or isinstance(value, (str, bytes, dict)) or not isinstance(value, (list, tuple)):
        raise ValidationError(message)
    if not allow_empty and len(value) == 0:
        raise ValidationError(message)
    ids = []
    for item in value:
        if isinstance(item, bool) or not isinstance(item, int):
            raise ValidationError(f"Invalid identifier: {item!r}")
        ids.append(item)
    return ids


def _ensure_programs_exist(db: Session, program_ids: Set[int]) -> None:
    found = {
        row[0] for row in db.query(UniversityProgram.id).filter(UniversityProgram.id.in_(program_ids)).all()
    }
    missing = program_ids - found
    if missing:
        raise NotFoundError(f"University programs not found: {sorted(missing)}")


def _ensure_agents_exist(db: Session, agent_ids: Set[int]) -> None:
    if not agent_ids:
        return
    found = {row[0] for row in db.query(AgentProfile.id).filter(AgentProfile.id.in_(agent_ids)).all()}
    missing = agent_ids - found
    if missing:
        raise NotFoundError(f"Agents not found: {sorted(missing)}")


def sync_program_agents(
    db: Session,
    program_id: Optional[int],
    agent_ids,
    assigned_by: Optional[int],
) -> SyncResult:
    """
    Make the program's stored agent set equal to ``agent_ids``.

    Duplicates in ``agent_ids`` are ignored. Removed agents are deleted in one
    batch, new agents inserted in one batch, and everything is committed in a
    single transaction.

    Raises:
        ValidationError: missing program id or agent ids that are not a list
        NotFoundError: unknown program or agent
        PersistenceError: the delete or insert failed
    """
    if program_id is None or program_id == "":
        raise ValidationError("University ID is required")
    desired = set(_require_id_list(agent_ids, "Agent IDs must be an array", allow_empty=True))

    _ensure_programs_exist(db, {program_id})
    _ensure_agents_exist(db, desired)

    try:
        existing = {
            row[0]
            for row in db.query(AgentUniversityAssignment.agent_id)
            .filter(AgentUniversityAssignment.university_program_id == program_id)
            .all()
        }

        to_remove = existing - desired
        to_add = desired - existing

        if to_remove:
            db.query(AgentUniversityAssignment).filter(
                AgentUniversityAssignment.university_program_id == program_id,
                AgentUniversityAssignment.agent_id.in_(to_remove),
            ).delete(synchronize_session="fetch")

        if to_add:
            now = utc_now()
            db.add_all([
                AgentUniversityAssignment(
                    agent_id=agent_id,
                    university_program_id=program_id,
                    assigned_by=assigned_by,
                    assigned_at=now,
                )
                for agent_id in sorted(to_add)
            ])

        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"Error syncing agents for program {program_id}: {str(e)}", exc_info=True)
        raise PersistenceError("Failed to sync agents") from e

    logger.info(
        f"University agents synced: university_id={program_id} "
        f"added={len(to_add)} removed={len(to_remove)}"
    )
    return SyncResult(added=len(to_add), removed=len(to_remove))


def bulk_assign(
    db: Session,
    program_ids,
    agent_ids,
    assigned_by: Optional[int],
) -> BulkAssignResult:
    """
    Assign every agent to every program, skipping pairs that already exist.

    Existing rows keep their original ``assigned_by`` and ``assigned_at``.
    """
    programs = set(_require_id_list(program_ids, "University IDs are required", allow_empty=False))
    agents = set(_require_id_list(agent_ids, "Agent IDs are required", allow_empty=False))

    _ensure_programs_exist(db, programs)
    _ensure_agents_exist(db, agents)

    try:
        existing_pairs = {
            (program_id, agent_id)
            for program_id, agent_id in db.query(
                AgentUniversityAssignment.university_program_id, AgentUniversityAssignment.agent_id
            )
            .filter(
                AgentUniversityAssignment.university_program_id.in_(programs),
                AgentUniversityAssignment.agent_id.in_(agents),
            )
            .all()
        }

        now = utc_now()
        new_rows = [
            AgentUniversityAssignment(
                agent_id=agent_id,
                university_program_id=program_id,
                assigned_by=assigned_by,
                assigned_at=now,
            )
            for program_id, agent_id in sorted(product(programs, agents))
            if (program_id, agent_id) not in existing_pairs
        ]
        db.add_all(new_rows)
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"Bulk assign error: {str(e)}", exc_info=True)
        raise PersistenceError("Failed to perform bulk assignment") from e

    result = BulkAssignResult(created=len(new_rows), skipped=len(programs) * len(agents) - len(new_rows))
    logger.info(f"Bulk assignment completed: {result}")
    return result


def get_program_agents(db: Session, program_id: int) -> List[AgentUniversityAssignment]:
    return (
        db.query(AgentUniversityAssignment)
        .filter(AgentUniversityAssignment.university_program_id == program_id)
        .order_by(AgentUniversityAssignment.id)
        .all()
    )


def assignment_counts(db: Session) -> List[dict]:
    """Number of assigned agents (and their ids) per university program."""
    counts = (
        db.query(AgentUniversityAssignment.university_program_id, func.count(AgentUniversityAssignment.id))
        .group_by(AgentUniversityAssignment.university_program_id)
        .order_by(AgentUniversityAssignment.university_program_id)
        .all()
    )
    agents_by_program = {}
    for program_id, agent_id in (
        db.query(AgentUniversityAssignment.university_program_id, AgentUniversityAssignment.agent_id)
        .order_by(AgentUniversityAssignment.id)
        .all()
    ):
        agents_by_program.setdefault(program_id, []).append(agent_id)

    return [
        {"university_id": program_id, "count": count, "agents": agents_by_program.get(program_id, [])}
        for program_id, count in counts
    ]


def assigned_program_ids(db: Session, agent_id: Optional[int]) -> Set[int]:
    if agent_id is None:
        return set()
    return {
        row[0]
        for row in db.query(AgentUniversityAssignment.university_program_id)
        .filter(AgentUniversityAssignment.agent_id == agent_id)
        .distinct()
        .all()
    }


def is_agent_assigned(db: Session, agent_id: Optional[int], program_id: int) -> bool:
    if agent_id is None:
        return False
    return db.query(AgentUniversityAssignment.id).filter(
        AgentUniversityAssignment.agent_id == agent_id,
        AgentUniversityAssignment.university_program_id == program_id,
    ).first() is not None
