from typing import List, Optional
import logging

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from edudesk.core.errors import AppError, NotFoundError, PersistenceError, ValidationError
from edudesk.core.security import AuthContext, get_current_user, require_admin
from edudesk.database import get_db
from edudesk.models.role import Role
from edudesk.models.user import AgentProfile as AgentProfileModel, User as UserModel, UserRole
from edudesk.schemas.common import ApiResponse, success_response
from edudesk.schemas.user import (
    AgentProfile,
    AgentProfileCreate,
    AgentStatusEnum,
    AgentStatusUpdate,
    User,
    UserCreate,
)

router = APIRouter(prefix="/users", tags=["users"])
logger = logging.getLogger(__name__)


@router.post("/", response_model=ApiResponse[User], status_code=201)
def create_user(
    user: UserCreate,
    db: Session = Depends(get_db),
    ctx: AuthContext = Depends(require_admin)
):
    try:
        if db.query(UserModel).filter(UserModel.email == user.email).first():
            raise ValidationError("Email already registered")

        db_user = UserModel(
            email=user.email,
            first_name=user.first_name,
            last_name=user.last_name
        )
        db_user.set_password(user.password)
        db.add(db_user)
        db.flush()

        for role_name in user.roles:
            role = db.query(Role).filter(Role.name == role_name.value).first()
            if not role:
                raise ValidationError(f"Role '{role_name.value}' does not exist in database")
            db.add(UserRole(user_id=db_user.id, role_id=role.id))

        db.commit()
        db.refresh(db_user)
    except AppError:
        db.rollback()
        raise
    except Exception as e:
        db.rollback()
        logger.error(f"Error creating user: {str(e)}", exc_info=True)
        raise PersistenceError("Failed to create user")
    return success_response("User created successfully", User.model_validate(db_user))


@router.get("/me", response_model=ApiResponse[User])
def read_current_user(current_user: UserModel = Depends(get_current_user)):
    return success_response("User retrieved successfully", User.model_validate(current_user))


@router.post("/agents", response_model=ApiResponse[AgentProfile], status_code=201)
def create_agent_profile(
    profile: AgentProfileCreate,
    db: Session = Depends(get_db),
    ctx: AuthContext = Depends(require_admin)
):
    """Register an existing user as an agent."""
    try:
        target_user = db.query(UserModel).filter(UserModel.id == profile.user_id).first()
        if not target_user:
            raise NotFoundError("Target user not found")
        if target_user.agent_profile:
            raise ValidationError("User already has an agent profile")

        agent = AgentProfileModel(
            user_id=target_user.id,
            company_name=profile.company_name,
            status=profile.status.value
        )
        db.add(agent)

        agent_role = db.query(Role).filter(Role.name == "agent").first()
        if agent_role and "agent" not in target_user.role_names:
            db.add(UserRole(user_id=target_user.id, role_id=agent_role.id))

        db.commit()
        db.refresh(agent)
    except AppError:
        db.rollback()
        raise
    except Exception as e:
        db.rollback()
        logger.error(f"Error creating agent profile: {str(e)}", exc_info=True)
        raise PersistenceError("Failed to create agent profile")
    return success_response("Agent profile created successfully", AgentProfile.model_validate(agent))


@router.get("/agents", response_model=ApiResponse[List[AgentProfile]])
def read_agents(
    status: Optional[AgentStatusEnum] = Query(None, description="Filter by agent status"),
    skip: int = Query(0, ge=0),
    limit: int = Query(100, ge=1, le=1000),
    db: Session = Depends(get_db),
    ctx: AuthContext = Depends(require_admin)
):
    try:
        query = db.query(AgentProfileModel)
        if status is not None:
            query = query.filter(AgentProfileModel.status == status.value)
        agents = query.order_by(AgentProfileModel.id).offset(skip).limit(limit).all()
    except Exception as e:
        logger.error(f"Error fetching agents: {str(e)}", exc_info=True)
        raise PersistenceError("Failed to fetch agents")
    return success_response(
        "Agents retrieved successfully",
        [AgentProfile.model_validate(a) for a in agents]
    )


@router.patch("/agents/{agent_id}/status", response_model=ApiResponse[AgentProfile])
def update_agent_status(
    agent_id: int,
    payload: AgentStatusUpdate,
    db: Session = Depends(get_db),
    ctx: AuthContext = Depends(require_admin)
):
    try:
        agent = db.query(AgentProfileModel).filter(AgentProfileModel.id == agent_id).first()
        if not agent:
            raise NotFoundError("Agent not found")
        agent.status = payload.status.value
        db.commit()
        db.refresh(agent)
    except AppError:
        db.rollback()
        raise
    except Exception as e:
        db.rollback()
        logger.error(f"Error updating agent status: {str(e)}", exc_info=True)
        raise PersistenceError("Failed to update agent status")
    return success_response("Agent status updated successfully", AgentProfile.model_validate(agent))
