from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.security import OAuth2PasswordRequestForm
from sqlalchemy.orm import Session
from datetime import timedelta

from edudesk.core.config import settings
from edudesk.core.security import authenticate_user, create_access_token
from edudesk.database import get_db
from edudesk.models.user import User
from edudesk.schemas.auth import Token, LoginRequest

router = APIRouter(tags=["authentication"])


def _issue_token(user: User) -> str:
    access_token_expires = timedelta(minutes=settings.access_token_expire_minutes)
    return create_access_token(
        data={
            "sub": user.email,
            "roles": user.role_names,
            "user_id": user.id
        },
        expires_delta=access_token_expires
    )


@router.post("/token", response_model=Token)
async def login_for_access_token(
    form_data: OAuth2PasswordRequestForm = Depends(),
    db: Session = Depends(get_db)
):
    """OAuth2-compatible token endpoint (for Swagger UI)"""
    user = authenticate_user(db, form_data.username, form_data.password)
    if not user:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Incorrect email or password",
            headers={"WWW-Authenticate": "Bearer"},
        )

    return {
        "access_token": _issue_token(user),
        "token_type": "bearer"
    }


@router.post("/login", response_model=Token)
async def login_with_email(
    login_data: LoginRequest,
    db: Session = Depends(get_db)
):
    """Alternative login endpoint that returns extended user info"""
    user = authenticate_user(db, login_data.email, login_data.password)
    if not user:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Incorrect email or password"
        )

    return {
        "access_token": _issue_token(user),
        "token_type": "bearer",
        "email": user.email,
        "roles": user.role_names,
        "user_id": user.id,
        "agent_id": user.agent_profile.id if user.agent_profile else None,
        "first_name": user.first_name,
        "last_name": user.last_name
    }
