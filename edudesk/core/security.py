from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional, Tuple

import bcrypt
from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer
from jose import JWTError, jwt
from sqlalchemy.orm import Session, joinedload

from edudesk.core.config import settings
from edudesk.database import get_db
from edudesk.models.user import User, UserRole
from edudesk.schemas.auth import TokenData

SUPERADMIN = "superadmin"
ADMIN = "admin"
AGENT = "agent"
ALL_ADMINS = (SUPERADMIN, ADMIN)

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="token")


@dataclass(frozen=True)
class AuthContext:
    """The authenticated caller, handed explicitly to each handler."""

    user_id: int
    email: str
    roles: Tuple[str, ...]
    agent_id: Optional[int] = None

    def has_any_role(self, *names: str) -> bool:
        return any(name in self.roles for name in names)

    @property
    def is_admin(self) -> bool:
        return self.has_any_role(*ALL_ADMINS)

    @property
    def is_agent(self) -> bool:
        return AGENT in self.roles and not self.is_admin


def verify_password(plain_password: str, hashed_password: str) -> bool:
    return bcrypt.checkpw(plain_password.encode("utf-8"), hashed_password.encode("utf-8"))


def authenticate_user(db: Session, email: str, password: str) -> Optional[User]:
    """Authenticate user with email and password"""
    user = db.query(User)\
             .options(joinedload(User.roles).joinedload(UserRole.role))\
             .filter(User.email == email)\
             .first()

    if not user or not user.is_active or not verify_password(password, user.password_hash):
        return None
    return user


def create_access_token(data: dict, expires_delta: Optional[timedelta] = None) -> str:
    """Create JWT token with expiration"""
    to_encode = data.copy()
    expire = datetime.now(timezone.utc) + (expires_delta or timedelta(minutes=15))
    to_encode.update({"exp": expire})
    return jwt.encode(to_encode, settings.secret_key, algorithm=settings.algorithm)


async def get_current_user(
    token: str = Depends(oauth2_scheme),
    db: Session = Depends(get_db)
) -> User:
    """Get current user from JWT token"""
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )
    try:
        payload = jwt.decode(token, settings.secret_key, algorithms=[settings.algorithm])
        email: str = payload.get("sub")
        if email is None:
            raise credentials_exception
        token_data = TokenData(email=email)
    except JWTError:
        raise credentials_exception

    user = db.query(User)\
             .options(
                 joinedload(User.roles).joinedload(UserRole.role),
                 joinedload(User.agent_profile)
             )\
             .filter(User.email == token_data.email)\
             .first()

    if user is None or not user.is_active:
        raise credentials_exception
    return user


async def get_auth_context(current_user: User = Depends(get_current_user)) -> AuthContext:
    agent_id = current_user.agent_profile.id if current_user.agent_profile else None
    return AuthContext(
        user_id=current_user.id,
        email=current_user.email,
        roles=tuple(current_user.role_names),
        agent_id=agent_id,
    )


def require_roles(*required_roles: str):
    """
    Build a dependency that validates the caller has any of the required roles

    Args:
        required_roles: role names, one of which the user must have

    Returns:
        A FastAPI dependency resolving to the caller's AuthContext
    """
    async def dependency(ctx: AuthContext = Depends(get_auth_context)) -> AuthContext:
        if not ctx.has_any_role(*required_roles):
            role_str = ", ".join(required_roles)
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"Insufficient permissions. Required roles: {role_str}",
            )
        return ctx

    return dependency


require_admin = require_roles(*ALL_ADMINS)
require_staff_or_agent = require_roles(*ALL_ADMINS, AGENT)
