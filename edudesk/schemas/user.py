from datetime import datetime
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field


class RoleEnum(str, Enum):
    superadmin = "superadmin"
    admin = "admin"
    agent = "agent"


class AgentStatusEnum(str, Enum):
    pending = "pending"
    approved = "approved"
    rejected = "rejected"


class UserBase(BaseModel):
    email: EmailStr
    first_name: str
    last_name: str


class UserCreate(UserBase):
    password: str = Field(..., min_length=8)
    roles: List[RoleEnum]


class User(UserBase):
    id: int
    is_active: bool
    created_at: datetime
    role_names: List[str] = Field(default_factory=list)

    model_config = ConfigDict(from_attributes=True)


class AgentProfileCreate(BaseModel):
    user_id: int = Field(..., description="The ID of the user to register as an agent")
    company_name: Optional[str] = Field(None, max_length=200, examples=["Global Study Partners"])
    status: AgentStatusEnum = AgentStatusEnum.pending


class AgentStatusUpdate(BaseModel):
    status: AgentStatusEnum


class AgentProfile(BaseModel):
    id: int
    user_id: int
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    email: Optional[str] = None
    company_name: Optional[str] = None
    status: str

    model_config = ConfigDict(from_attributes=True)
