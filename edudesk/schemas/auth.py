from pydantic import BaseModel, EmailStr
from typing import List, Optional


class Token(BaseModel):
    access_token: str
    token_type: str
    email: Optional[str] = None
    roles: Optional[List[str]] = None
    user_id: Optional[int] = None
    agent_id: Optional[int] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None


class TokenData(BaseModel):
    email: Optional[str] = None
    roles: Optional[List[str]] = None


class LoginRequest(BaseModel):
    email: EmailStr
    password: str
