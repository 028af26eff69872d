from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

from edudesk.schemas.user import AgentProfile


class BulkAssignRequest(BaseModel):
    university_ids: Optional[List[int]] = Field(None, alias="universityIds")
    agent_ids: Optional[List[int]] = Field(None, alias="agentIds")

    model_config = ConfigDict(populate_by_name=True)


class SyncAgentsRequest(BaseModel):
    agent_ids: Optional[List[int]] = Field(None, alias="agentIds")

    model_config = ConfigDict(populate_by_name=True)


class SyncResult(BaseModel):
    added: int
    removed: int


class BulkAssignResult(BaseModel):
    created: int
    skipped: int


class AssignmentCount(BaseModel):
    university_id: int
    count: int
    agents: List[int]


class Assignment(BaseModel):
    id: int
    agent_id: int
    university_program_id: int
    assigned_by: Optional[int] = None
    assigned_at: datetime
    agent: Optional[AgentProfile] = None

    model_config = ConfigDict(from_attributes=True)
