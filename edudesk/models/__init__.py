# Import all models here so they can be imported elsewhere with a single import
# The order of imports is important here - import base first
from edudesk.models.base import Base
from edudesk.models.role import Role
from edudesk.models.user import User, UserRole, AgentProfile, AgentStatus
from edudesk.models.brochure import BrochureType, BrochureCategory, UniversityProgram, Brochure
from edudesk.models.assignment import AgentUniversityAssignment

__all__ = [
    'Base', 'Role', 'User', 'UserRole', 'AgentProfile', 'AgentStatus',
    'BrochureType', 'BrochureCategory', 'UniversityProgram', 'Brochure',
    'AgentUniversityAssignment',
]
