# edudesk/models/assignment.py
from sqlalchemy import Column, DateTime, ForeignKey, Integer, UniqueConstraint
from sqlalchemy.orm import relationship

from edudesk.models.base import Base, utc_now


class AgentUniversityAssignment(Base):
    """One agent's permission to view one university program."""

    __tablename__ = "agent_university_assignments"
    __table_args__ = (
        UniqueConstraint("agent_id", "university_program_id", name="uq_agent_university_program"),
    )

    id = Column(Integer, primary_key=True, index=True)
    agent_id = Column(Integer, ForeignKey("agent_profiles.id", ondelete="CASCADE"), nullable=False, index=True)
    university_program_id = Column(
        Integer, ForeignKey("university_programs.id", ondelete="CASCADE"), nullable=False, index=True
    )
    assigned_by = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"))
    assigned_at = Column(DateTime(timezone=True), default=utc_now, nullable=False)
    created_at = Column(DateTime(timezone=True), default=utc_now, nullable=False)

    agent = relationship("AgentProfile", back_populates="assignments", lazy="joined")
    university_program = relationship("UniversityProgram", back_populates="assignments")
