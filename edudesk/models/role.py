# edudesk/models/role.py
from sqlalchemy import Column, Integer, String

from edudesk.models.base import Base


class Role(Base):
    __tablename__ = "roles"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(50), unique=True, nullable=False)
