# edudesk/models/brochure.py
from sqlalchemy import Column, Date, DateTime, ForeignKey, Integer, String
from sqlalchemy.orm import relationship

from edudesk.models.base import Base, utc_now


class BrochureType(Base):
    __tablename__ = "brochure_types"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(100), unique=True, nullable=False)

    programs = relationship("UniversityProgram", back_populates="brochure_type", order_by="UniversityProgram.name")
    categories = relationship("BrochureCategory", back_populates="brochure_type")


class BrochureCategory(Base):
    __tablename__ = "brochure_categories"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(100), nullable=False)
    brochure_type_id = Column(Integer, ForeignKey("brochure_types.id", ondelete="SET NULL"), index=True)

    brochure_type = relationship("BrochureType", back_populates="categories", lazy="joined")


class UniversityProgram(Base):
    __tablename__ = "university_programs"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(200), nullable=False)
    brochure_type_id = Column(Integer, ForeignKey("brochure_types.id", ondelete="CASCADE"), index=True)
    created_at = Column(DateTime(timezone=True), default=utc_now, nullable=False)

    brochure_type = relationship("BrochureType", back_populates="programs", lazy="joined")
    brochures = relationship("Brochure", back_populates="university_program", order_by="Brochure.id")
    assignments = relationship("AgentUniversityAssignment", back_populates="university_program")


class Brochure(Base):
    __tablename__ = "brochures"

    id = Column(Integer, primary_key=True, index=True)
    title = Column(String(200), nullable=False)
    brochure_category_id = Column(Integer, ForeignKey("brochure_categories.id", ondelete="SET NULL"), index=True)
    university_program_id = Column(
        Integer, ForeignKey("university_programs.id", ondelete="CASCADE"), nullable=False, index=True
    )
    file_url = Column(String(500))  # relative to the upload root, e.g. /documents/brochure/x_y/y.pdf
    name = Column(String(255))
    url = Column(String(500))
    date = Column(Date)
    created_at = Column(DateTime(timezone=True), default=utc_now, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=utc_now, onupdate=utc_now, nullable=False)

    category = relationship("BrochureCategory", lazy="joined")
    university_program = relationship("UniversityProgram", back_populates="brochures")
