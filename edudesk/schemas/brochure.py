import datetime as dt
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class BrochureTypeBase(BaseModel):
    name: str = Field(
        ...,
        min_length=2,
        max_length=100,
        examples=["Undergraduate", "Postgraduate"],
        description="Name of the brochure type"
    )


class BrochureTypeCreate(BrochureTypeBase):
    pass


class BrochureTypeUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=2, max_length=100)


class BrochureType(BrochureTypeBase):
    id: int

    model_config = ConfigDict(from_attributes=True)


class BrochureTypeWithCount(BrochureType):
    up_count: int = Field(0, description="Number of university programs of this type")


class BrochureCategoryBase(BaseModel):
    name: str = Field(..., min_length=2, max_length=100, examples=["Fees", "Scholarships"])
    brochure_type_id: Optional[int] = None


class BrochureCategoryCreate(BrochureCategoryBase):
    pass


class BrochureCategoryUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=2, max_length=100)
    brochure_type_id: Optional[int] = None


class BrochureCategory(BrochureCategoryBase):
    id: int
    brochure_type: Optional[BrochureType] = None

    model_config = ConfigDict(from_attributes=True)


class UniversityProgramBase(BaseModel):
    name: str = Field(..., min_length=2, max_length=200, examples=["Oxford"])
    brochure_type_id: int


class UniversityProgramCreate(UniversityProgramBase):
    pass


class UniversityProgramUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=2, max_length=200)
    brochure_type_id: Optional[int] = None


class UniversityProgram(UniversityProgramBase):
    id: int
    created_at: datetime
    brochure_type: Optional[BrochureType] = None

    model_config = ConfigDict(from_attributes=True)


class UniversityProgramWithCount(UniversityProgram):
    brochure_count: int = 0


class Brochure(BaseModel):
    id: int
    title: str
    brochure_category_id: Optional[int] = None
    university_program_id: int
    file_url: Optional[str] = Field(None, description="Path of the stored file relative to the upload root")
    name: Optional[str] = None
    url: Optional[str] = None
    date: Optional[dt.date] = None
    created_at: datetime
    updated_at: datetime
    category: Optional[BrochureCategory] = None

    model_config = ConfigDict(from_attributes=True)
