from datetime import date
from typing import List, Optional
import logging

from fastapi import APIRouter, Depends, File, Form, UploadFile
from sqlalchemy import func
from sqlalchemy.orm import Session

from edudesk.core.errors import AppError, ForbiddenError, NotFoundError, PersistenceError, ValidationError
from edudesk.core.security import AuthContext, require_admin, require_staff_or_agent
from edudesk.database import get_db
from edudesk.models.brochure import (
    Brochure as BrochureModel,
    BrochureCategory as CategoryModel,
    BrochureType as BrochureTypeModel,
    UniversityProgram as ProgramModel,
)
from edudesk.schemas.brochure import (
    Brochure,
    BrochureCategory,
    BrochureCategoryCreate,
    BrochureCategoryUpdate,
    BrochureType,
    BrochureTypeCreate,
    BrochureTypeUpdate,
    BrochureTypeWithCount,
    UniversityProgram,
    UniversityProgramCreate,
    UniversityProgramUpdate,
    UniversityProgramWithCount,
)
from edudesk.schemas.common import ApiResponse, success_response
from edudesk.services import assignments as assignment_service
from edudesk.services.brochure_storage import remove_brochure_file, save_temp_upload, store_brochure_file
from edudesk.services.cascade import apply_cascade, brochure_cascade, program_cascade, type_cascade

router = APIRouter(prefix="/brochures", tags=["brochures"])
logger = logging.getLogger(__name__)


def _get_or_404(db: Session, model, record_id: int, label: str):
    record = db.query(model).filter(model.id == record_id).first()
    if not record:
        raise NotFoundError(f"{label} not found")
    return record


def _ensure_type_exists(db: Session, type_id: Optional[int]) -> None:
    if type_id is not None:
        _get_or_404(db, BrochureTypeModel, type_id, "Brochure type")


def _ensure_category_exists(db: Session, category_id: Optional[int]) -> None:
    if category_id is not None:
        _get_or_404(db, CategoryModel, category_id, "Category")


def _brochure_counts(db: Session, program_ids: List[int]) -> dict:
    if not program_ids:
        return {}
    return dict(
        db.query(BrochureModel.university_program_id, func.count(BrochureModel.id))
        .filter(BrochureModel.university_program_id.in_(program_ids))
        .group_by(BrochureModel.university_program_id)
        .all()
    )


def _programs_with_counts(db: Session, programs) -> List[UniversityProgramWithCount]:
    counts = _brochure_counts(db, [p.id for p in programs])
    return [
        UniversityProgramWithCount(
            **UniversityProgram.model_validate(p).model_dump(),
            brochure_count=counts.get(p.id, 0)
        )
        for p in programs
    ]


def _visible_programs_query(db: Session, ctx: AuthContext):
    query = db.query(ProgramModel)
    if ctx.is_agent:
        assigned = assignment_service.assigned_program_ids(db, ctx.agent_id)
        query = query.filter(ProgramModel.id.in_(assigned))
    return query


# ----- Brochure types -----

@router.get("/types", response_model=ApiResponse[List[BrochureTypeWithCount]])
def read_brochure_types(
    db: Session = Depends(get_db),
    ctx: AuthContext = Depends(require_staff_or_agent)
):
    try:
        types = db.query(BrochureTypeModel).order_by(BrochureTypeModel.name).all()
        counts = dict(
            db.query(ProgramModel.brochure_type_id, func.count(ProgramModel.id))
            .group_by(ProgramModel.brochure_type_id)
            .all()
        )
    except Exception as e:
        logger.error(f"Error fetching brochure types: {str(e)}", exc_info=True)
        raise PersistenceError("Failed to get brochure types")

    data = [
        BrochureTypeWithCount(id=t.id, name=t.name, up_count=counts.get(t.id, 0))
        for t in types
    ]
    return success_response("Brochure types retrieved successfully", data)


@router.post("/types", response_model=ApiResponse[BrochureType], status_code=201)
def create_brochure_type(
    payload: BrochureTypeCreate,
    db: Session = Depends(get_db),
    ctx: AuthContext = Depends(require_admin)
):
    name = payload.name.strip()
    try:
        if db.query(BrochureTypeModel).filter(
            func.lower(BrochureTypeModel.name) == func.lower(name)
        ).first():
            raise ValidationError(f"Brochure type '{name}' already exists")

        brochure_type = BrochureTypeModel(name=name)
        db.add(brochure_type)
        db.commit()
        db.refresh(brochure_type)
    except AppError:
        db.rollback()
        raise
    except Exception as e:
        db.rollback()
        logger.error(f"Error creating brochure type: {str(e)}", exc_info=True)
        raise PersistenceError("Failed to create brochure type")
    return success_response("Brochure type created successfully", BrochureType.model_validate(brochure_type))


@router.put("/types/{type_id}", response_model=ApiResponse[BrochureType])
def update_brochure_type(
    type_id: int,
    payload: BrochureTypeUpdate,
    db: Session = Depends(get_db),
    ctx: AuthContext = Depends(require_admin)
):
    try:
        brochure_type = _get_or_404(db, BrochureTypeModel, type_id, "Brochure type")
        if payload.name is not None:
            new_name = payload.name.strip()
            if db.query(BrochureTypeModel).filter(
                func.lower(BrochureTypeModel.name) == func.lower(new_name),
                BrochureTypeModel.id != type_id
            ).first():
                raise ValidationError(f"Brochure type '{new_name}' already exists")
            brochure_type.name = new_name
        db.commit()
        db.refresh(brochure_type)
    except AppError:
        db.rollback()
        raise
    except Exception as e:
        db.rollback()
        logger.error(f"Error updating brochure type: {str(e)}", exc_info=True)
        raise PersistenceError("Failed to update brochure type")
    return success_response("Brochure type updated successfully", BrochureType.model_validate(brochure_type))


@router.delete("/types/{type_id}", response_model=ApiResponse[dict])
def delete_brochure_type(
    type_id: int,
    db: Session = Depends(get_db),
    ctx: AuthContext = Depends(require_admin)
):
    """Delete a type with all of its programs, their brochures and files."""
    try:
        brochure_type = _get_or_404(db, BrochureTypeModel, type_id, "Brochure type")
        counts = apply_cascade(db, type_cascade(brochure_type))
        db.commit()
    except AppError:
        db.rollback()
        raise
    except Exception as e:
        db.rollback()
        logger.error(f"Error deleting brochure type: {str(e)}", exc_info=True)
        raise PersistenceError("Failed to delete brochure type")
    return success_response(
        "Brochure type and all associated programs and brochures deleted successfully",
        counts
    )


# ----- Brochure categories -----

@router.get("/categories", response_model=ApiResponse[List[BrochureCategory]])
def read_categories(
    db: Session = Depends(get_db),
    ctx: AuthContext = Depends(require_staff_or_agent)
):
    try:
        categories = db.query(CategoryModel).order_by(CategoryModel.name).all()
    except Exception as e:
        logger.error(f"Error fetching categories: {str(e)}", exc_info=True)
        raise PersistenceError("Failed to get categories")
    return success_response(
        "Categories retrieved successfully",
        [BrochureCategory.model_validate(c) for c in categories]
    )


@router.post("/categories", response_model=ApiResponse[BrochureCategory], status_code=201)
def create_category(
    payload: BrochureCategoryCreate,
    db: Session = Depends(get_db),
    ctx: AuthContext = Depends(require_admin)
):
    try:
        _ensure_type_exists(db, payload.brochure_type_id)
        category = CategoryModel(name=payload.name.strip(), brochure_type_id=payload.brochure_type_id)
        db.add(category)
        db.commit()
        db.refresh(category)
    except AppError:
        db.rollback()
        raise
    except Exception as e:
        db.rollback()
        logger.error(f"Error creating category: {str(e)}", exc_info=True)
        raise PersistenceError("Failed to create category")
    return success_response("Category created successfully", BrochureCategory.model_validate(category))


@router.put("/categories/{category_id}", response_model=ApiResponse[BrochureCategory])
def update_category(
    category_id: int,
    payload: BrochureCategoryUpdate,
    db: Session = Depends(get_db),
    ctx: AuthContext = Depends(require_admin)
):
    try:
        category = _get_or_404(db, CategoryModel, category_id, "Category")
        if payload.name is not None:
            category.name = payload.name.strip()
        if payload.brochure_type_id is not None:
            _ensure_type_exists(db, payload.brochure_type_id)
            category.brochure_type_id = payload.brochure_type_id
        db.commit()
        db.refresh(category)
    except AppError:
        db.rollback()
        raise
    except Exception as e:
        db.rollback()
        logger.error(f"Error updating category: {str(e)}", exc_info=True)
        raise PersistenceError("Failed to update category")
    return success_response("Category updated successfully", BrochureCategory.model_validate(category))


@router.delete("/categories/{category_id}", response_model=ApiResponse[dict])
def delete_category(
    category_id: int,
    db: Session = Depends(get_db),
    ctx: AuthContext = Depends(require_admin)
):
    try:
        _get_or_404(db, CategoryModel, category_id, "Category")
        db.query(BrochureModel).filter(
            BrochureModel.brochure_category_id == category_id
        ).update({BrochureModel.brochure_category_id: None}, synchronize_session=False)
        db.query(CategoryModel).filter(CategoryModel.id == category_id).delete(synchronize_session=False)
        db.commit()
    except AppError:
        db.rollback()
        raise
    except Exception as e:
        db.rollback()
        logger.error(f"Error deleting category: {str(e)}", exc_info=True)
        raise PersistenceError("Failed to delete category")
    return success_response("Category deleted successfully")


# ----- University programs -----

@router.get("/ups", response_model=ApiResponse[List[UniversityProgramWithCount]])
def read_university_programs(
    db: Session = Depends(get_db),
    ctx: AuthContext = Depends(require_staff_or_agent)
):
    """List programs with brochure counts. Agents only see programs assigned to them."""
    try:
        programs = _visible_programs_query(db, ctx).order_by(ProgramModel.name).all()
        data = _programs_with_counts(db, programs)
    except Exception as e:
        logger.error(f"Error fetching university programs: {str(e)}", exc_info=True)
        raise PersistenceError("Failed to get university programs")
    return success_response("University programs retrieved successfully", data)


@router.get("/ups/type/{type_id}", response_model=ApiResponse[List[UniversityProgramWithCount]])
def read_university_programs_by_type(
    type_id: int,
    db: Session = Depends(get_db),
    ctx: AuthContext = Depends(require_staff_or_agent)
):
    try:
        programs = (
            _visible_programs_query(db, ctx)
            .filter(ProgramModel.brochure_type_id == type_id)
            .order_by(ProgramModel.name)
            .all()
        )
        data = _programs_with_counts(db, programs)
    except Exception as e:
        logger.error(f"Error fetching university programs by type: {str(e)}", exc_info=True)
        raise PersistenceError("Failed to get university programs")
    return success_response("University programs for type retrieved successfully", data)


@router.post("/ups", response_model=ApiResponse[UniversityProgram], status_code=201)
def create_university_program(
    payload: UniversityProgramCreate,
    db: Session = Depends(get_db),
    ctx: AuthContext = Depends(require_admin)
):
    try:
        _ensure_type_exists(db, payload.brochure_type_id)
        program = ProgramModel(name=payload.name.strip(), brochure_type_id=payload.brochure_type_id)
        db.add(program)
        db.commit()
        db.refresh(program)
    except AppError:
        db.rollback()
        raise
    except Exception as e:
        db.rollback()
        logger.error(f"Error creating university program: {str(e)}", exc_info=True)
        raise PersistenceError("Failed to create university program")
    return success_response("University program created successfully", UniversityProgram.model_validate(program))


@router.get("/ups/{program_id}", response_model=ApiResponse[UniversityProgram])
def read_university_program(
    program_id: int,
    db: Session = Depends(get_db),
    ctx: AuthContext = Depends(require_staff_or_agent)
):
    # Agents get 403 for any program outside their assignments, existing or not
    if ctx.is_agent and not assignment_service.is_agent_assigned(db, ctx.agent_id, program_id):
        raise ForbiddenError("You are not assigned to this university program")
    program = _get_or_404(db, ProgramModel, program_id, "University program")
    return success_response("University program retrieved successfully", UniversityProgram.model_validate(program))


@router.put("/ups/{program_id}", response_model=ApiResponse[UniversityProgram])
def update_university_program(
    program_id: int,
    payload: UniversityProgramUpdate,
    db: Session = Depends(get_db),
    ctx: AuthContext = Depends(require_admin)
):
    try:
        program = _get_or_404(db, ProgramModel, program_id, "University program")
        if payload.name is not None:
            program.name = payload.name.strip()
        if payload.brochure_type_id is not None:
            _ensure_type_exists(db, payload.brochure_type_id)
            program.brochure_type_id = payload.brochure_type_id
        db.commit()
        db.refresh(program)
    except AppError:
        db.rollback()
        raise
    except Exception as e:
        db.rollback()
        logger.error(f"Error updating university program: {str(e)}", exc_info=True)
        raise PersistenceError("Failed to update university program")
    return success_response("University program updated successfully", UniversityProgram.model_validate(program))


@router.delete("/ups/{program_id}", response_model=ApiResponse[dict])
def delete_university_program(
    program_id: int,
    db: Session = Depends(get_db),
    ctx: AuthContext = Depends(require_admin)
):
    """Delete a program, its brochures (records and files) and its agent assignments."""
    try:
        program = _get_or_404(db, ProgramModel, program_id, "University program")
        counts = apply_cascade(db, program_cascade(program))
        db.commit()
    except AppError:
        db.rollback()
        raise
    except Exception as e:
        db.rollback()
        logger.error(f"Error deleting university program: {str(e)}", exc_info=True)
        raise PersistenceError("Failed to delete university program")
    return success_response(
        "University program and all associated brochures deleted successfully",
        counts
    )


# ----- Brochures -----

@router.get("/ups/{program_id}/brochures", response_model=ApiResponse[List[Brochure]])
def read_brochures(
    program_id: int,
    db: Session = Depends(get_db),
    ctx: AuthContext = Depends(require_staff_or_agent)
):
    if ctx.is_agent and not assignment_service.is_agent_assigned(db, ctx.agent_id, program_id):
        raise ForbiddenError("You are not assigned to this university program")
    try:
        brochures = (
            db.query(BrochureModel)
            .filter(BrochureModel.university_program_id == program_id)
            .order_by(BrochureModel.id)
            .all()
        )
    except Exception as e:
        logger.error(f"Error fetching brochures: {str(e)}", exc_info=True)
        raise PersistenceError("Failed to get brochures")
    return success_response(
        "Brochures retrieved successfully",
        [Brochure.model_validate(b) for b in brochures]
    )


@router.post("/ups/{program_id}/brochures", response_model=ApiResponse[Brochure], status_code=201)
def create_brochure(
    program_id: int,
    title: str = Form(..., min_length=1, max_length=200),
    category_id: Optional[int] = Form(None),
    brochure_date: Optional[date] = Form(None, alias="date"),
    url: Optional[str] = Form(None),
    file: Optional[UploadFile] = File(None),
    db: Session = Depends(get_db),
    ctx: AuthContext = Depends(require_admin)
):
    """
    Create a brochure under a university program.

    - **title**: brochure title, also used to name the stored file
    - **file**: optional document; stored under
      `documents/brochure/<program>_<title>/<title>.<ext>`
    """
    program = _get_or_404(db, ProgramModel, program_id, "University program")
    _ensure_category_exists(db, category_id)
    if not title.strip():
        raise ValidationError("Brochure title is required")

    brochure = BrochureModel(
        title=title.strip(),
        university_program_id=program_id,
        brochure_category_id=category_id,
        date=brochure_date,
        url=url or None,
    )

    stored = None
    if file is not None and file.filename:
        temp_path = save_temp_upload(file)
        stored = store_brochure_file(temp_path, file.filename, program.name, brochure.title)
        brochure.file_url = stored.file_url
        brochure.name = stored.name
        if not brochure.url:
            brochure.url = stored.file_url

    try:
        db.add(brochure)
        db.commit()
        db.refresh(brochure)
    except Exception as e:
        db.rollback()
        logger.error(f"Error creating brochure: {str(e)}", exc_info=True)
        if stored is not None:
            remove_brochure_file(stored.file_url)
        raise PersistenceError("Failed to create brochure")
    return success_response("Brochure created successfully", Brochure.model_validate(brochure))


@router.put("/{brochure_id}", response_model=ApiResponse[Brochure])
def update_brochure(
    brochure_id: int,
    title: Optional[str] = Form(None, min_length=1, max_length=200),
    category_id: Optional[int] = Form(None),
    brochure_date: Optional[date] = Form(None, alias="date"),
    url: Optional[str] = Form(None),
    file: Optional[UploadFile] = File(None),
    db: Session = Depends(get_db),
    ctx: AuthContext = Depends(require_admin)
):
    """Update brochure fields; a new file replaces (and removes) the previous one."""
    brochure = _get_or_404(db, BrochureModel, brochure_id, "Brochure")
    _ensure_category_exists(db, category_id)

    if title is not None:
        if not title.strip():
            raise ValidationError("Brochure title is required")
        brochure.title = title.strip()
    if category_id is not None:
        brochure.brochure_category_id = category_id
    if brochure_date is not None:
        brochure.date = brochure_date
    if url is not None:
        brochure.url = url

    old_file_url = brochure.file_url
    stored = None
    if file is not None and file.filename:
        program = db.query(ProgramModel).filter(ProgramModel.id == brochure.university_program_id).first()
        temp_path = save_temp_upload(file)
        stored = store_brochure_file(
            temp_path, file.filename, program.name if program else None, brochure.title
        )
        brochure.file_url = stored.file_url
        brochure.name = stored.name
        if url is None:
            brochure.url = stored.file_url

    try:
        db.commit()
        db.refresh(brochure)
    except Exception as e:
        db.rollback()
        logger.error(f"Error updating brochure: {str(e)}", exc_info=True)
        if stored is not None:
            remove_brochure_file(stored.file_url)
        raise PersistenceError("Failed to update brochure")

    if stored is not None and old_file_url and old_file_url != stored.file_url:
        remove_brochure_file(old_file_url)

    return success_response("Brochure updated successfully", Brochure.model_validate(brochure))


@router.delete("/{brochure_id}", response_model=ApiResponse[dict])
def delete_brochure(
    brochure_id: int,
    db: Session = Depends(get_db),
    ctx: AuthContext = Depends(require_admin)
):
    try:
        brochure = _get_or_404(db, BrochureModel, brochure_id, "Brochure")
        counts = apply_cascade(db, brochure_cascade(brochure))
        db.commit()
    except AppError:
        db.rollback()
        raise
    except Exception as e:
        db.rollback()
        logger.error(f"Error deleting brochure: {str(e)}", exc_info=True)
        raise PersistenceError("Failed to delete brochure")
    return success_response("Brochure deleted successfully", counts)
