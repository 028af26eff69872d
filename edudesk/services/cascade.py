"""
Cascading deletes for brochures, university programs and brochure types.

A parent's cascade is first planned as an ordered list of steps from the
records already loaded, then applied against the session. Planning touches
neither the database nor the file system.
"""

import logging
from dataclasses import dataclass, field
from typing import Callable, List, Optional, Union

from sqlalchemy.orm import Session

from edudesk.models.assignment import AgentUniversityAssignment
from edudesk.models.brochure import Brochure, BrochureType, UniversityProgram
from edudesk.services.brochure_storage import remove_brochure_file

logger = logging.getLogger(__name__)

FILE = "file"
BROCHURE = "brochure"
BROCHURES = "brochures"
ASSIGNMENTS = "assignments"
PROGRAM = "program"
TYPE = "type"


@dataclass(frozen=True)
class CascadeStep:
    kind: str
    target: Union[int, str]


@dataclass
class CascadePlan:
    steps: List[CascadeStep] = field(default_factory=list)

    def add(self, kind: str, target) -> None:
        self.steps.append(CascadeStep(kind, target))

    def extend(self, other: "CascadePlan") -> None:
        self.steps.extend(other.steps)

    @property
    def file_urls(self) -> List[str]:
        return [s.target for s in self.steps if s.kind == FILE]

    def kinds(self) -> List[str]:
        return [s.kind for s in self.steps]


def brochure_cascade(brochure: Brochure) -> CascadePlan:
    plan = CascadePlan()
    if brochure.file_url:
        plan.add(FILE, brochure.file_url)
    plan.add(BROCHURE, brochure.id)
    return plan


def program_cascade(program: UniversityProgram) -> CascadePlan:
    """Files first, then brochure rows, then assignments, then the program."""
    plan = CascadePlan()
    for brochure in program.brochures:
        if brochure.file_url:
            plan.add(FILE, brochure.file_url)
    plan.add(BROCHURES, program.id)
    plan.add(ASSIGNMENTS, program.id)
    plan.add(PROGRAM, program.id)
    return plan


def type_cascade(brochure_type: BrochureType) -> CascadePlan:
    plan = CascadePlan()
    for program in brochure_type.programs:
        plan.extend(program_cascade(program))
    plan.add(TYPE, brochure_type.id)
    return plan


def apply_cascade(
    db: Session,
    plan: CascadePlan,
    remove_file: Optional[Callable[[str], bool]] = None,
) -> dict:
    """Execute a plan in order. The caller owns the commit."""
    remove_file = remove_file or remove_brochure_file
    counts = {FILE: 0, BROCHURE: 0, ASSIGNMENTS: 0, PROGRAM: 0, TYPE: 0}

    for step in plan.steps:
        if step.kind == FILE:
            if remove_file(step.target):
                counts[FILE] += 1
        elif step.kind == BROCHURE:
            counts[BROCHURE] += db.query(Brochure).filter(
                Brochure.id == step.target
            ).delete(synchronize_session=False)
        elif step.kind == BROCHURES:
            counts[BROCHURE] += db.query(Brochure).filter(
                Brochure.university_program_id == step.target
            ).delete(synchronize_session=False)
        elif step.kind == ASSIGNMENTS:
            counts[ASSIGNMENTS] += db.query(AgentUniversityAssignment).filter(
                AgentUniversityAssignment.university_program_id == step.target
            ).delete(synchronize_session=False)
        elif step.kind == PROGRAM:
            counts[PROGRAM] += db.query(UniversityProgram).filter(
                UniversityProgram.id == step.target
            ).delete(synchronize_session=False)
        elif step.kind == TYPE:
            counts[TYPE] += db.query(BrochureType).filter(
                BrochureType.id == step.target
            ).delete(synchronize_session=False)
        else:
            raise ValueError(f"Unknown cascade step: {step.kind}")

    logger.info(f"Cascade applied: {counts}")
    return counts
