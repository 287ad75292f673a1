"""Read-only reference data for the timetable editor dropdowns.

Classes, subjects, teachers and rooms are owned by other campus modules; this
service only lists them and checks that slots point at existing rows.
"""

from fastapi import APIRouter, Depends
from sqlalchemy import select
from sqlalchemy.orm import Session

from app.api.deps import get_db, require_roles
from app.core.security import Principal, Role
from app.models.class_section import ClassSection
from app.models.room import Room
from app.models.subject import Subject
from app.models.teacher import Teacher
from app.schemas.reference import ClassSectionOut, RoomOut, SubjectOut, TeacherOut

router = APIRouter()


@router.get("/classes", response_model=list[ClassSectionOut])
def list_classes(
    _: Principal = Depends(require_roles(Role.admin)),
    db: Session = Depends(get_db),
) -> list[ClassSectionOut]:
    statement = select(ClassSection).order_by(ClassSection.department, ClassSection.year, ClassSection.section)
    return list(db.execute(statement).scalars())


@router.get("/subjects", response_model=list[SubjectOut])
def list_subjects(
    _: Principal = Depends(require_roles(Role.admin)),
    db: Session = Depends(get_db),
) -> list[SubjectOut]:
    return list(db.execute(select(Subject).order_by(Subject.department, Subject.name)).scalars())


@router.get("/teachers", response_model=list[TeacherOut])
def list_teachers(
    _: Principal = Depends(require_roles(Role.admin)),
    db: Session = Depends(get_db),
) -> list[TeacherOut]:
    return list(db.execute(select(Teacher).order_by(Teacher.last_name, Teacher.first_name)).scalars())


@router.get("/rooms", response_model=list[RoomOut])
def list_rooms(
    _: Principal = Depends(require_roles(Role.admin)),
    db: Session = Depends(get_db),
) -> list[RoomOut]:
    return list(db.execute(select(Room).order_by(Room.building, Room.name)).scalars())
