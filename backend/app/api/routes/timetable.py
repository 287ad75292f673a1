from fastapi import APIRouter, Depends, Query, Response, status
from sqlalchemy.orm import Session

from app.api.deps import get_current_principal, get_db, require_roles
from app.core.config import get_settings
from app.core.security import Principal, Role
from app.schemas.errors import ConflictErrorResponse, ErrorResponse
from app.schemas.timetable import (
    TimetableSlotCreate,
    TimetableSlotOut,
    TimetableSlotPage,
    TimetableSlotUpdate,
)
from app.services.allocation import AllocationService

router = APIRouter()

settings = get_settings()

GroupedSlots = dict[str, list[TimetableSlotOut]]

MUTATION_RESPONSES = {
    400: {"model": ErrorResponse, "description": "Invalid slot"},
    404: {"model": ErrorResponse, "description": "Slot or referenced entity not found"},
    409: {"model": ConflictErrorResponse, "description": "Slot conflicts with existing commitments"},
}


@router.post(
    "",
    response_model=TimetableSlotOut,
    status_code=status.HTTP_201_CREATED,
    responses=MUTATION_RESPONSES,
)
def create_slot(
    payload: TimetableSlotCreate,
    principal: Principal = Depends(require_roles(Role.admin)),
    db: Session = Depends(get_db),
) -> TimetableSlotOut:
    return AllocationService(db, actor_id=principal.id).create_slot(payload)


@router.get("", response_model=TimetableSlotPage)
def list_slots(
    page: int = Query(default=1, ge=1),
    limit: int | None = Query(default=None, ge=1),
    principal: Principal = Depends(require_roles(Role.admin)),
    db: Session = Depends(get_db),
) -> TimetableSlotPage:
    page_size = min(limit or settings.timetable_default_page_size, settings.timetable_max_page_size)
    items, total = AllocationService(db, actor_id=principal.id).list_slots(page, page_size)
    return TimetableSlotPage(items=items, total=total, page=page, limit=page_size)


@router.get("/class/{class_id}", response_model=GroupedSlots)
def get_class_timetable(
    class_id: str,
    principal: Principal = Depends(get_current_principal),
    db: Session = Depends(get_db),
) -> GroupedSlots:
    return AllocationService(db, actor_id=principal.id).timetable_for_class(class_id)


@router.get("/teacher/{teacher_id}", response_model=GroupedSlots)
def get_teacher_timetable(
    teacher_id: str,
    principal: Principal = Depends(require_roles(Role.admin, Role.teacher)),
    db: Session = Depends(get_db),
) -> GroupedSlots:
    return AllocationService(db, actor_id=principal.id).timetable_for_teacher(teacher_id)


@router.get("/room/{room_id}", response_model=GroupedSlots)
def get_room_timetable(
    room_id: str,
    principal: Principal = Depends(require_roles(Role.admin)),
    db: Session = Depends(get_db),
) -> GroupedSlots:
    return AllocationService(db, actor_id=principal.id).timetable_for_room(room_id)


@router.get("/{slot_id}", response_model=TimetableSlotOut, responses={404: {"model": ErrorResponse}})
def get_slot(
    slot_id: str,
    principal: Principal = Depends(require_roles(Role.admin)),
    db: Session = Depends(get_db),
) -> TimetableSlotOut:
    return AllocationService(db, actor_id=principal.id).get_slot(slot_id)


@router.patch("/{slot_id}", response_model=TimetableSlotOut, responses=MUTATION_RESPONSES)
def update_slot(
    slot_id: str,
    payload: TimetableSlotUpdate,
    principal: Principal = Depends(require_roles(Role.admin)),
    db: Session = Depends(get_db),
) -> TimetableSlotOut:
    return AllocationService(db, actor_id=principal.id).update_slot(slot_id, payload)


@router.delete(
    "/{slot_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    response_class=Response,
    responses={404: {"model": ErrorResponse}},
)
def delete_slot(
    slot_id: str,
    principal: Principal = Depends(require_roles(Role.admin)),
    db: Session = Depends(get_db),
) -> Response:
    AllocationService(db, actor_id=principal.id).delete_slot(slot_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
