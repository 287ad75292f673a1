from __future__ import annotations

from collections.abc import Iterable
from typing import Any

from sqlalchemy import case, func, or_, select
from sqlalchemy.orm import Session, selectinload

from app.core.exceptions import NotFoundError
from app.models.class_section import ClassSection
from app.models.room import Room
from app.models.subject import Subject
from app.models.teacher import Teacher
from app.models.timetable import DayOfWeek, DayPartition, TimetableSlot, WEEKDAYS
from app.services.day_locks import canonical_days

SLOT_FIELDS = (
    "day_of_week",
    "start_time",
    "end_time",
    "class_id",
    "subject_id",
    "teacher_id",
    "room_id",
    "type",
)

REFERENCES: tuple[tuple[str, type, str], ...] = (
    ("class_id", ClassSection, "Class"),
    ("subject_id", Subject, "Subject"),
    ("teacher_id", Teacher, "Teacher"),
    ("room_id", Room, "Room"),
)

_DAY_RANK = {day: index for index, day in enumerate(WEEKDAYS)}


def slot_values(slot: TimetableSlot) -> dict[str, Any]:
    return {name: getattr(slot, name) for name in SLOT_FIELDS}


def group_by_day(slots: Iterable[TimetableSlot]) -> dict[str, list[TimetableSlot]]:
    grouped: dict[str, list[TimetableSlot]] = {day.value: [] for day in WEEKDAYS}
    for slot in slots:
        grouped[DayOfWeek(slot.day_of_week).value].append(slot)
    for day_slots in grouped.values():
        day_slots.sort(key=lambda item: (item.start_time, item.end_time, item.id))
    return grouped


class SlotStore:
    """Durable storage of timetable slots.

    Only the allocation service calls the mutating methods; they flush but
    never commit, so the caller decides the transaction boundary.
    """

    def __init__(self, db: Session) -> None:
        self.db = db

    # Reads

    def get(self, slot_id: str, *, refresh: bool = False) -> TimetableSlot | None:
        return self.db.get(TimetableSlot, slot_id, populate_existing=refresh)

    def require(self, slot_id: str, *, refresh: bool = False) -> TimetableSlot:
        slot = self.get(slot_id, refresh=refresh)
        if slot is None:
            raise NotFoundError("Timetable slot", slot_id)
        return slot

    def _with_references(self, statement):
        return statement.options(
            selectinload(TimetableSlot.class_section),
            selectinload(TimetableSlot.subject),
            selectinload(TimetableSlot.teacher),
            selectinload(TimetableSlot.room),
        )

    def _grouped(self, *criteria) -> dict[str, list[TimetableSlot]]:
        statement = self._with_references(select(TimetableSlot).where(*criteria))
        return group_by_day(self.db.execute(statement).scalars())

    def get_by_class(self, class_id: str) -> dict[str, list[TimetableSlot]]:
        return self._grouped(TimetableSlot.class_id == class_id)

    def get_by_teacher(self, teacher_id: str) -> dict[str, list[TimetableSlot]]:
        return self._grouped(TimetableSlot.teacher_id == teacher_id)

    def get_by_room(self, room_id: str) -> dict[str, list[TimetableSlot]]:
        return self._grouped(TimetableSlot.room_id == room_id)

    def list_page(self, page: int, limit: int) -> tuple[list[TimetableSlot], int]:
        total = self.db.execute(select(func.count()).select_from(TimetableSlot)).scalar_one()
        statement = (
            self._with_references(select(TimetableSlot))
            .order_by(
                case(_DAY_RANK, value=TimetableSlot.day_of_week),
                TimetableSlot.start_time,
                TimetableSlot.id,
            )
            .offset((page - 1) * limit)
            .limit(limit)
        )
        return list(self.db.execute(statement).scalars()), total

    def snapshot_for_day(
        self,
        day: DayOfWeek,
        *,
        teacher_id: str | None = None,
        room_id: str | None = None,
        class_id: str | None = None,
    ) -> list[TimetableSlot]:
        """Slots on ``day``; narrowed to those sharing any of the given resources."""
        statement = select(TimetableSlot).where(TimetableSlot.day_of_week == DayOfWeek(day))
        # One lookup per resource index, combined as a union.
        shared = []
        if teacher_id is not None:
            shared.append(TimetableSlot.teacher_id == teacher_id)
        if room_id is not None:
            shared.append(TimetableSlot.room_id == room_id)
        if class_id is not None:
            shared.append(TimetableSlot.class_id == class_id)
        if shared:
            statement = statement.where(or_(*shared))
        statement = statement.execution_options(populate_existing=True)
        return list(self.db.execute(statement).scalars())

    def require_references(self, values: dict[str, Any]) -> None:
        for field_name, model, label in REFERENCES:
            reference_id = values.get(field_name)
            if not reference_id or self.db.get(model, reference_id) is None:
                raise NotFoundError(label, str(reference_id))

    # Writes

    def lock_days(self, days: Iterable[DayOfWeek | str]) -> list[DayPartition]:
        """Lock the partition rows of ``days`` and bump their versions.

        The version bump is checked against the value read here, so a writer
        that lost a race (or a database without row locks) fails at flush time
        with ``StaleDataError`` instead of committing on a stale snapshot.
        """
        partitions: list[DayPartition] = []
        for day in canonical_days(days):
            statement = (
                select(DayPartition)
                .where(DayPartition.day_of_week == day)
                .with_for_update()
                .execution_options(populate_existing=True)
            )
            partition = self.db.execute(statement).scalar_one_or_none()
            if partition is None:
                partition = DayPartition(day_of_week=day, version=1)
                self.db.add(partition)
            else:
                partition.version = partition.version + 1
            partitions.append(partition)
        self.db.flush()
        return partitions

    def insert(self, values: dict[str, Any]) -> TimetableSlot:
        self.require_references(values)
        slot = TimetableSlot(**{name: values[name] for name in SLOT_FIELDS if name in values})
        self.db.add(slot)
        self.db.flush()
        return slot

    def replace(self, slot_id: str, values: dict[str, Any]) -> TimetableSlot:
        slot = self.require(slot_id)
        self.require_references(values)
        for name in SLOT_FIELDS:
            if name in values:
                setattr(slot, name, values[name])
        self.db.flush()
        return slot

    def remove(self, slot_id: str) -> None:
        slot = self.require(slot_id)
        self.db.delete(slot)
        self.db.flush()
