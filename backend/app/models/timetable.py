import uuid
from datetime import datetime
from enum import Enum

from sqlalchemy import DateTime, Enum as SAEnum, ForeignKey, Index, Integer, String
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy.sql import func

from app.db.base import Base
from app.models.class_section import ClassSection
from app.models.room import Room
from app.models.subject import Subject
from app.models.teacher import Teacher


class DayOfWeek(str, Enum):
    MONDAY = "MONDAY"
    TUESDAY = "TUESDAY"
    WEDNESDAY = "WEDNESDAY"
    THURSDAY = "THURSDAY"
    FRIDAY = "FRIDAY"
    SATURDAY = "SATURDAY"


# Canonical order; partition locks are always taken in this order.
WEEKDAYS: tuple[DayOfWeek, ...] = tuple(DayOfWeek)


class SlotType(str, Enum):
    LECTURE = "LECTURE"
    LAB = "LAB"
    TUTORIAL = "TUTORIAL"
    SEMINAR = "SEMINAR"


class TimetableSlot(Base):
    __tablename__ = "timetable_slots"
    __table_args__ = (
        Index("ix_timetable_slots_day_teacher", "day_of_week", "teacher_id"),
        Index("ix_timetable_slots_day_room", "day_of_week", "room_id"),
        Index("ix_timetable_slots_day_class", "day_of_week", "class_id"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    day_of_week: Mapped[DayOfWeek] = mapped_column(SAEnum(DayOfWeek, name="day_of_week"), nullable=False)
    start_time: Mapped[str] = mapped_column(String(5), nullable=False)
    end_time: Mapped[str] = mapped_column(String(5), nullable=False)
    class_id: Mapped[str] = mapped_column(String(36), ForeignKey("classes.id"), nullable=False)
    subject_id: Mapped[str] = mapped_column(String(36), ForeignKey("subjects.id"), nullable=False)
    teacher_id: Mapped[str] = mapped_column(String(36), ForeignKey("teachers.id"), nullable=False)
    room_id: Mapped[str] = mapped_column(String(36), ForeignKey("rooms.id"), nullable=False)
    type: Mapped[SlotType] = mapped_column(
        SAEnum(SlotType, name="slot_type"), nullable=False, default=SlotType.LECTURE
    )
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())
    updated_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), onupdate=func.now())

    # Read-only views of the referenced entities, used when rendering slots.
    class_section: Mapped[ClassSection] = relationship(viewonly=True)
    subject: Mapped[Subject] = relationship(viewonly=True)
    teacher: Mapped[Teacher] = relationship(viewonly=True)
    room: Mapped[Room] = relationship(viewonly=True)


class DayPartition(Base):
    """One row per weekday; writers lock it to serialize check-then-commit on that day."""

    __tablename__ = "timetable_day_partitions"

    day_of_week: Mapped[DayOfWeek] = mapped_column(SAEnum(DayOfWeek, name="day_of_week"), primary_key=True)
    version: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    updated_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    __mapper_args__ = {"version_id_col": version, "version_id_generator": False}
