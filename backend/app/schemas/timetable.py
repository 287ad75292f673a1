from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel

from app.models.timetable import DayOfWeek, SlotType
from app.schemas.reference import ClassSectionOut, RoomOut, SubjectOut, TeacherOut
from app.services.conflict_detector import TIME_PATTERN

DAY_SHORT_MAP = {
    "MON": DayOfWeek.MONDAY,
    "TUE": DayOfWeek.TUESDAY,
    "WED": DayOfWeek.WEDNESDAY,
    "THU": DayOfWeek.THURSDAY,
    "FRI": DayOfWeek.FRIDAY,
    "SAT": DayOfWeek.SATURDAY,
}


def normalize_day(value: Any) -> Any:
    if isinstance(value, str):
        cleaned = value.strip().upper()
        return DAY_SHORT_MAP.get(cleaned, cleaned)
    return value


def validate_time(value: str) -> str:
    cleaned = value.strip()
    if not TIME_PATTERN.match(cleaned):
        raise ValueError("Time must be in HH:MM 24-hour format")
    return cleaned


class _SlotFields(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="forbid")

    @field_validator("day_of_week", mode="before", check_fields=False)
    @classmethod
    def validate_day(cls, value: Any) -> Any:
        return normalize_day(value)

    @field_validator("start_time", "end_time", check_fields=False)
    @classmethod
    def validate_time_format(cls, value: str | None) -> str | None:
        if value is None:
            return value
        return validate_time(value)


class TimetableSlotCreate(_SlotFields):
    day_of_week: DayOfWeek
    start_time: str
    end_time: str
    class_id: str = Field(min_length=1, max_length=36)
    subject_id: str = Field(min_length=1, max_length=36)
    teacher_id: str = Field(min_length=1, max_length=36)
    room_id: str = Field(min_length=1, max_length=36)
    type: SlotType = SlotType.LECTURE

    def to_values(self) -> dict[str, Any]:
        return self.model_dump()


class TimetableSlotUpdate(_SlotFields):
    day_of_week: DayOfWeek | None = None
    start_time: str | None = None
    end_time: str | None = None
    class_id: str | None = Field(default=None, min_length=1, max_length=36)
    subject_id: str | None = Field(default=None, min_length=1, max_length=36)
    teacher_id: str | None = Field(default=None, min_length=1, max_length=36)
    room_id: str | None = Field(default=None, min_length=1, max_length=36)
    type: SlotType | None = None

    @model_validator(mode="after")
    def reject_explicit_nulls(self) -> "TimetableSlotUpdate":
        nulls = sorted(name for name in self.model_fields_set if getattr(self, name) is None)
        if nulls:
            raise ValueError(f"Fields cannot be null: {', '.join(to_camel(name) for name in nulls)}")
        return self

    def to_values(self) -> dict[str, Any]:
        return self.model_dump(exclude_unset=True)


class TimetableSlotOut(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)

    id: str
    day_of_week: DayOfWeek
    start_time: str
    end_time: str
    class_id: str
    subject_id: str
    teacher_id: str
    room_id: str
    type: SlotType
    class_section: ClassSectionOut | None = Field(default=None, alias="class")
    subject: SubjectOut | None = None
    teacher: TeacherOut | None = None
    room: RoomOut | None = None


class TimetableSlotPage(BaseModel):
    items: list[TimetableSlotOut]
    total: int
    page: int
    limit: int

