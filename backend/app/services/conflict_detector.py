"""Overlap detection for weekly timetable slots.

Everything here is pure: callers pass in a snapshot of existing slots and get
back the list of conflicts, so the rules can be tested without a database.

A slot occupies the half-open range ``[start, end)`` on its day. Two slots
conflict when their ranges overlap on the same day and they share a teacher,
a room or a class. Each shared resource is reported as its own conflict, so a
single pair of slots can produce up to three entries.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from enum import Enum
import re
from typing import Any

TIME_PATTERN = re.compile(r"^([01]\d|2[0-3]):[0-5]\d$")


def time_to_minutes(value: str) -> int:
    if not TIME_PATTERN.match(value):
        raise ValueError("Time must be in HH:MM 24-hour format")
    hours, minutes = value.split(":")
    return int(hours) * 60 + int(minutes)


def minutes_to_time(value: int) -> str:
    if not 0 <= value < 24 * 60:
        raise ValueError("Minutes must fall within a single day")
    return f"{value // 60:02d}:{value % 60:02d}"


def ranges_overlap(start_a: int, end_a: int, start_b: int, end_b: int) -> bool:
    # Touching ranges (end_a == start_b) do not overlap.
    return start_a < end_b and start_b < end_a


class Dimension(str, Enum):
    teacher = "teacher"
    room = "room"
    class_ = "class"

    @property
    def attribute(self) -> str:
        return _DIMENSION_ATTRIBUTES[self]

    @property
    def label(self) -> str:
        return _DIMENSION_LABELS[self]


_DIMENSION_ATTRIBUTES = {
    Dimension.teacher: "teacher_id",
    Dimension.room: "room_id",
    Dimension.class_: "class_id",
}

_DIMENSION_LABELS = {
    Dimension.teacher: "Teacher already has a scheduled session at this time",
    Dimension.room: "Room already booked at this time",
    Dimension.class_: "Class already has a scheduled session at this time",
}

# Report order for conflicts.
DIMENSION_ORDER: tuple[Dimension, ...] = (Dimension.teacher, Dimension.room, Dimension.class_)


@dataclass(frozen=True)
class SlotWindow:
    """The parts of a slot that matter for conflict checks."""

    slot_id: str | None
    day: str
    start: int
    end: int
    teacher_id: str
    room_id: str
    class_id: str

    @classmethod
    def from_values(cls, values: dict[str, Any], slot_id: str | None = None) -> "SlotWindow":
        return cls(
            slot_id=slot_id,
            day=_day_value(values["day_of_week"]),
            start=time_to_minutes(values["start_time"]),
            end=time_to_minutes(values["end_time"]),
            teacher_id=values["teacher_id"],
            room_id=values["room_id"],
            class_id=values["class_id"],
        )

    @classmethod
    def from_slot(cls, slot: Any) -> "SlotWindow":
        return cls(
            slot_id=slot.id,
            day=_day_value(slot.day_of_week),
            start=time_to_minutes(slot.start_time),
            end=time_to_minutes(slot.end_time),
            teacher_id=slot.teacher_id,
            room_id=slot.room_id,
            class_id=slot.class_id,
        )

    def key(self, dimension: Dimension) -> str:
        return getattr(self, dimension.attribute)

    def overlaps(self, other: "SlotWindow") -> bool:
        return self.day == other.day and ranges_overlap(self.start, self.end, other.start, other.end)


@dataclass(frozen=True)
class Conflict:
    with_slot_id: str
    dimension: Dimension
    existing_start: str
    existing_end: str

    @property
    def message(self) -> str:
        return self.dimension.label


def _day_value(day: Any) -> str:
    return day.value if isinstance(day, Enum) else str(day)


def find_conflicts(
    candidate: SlotWindow,
    existing: Iterable[SlotWindow],
    exclude_id: str | None = None,
) -> list[Conflict]:
    """Return every conflict between ``candidate`` and ``existing``.

    Slots on other days and the slot with id ``exclude_id`` are ignored.
    Results are ordered by dimension (teacher, room, class), then by the
    existing slot's start time.
    """
    same_day = [
        window
        for window in existing
        if window.day == candidate.day and (exclude_id is None or window.slot_id != exclude_id)
    ]

    conflicts: list[Conflict] = []
    for dimension in DIMENSION_ORDER:
        wanted = candidate.key(dimension)
        sharing = [window for window in same_day if window.key(dimension) == wanted]
        sharing.sort(key=lambda window: (window.start, window.slot_id or ""))
        for window in sharing:
            if not ranges_overlap(candidate.start, candidate.end, window.start, window.end):
                continue
            conflicts.append(
                Conflict(
                    with_slot_id=window.slot_id or "",
                    dimension=dimension,
                    existing_start=minutes_to_time(window.start),
                    existing_end=minutes_to_time(window.end),
                )
            )
    return conflicts


def conflicting_pairs(windows: Iterable[SlotWindow]) -> list[tuple[str, str, Dimension]]:
    """Audit helper: every pair of committed slots that violates exclusivity.

    An empty result means the teacher, room and class invariants all hold.
    """
    ordered = sorted(windows, key=lambda window: (window.day, window.start, window.slot_id or ""))
    pairs: list[tuple[str, str, Dimension]] = []
    for index, window in enumerate(ordered):
        for other in ordered[index + 1 :]:
            if other.day != window.day or other.start >= window.end:
                break
            for dimension in DIMENSION_ORDER:
                if window.key(dimension) == other.key(dimension):
                    pairs.append((window.slot_id or "", other.slot_id or "", dimension))
    return pairs
