from __future__ import annotations

from typing import TYPE_CHECKING, Any, Literal

from pydantic import BaseModel, Field

if TYPE_CHECKING:
    from app.services.conflict_detector import Conflict


class TimeRangeOut(BaseModel):
    startTime: str
    endTime: str


class ConflictOut(BaseModel):
    withSlotId: str
    dimension: Literal["teacher", "room", "class"]
    existingRange: TimeRangeOut
    message: str

    @classmethod
    def from_conflict(cls, conflict: Conflict) -> "ConflictOut":
        return cls(
            withSlotId=conflict.with_slot_id,
            dimension=conflict.dimension.value,
            existingRange=TimeRangeOut(startTime=conflict.existing_start, endTime=conflict.existing_end),
            message=conflict.message,
        )


class ErrorResponse(BaseModel):
    statusCode: int
    message: str | list[str]
    error: str
    timestamp: str
    path: str
    details: dict[str, Any] | None = None


class ConflictErrorResponse(ErrorResponse):
    conflicts: list[ConflictOut] = Field(default_factory=list)
