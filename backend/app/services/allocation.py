from __future__ import annotations

from collections.abc import Callable, Iterator
from contextlib import contextmanager
import logging
from typing import Any, TypeVar

from sqlalchemy.exc import IntegrityError, OperationalError, SQLAlchemyError
from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

from app.core.exceptions import AppError, ConcurrencyError, ConflictError, StorageError, ValidationError
from app.models.timetable import DayOfWeek, TimetableSlot
from app.schemas.timetable import TimetableSlotCreate, TimetableSlotUpdate
from app.services.audit import log_activity
from app.services.conflict_detector import SlotWindow, find_conflicts, time_to_minutes
from app.services.day_locks import DayLockRegistry, get_day_locks
from app.services.slot_store import SlotStore, slot_values

logger = logging.getLogger(__name__)

T = TypeVar("T")

# Serialization failure, deadlock, lock not available.
RETRYABLE_SQLSTATES = {"40001", "40P01", "55P03"}
UNIQUE_VIOLATION_SQLSTATE = "23505"
MAX_ATTEMPTS = 2


def is_lock_contention(exc: OperationalError) -> bool:
    original = getattr(exc, "orig", None)
    sqlstate = getattr(original, "sqlstate", None) or getattr(original, "pgcode", None)
    if sqlstate in RETRYABLE_SQLSTATES:
        return True
    return "database is locked" in str(original or exc).lower()


def is_unique_violation(exc: IntegrityError) -> bool:
    original = getattr(exc, "orig", None)
    sqlstate = getattr(original, "sqlstate", None) or getattr(original, "pgcode", None)
    if sqlstate is not None:
        return sqlstate == UNIQUE_VIOLATION_SQLSTATE
    # SQLite reports primary key collisions as UNIQUE too.
    return "unique constraint" in str(original or exc).lower()


def validate_time_range(values: dict[str, Any]) -> None:
    try:
        start = time_to_minutes(values["start_time"])
        end = time_to_minutes(values["end_time"])
    except (KeyError, ValueError) as exc:
        raise ValidationError("startTime and endTime must be in HH:MM 24-hour format") from exc
    if start >= end:
        raise ValidationError(
            "Start time must be before end time",
            details={"startTime": values["start_time"], "endTime": values["end_time"]},
        )


class AllocationService:
    """Admission control for timetable slots.

    Every mutation runs validate -> resolve references -> lock the affected
    day partition(s) -> detect conflicts -> commit or roll back. Nothing is
    written unless the conflict check against the locked day came back empty.
    """

    def __init__(
        self,
        db: Session,
        *,
        actor_id: str | None = None,
        locks: DayLockRegistry | None = None,
    ) -> None:
        self.db = db
        # Slots are fully loaded before commit and returned as-is afterwards.
        self.db.expire_on_commit = False
        self.store = SlotStore(db)
        self.actor_id = actor_id
        self.locks = locks or get_day_locks()

    # Queries

    def get_slot(self, slot_id: str) -> TimetableSlot:
        return self.store.require(slot_id)

    def timetable_for_class(self, class_id: str) -> dict[str, list[TimetableSlot]]:
        return self.store.get_by_class(class_id)

    def timetable_for_teacher(self, teacher_id: str) -> dict[str, list[TimetableSlot]]:
        return self.store.get_by_teacher(teacher_id)

    def timetable_for_room(self, room_id: str) -> dict[str, list[TimetableSlot]]:
        return self.store.get_by_room(room_id)

    def list_slots(self, page: int, limit: int) -> tuple[list[TimetableSlot], int]:
        return self.store.list_page(page, limit)

    # Mutations

    def create_slot(self, payload: TimetableSlotCreate) -> TimetableSlot:
        values = payload.to_values()
        validate_time_range(values)
        self.store.require_references(values)
        slot = self._with_retry("create", lambda: self._create(values))
        logger.info(
            "Timetable slot created: %s | %s %s-%s | actor=%s",
            slot.id,
            values["day_of_week"].value,
            values["start_time"],
            values["end_time"],
            self.actor_id,
        )
        return slot

    def update_slot(self, slot_id: str, payload: TimetableSlotUpdate) -> TimetableSlot:
        changes = payload.to_values()
        slot = self._with_retry("update", lambda: self._update(slot_id, changes))
        logger.info("Timetable slot updated: %s | actor=%s", slot_id, self.actor_id)
        return slot

    def delete_slot(self, slot_id: str) -> None:
        self._with_retry("delete", lambda: self._delete(slot_id))
        logger.info("Timetable slot deleted: %s | actor=%s", slot_id, self.actor_id)

    # Internals

    def _with_retry(self, operation: str, attempt: Callable[[], T]) -> T:
        for _ in range(MAX_ATTEMPTS - 1):
            try:
                return attempt()
            except ConcurrencyError:
                logger.warning("Timetable %s lost a race with a concurrent writer, retrying", operation)
        return attempt()

    @contextmanager
    def _transaction(self, values: dict[str, Any] | None = None) -> Iterator[None]:
        try:
            yield
            self.db.commit()
        except AppError:
            self.db.rollback()
            raise
        except StaleDataError as exc:
            self.db.rollback()
            raise ConcurrencyError() from exc
        except IntegrityError as exc:
            self.db.rollback()
            if is_unique_violation(exc):
                raise ConcurrencyError() from exc
            # A referenced row vanished after it was resolved; name it when we can.
            if values is not None:
                self.store.require_references(values)
            logger.exception("Timetable integrity failure")
            raise StorageError() from exc
        except OperationalError as exc:
            self.db.rollback()
            if is_lock_contention(exc):
                raise ConcurrencyError() from exc
            logger.exception("Timetable storage failure")
            raise StorageError() from exc
        except SQLAlchemyError as exc:
            self.db.rollback()
            logger.exception("Timetable storage failure")
            raise StorageError() from exc
        except Exception:
            self.db.rollback()
            raise

    def _check_conflicts(self, values: dict[str, Any], exclude_id: str | None = None) -> None:
        candidate = SlotWindow.from_values(values, slot_id=exclude_id)
        existing = self.store.snapshot_for_day(
            values["day_of_week"],
            teacher_id=values["teacher_id"],
            room_id=values["room_id"],
            class_id=values["class_id"],
        )
        conflicts = find_conflicts(
            candidate,
            [SlotWindow.from_slot(slot) for slot in existing],
            exclude_id=exclude_id,
        )
        if conflicts:
            logger.info(
                "Timetable slot rejected | %s %s-%s | %s conflict(s)",
                candidate.day,
                values["start_time"],
                values["end_time"],
                len(conflicts),
            )
            raise ConflictError(conflicts)

    def _load_for_response(self, slot: TimetableSlot) -> None:
        """Load everything the response renders while the transaction is still open."""
        self.db.refresh(slot)
        for relationship in ("class_section", "subject", "teacher", "room"):
            getattr(slot, relationship)

    def _create(self, values: dict[str, Any]) -> TimetableSlot:
        day = values["day_of_week"]
        with self.locks.hold([day]), self._transaction(values):
            self.store.lock_days([day])
            self._check_conflicts(values)
            slot = self.store.insert(values)
            log_activity(
                self.db,
                actor_id=self.actor_id,
                action="timetable.slot.create",
                entity_type="timetable_slot",
                entity_id=slot.id,
                details=_audit_details(values),
            )
            self._load_for_response(slot)
        return slot

    def _update(self, slot_id: str, changes: dict[str, Any]) -> TimetableSlot:
        current = self.store.require(slot_id, refresh=True)
        proposed = {**slot_values(current), **changes}
        validate_time_range(proposed)
        self.store.require_references(proposed)
        days = {DayOfWeek(current.day_of_week), DayOfWeek(proposed["day_of_week"])}

        with self.locks.hold(days), self._transaction(proposed):
            self.store.lock_days(days)
            # Re-read under the lock: the slot may have been deleted or moved meanwhile.
            current = self.store.require(slot_id, refresh=True)
            if DayOfWeek(current.day_of_week) not in days:
                raise ConcurrencyError()
            proposed = {**slot_values(current), **changes}
            validate_time_range(proposed)
            self._check_conflicts(proposed, exclude_id=slot_id)
            slot = self.store.replace(slot_id, proposed)
            log_activity(
                self.db,
                actor_id=self.actor_id,
                action="timetable.slot.update",
                entity_type="timetable_slot",
                entity_id=slot_id,
                details={"changes": sorted(changes), **_audit_details(proposed)},
            )
            self._load_for_response(slot)
        return slot

    def _delete(self, slot_id: str) -> None:
        current = self.store.require(slot_id, refresh=True)
        days = {DayOfWeek(current.day_of_week)}
        with self.locks.hold(days), self._transaction():
            self.store.lock_days(days)
            current = self.store.require(slot_id, refresh=True)
            if DayOfWeek(current.day_of_week) not in days:
                raise ConcurrencyError()
            details = _audit_details(slot_values(current))
            self.store.remove(slot_id)
            log_activity(
                self.db,
                actor_id=self.actor_id,
                action="timetable.slot.delete",
                entity_type="timetable_slot",
                entity_id=slot_id,
                details=details,
            )


def _audit_details(values: dict[str, Any]) -> dict:
    return {
        "dayOfWeek": DayOfWeek(values["day_of_week"]).value,
        "startTime": values["start_time"],
        "endTime": values["end_time"],
        "classId": values["class_id"],
        "subjectId": values["subject_id"],
        "teacherId": values["teacher_id"],
        "roomId": values["room_id"],
    }
