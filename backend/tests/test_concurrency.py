import threading

import pytest
from sqlalchemy import create_engine, select
from sqlalchemy.orm import sessionmaker

from app.core.exceptions import ConflictError, NotFoundError
from app.db.bootstrap import ensure_runtime_schema_compatibility
from app.models.timetable import DayOfWeek, TimetableSlot
from app.schemas.timetable import TimetableSlotCreate, TimetableSlotUpdate
from app.services.allocation import AllocationService
from app.services.conflict_detector import SlotWindow, conflicting_pairs
from app.services.day_locks import DayLockRegistry
from app.services.slot_store import SlotStore

from conftest import seed_references


@pytest.fixture()
def file_session_factory(tmp_path):
    # A real file so each thread gets its own connection.
    engine = create_engine(
        f"sqlite+pysqlite:///{tmp_path / 'timetable.db'}",
        connect_args={"check_same_thread": False, "timeout": 30},
    )
    ensure_runtime_schema_compatibility(engine)
    yield sessionmaker(autocommit=False, autoflush=False, bind=engine)
    engine.dispose()


def run_concurrently(session_factory, locks, payloads):
    barrier = threading.Barrier(len(payloads))
    outcomes: list = [None] * len(payloads)

    def worker(index, payload):
        with session_factory() as db:
            service = AllocationService(db, actor_id=f"admin-{index}", locks=locks)
            barrier.wait()
            try:
                outcomes[index] = service.create_slot(payload).id
            except ConflictError as exc:
                outcomes[index] = exc

    threads = [threading.Thread(target=worker, args=(i, p)) for i, p in enumerate(payloads)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join(timeout=60)
    return outcomes


def test_racing_writers_for_the_same_teacher_admit_exactly_one(file_session_factory):
    with file_session_factory() as db:
        refs = seed_references(db)

    rooms = [refs.R1, refs.R2, refs.R3]
    payloads = [
        TimetableSlotCreate(
            day_of_week=DayOfWeek.MONDAY,
            start_time="14:00",
            end_time="15:00",
            class_id=refs.C1 if index % 2 else refs.C2,
            subject_id=refs.S1,
            teacher_id=refs.T2,
            room_id=rooms[index % len(rooms)],
        )
        for index in range(6)
    ]

    outcomes = run_concurrently(file_session_factory, DayLockRegistry(), payloads)

    winners = [outcome for outcome in outcomes if isinstance(outcome, str)]
    losers = [outcome for outcome in outcomes if isinstance(outcome, ConflictError)]
    assert len(winners) == 1
    assert len(losers) == len(payloads) - 1
    for loser in losers:
        assert any(
            conflict.with_slot_id == winners[0] and conflict.dimension.value == "teacher"
            for conflict in loser.conflicts
        )

    with file_session_factory() as db:
        slots = db.execute(select(TimetableSlot)).scalars().all()
        assert [slot.id for slot in slots] == winners
        assert conflicting_pairs(SlotWindow.from_slot(slot) for slot in slots) == []


def test_day_locks_are_independent_per_day():
    locks = DayLockRegistry()
    tuesday_acquired = threading.Event()

    with locks.hold([DayOfWeek.MONDAY]):

        def other_day():
            with locks.hold([DayOfWeek.TUESDAY]):
                tuesday_acquired.set()

        thread = threading.Thread(target=other_day)
        thread.start()
        assert tuesday_acquired.wait(timeout=5)
        thread.join(timeout=5)


def test_same_day_writers_wait_for_each_other():
    locks = DayLockRegistry()
    monday_acquired = threading.Event()

    def same_day():
        with locks.hold(["MONDAY"]):
            monday_acquired.set()

    with locks.hold([DayOfWeek.MONDAY, DayOfWeek.FRIDAY]) as held:
        assert held == [DayOfWeek.MONDAY, DayOfWeek.FRIDAY]
        thread = threading.Thread(target=same_day)
        thread.start()
        assert not monday_acquired.wait(timeout=0.2)

    assert monday_acquired.wait(timeout=5)
    thread.join(timeout=5)


def test_multi_day_locks_are_taken_in_weekday_order():
    locks = DayLockRegistry()

    with locks.hold([DayOfWeek.SATURDAY, DayOfWeek.MONDAY, DayOfWeek.MONDAY]) as held:
        assert held == [DayOfWeek.MONDAY, DayOfWeek.SATURDAY]


def test_update_of_a_slot_deleted_while_waiting_for_the_day_is_not_found(file_session_factory, monkeypatch):
    with file_session_factory() as db:
        refs = seed_references(db)
        slot = AllocationService(db, locks=DayLockRegistry()).create_slot(
            TimetableSlotCreate(
                day_of_week=DayOfWeek.WEDNESDAY,
                start_time="11:00",
                end_time="12:00",
                class_id=refs.C1,
                subject_id=refs.S1,
                teacher_id=refs.T1,
                room_id=refs.R1,
            )
        )
        slot_id = slot.id

    original_lock_days = SlotStore.lock_days
    deleted: list[str] = []

    def lock_days_after_concurrent_delete(self, days):
        if not deleted:
            with file_session_factory() as other:
                other.delete(other.get(TimetableSlot, slot_id))
                other.commit()
            deleted.append(slot_id)
        return original_lock_days(self, days)

    monkeypatch.setattr(SlotStore, "lock_days", lock_days_after_concurrent_delete)

    with file_session_factory() as db:
        service = AllocationService(db, actor_id="admin-1", locks=DayLockRegistry())
        with pytest.raises(NotFoundError) as exc_info:
            service.update_slot(slot_id, TimetableSlotUpdate(start_time="11:30"))

    assert exc_info.value.resource_id == slot_id
    assert deleted == [slot_id]
    with file_session_factory() as db:
        assert db.execute(select(TimetableSlot)).scalars().all() == []
