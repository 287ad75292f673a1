from __future__ import annotations

from collections import defaultdict
from collections.abc import Iterable, Iterator
from contextlib import ExitStack, contextmanager
from threading import Lock

from app.models.timetable import DayOfWeek, WEEKDAYS


def canonical_days(days: Iterable[DayOfWeek | str]) -> list[DayOfWeek]:
    unique = {DayOfWeek(day) for day in days}
    return [day for day in WEEKDAYS if day in unique]


class DayLockRegistry:
    """In-process mutual exclusion per weekday.

    Keeps same-day writers in this process from interleaving between the
    conflict check and the commit. Locks for several days are always acquired
    in weekday order so two writers can never wait on each other.
    """

    def __init__(self) -> None:
        self._locks: dict[DayOfWeek, Lock] = defaultdict(Lock)
        self._guard = Lock()

    def _lock_for(self, day: DayOfWeek) -> Lock:
        with self._guard:
            return self._locks[day]

    @contextmanager
    def hold(self, days: Iterable[DayOfWeek | str]) -> Iterator[list[DayOfWeek]]:
        ordered = canonical_days(days)
        with ExitStack() as stack:
            for day in ordered:
                stack.enter_context(self._lock_for(day))
            yield ordered


_registry = DayLockRegistry()


def get_day_locks() -> DayLockRegistry:
    return _registry
