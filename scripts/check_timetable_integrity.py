"""Report committed timetable slots that double-book a teacher, room or class.

Run:
  PYTHONPATH=backend python scripts/check_timetable_integrity.py
"""

from __future__ import annotations

import sys

from sqlalchemy import select

from app.db.session import SessionLocal
from app.models.timetable import DayPartition, TimetableSlot, WEEKDAYS
from app.services.conflict_detector import SlotWindow, conflicting_pairs


def main() -> int:
    with SessionLocal() as db:
        slots = db.execute(select(TimetableSlot)).scalars().all()
        partitions = db.execute(select(DayPartition)).scalars().all()
        pairs = conflicting_pairs(SlotWindow.from_slot(slot) for slot in slots)

    print(f"Slots: {len(slots)}")
    for partition in sorted(partitions, key=lambda item: WEEKDAYS.index(item.day_of_week)):
        print(f"  {partition.day_of_week.value:<10} version {partition.version}")

    if not pairs:
        print("No double bookings found.")
        return 0

    print(f"Double bookings: {len(pairs)}")
    for first, second, dimension in pairs:
        print(f"  - {first} / {second} share a {dimension.value}")
    return 1


if __name__ == "__main__":
    sys.exit(main())
