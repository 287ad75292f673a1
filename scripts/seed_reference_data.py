"""Seed demo reference data for the campus timetable.

Run:
  PYTHONPATH=backend python scripts/seed_reference_data.py

Creates (or refreshes) rooms, class sections, subjects and teachers so the
timetable editor has something to pick from. Existing rows are matched by
their natural keys and updated in place; nothing is deleted.
"""

from __future__ import annotations

import os

from sqlalchemy import func, select

from app.db.bootstrap import ensure_runtime_schema_compatibility
from app.db.session import SessionLocal
from app.models.class_section import ClassSection
from app.models.room import Room
from app.models.subject import Subject
from app.models.teacher import Teacher

MOCK_EMAIL_DOMAIN = os.getenv("SEED_MOCK_EMAIL_DOMAIN", "campus.edu").strip().lower() or "campus.edu"

DEPARTMENTS = ["IT", "CSE", "ECE"]
YEARS = [1, 2, 3, 4]
SECTION_NAMES = ["A", "B"]

SUBJECTS: list[tuple[str, str, str]] = [
    ("IT101", "Programming Fundamentals", "IT"),
    ("IT201", "Data Structures", "IT"),
    ("IT202", "Database Management Systems", "IT"),
    ("IT301", "Computer Networks", "IT"),
    ("IT302", "Web Technologies", "IT"),
    ("CSE201", "Design and Analysis of Algorithms", "CSE"),
    ("CSE202", "Operating Systems", "CSE"),
    ("CSE301", "Machine Learning", "CSE"),
    ("CSE302", "Compiler Design", "CSE"),
    ("ECE201", "Digital Electronics", "ECE"),
    ("ECE202", "Signals and Systems", "ECE"),
    ("ECE301", "Microprocessors", "ECE"),
]

TEACHERS: list[tuple[str, str, str]] = [
    ("Asha", "Rao", "IT"),
    ("Vikram", "Nair", "IT"),
    ("Meera", "Iyer", "IT"),
    ("Rahul", "Menon", "CSE"),
    ("Divya", "Pillai", "CSE"),
    ("Karthik", "Subramanian", "CSE"),
    ("Lakshmi", "Krishnan", "ECE"),
    ("Arjun", "Varma", "ECE"),
]


def _email(first_name: str, last_name: str) -> str:
    return f"{first_name}.{last_name}@{MOCK_EMAIL_DOMAIN}".lower()


def upsert_rooms(session) -> None:
    floor_labels = {1: "Ground Floor", 2: "First Floor", 3: "Second Floor"}
    for floor, label in floor_labels.items():
        for index in range(1, 5):
            room_name = f"LH-{floor}0{index}"
            capacity = [60, 60, 72, 90][index - 1]
            room = session.execute(select(Room).where(Room.name == room_name)).scalar_one_or_none()
            if room is None:
                room = Room(name=room_name, building=f"Main Block - {label}", capacity=capacity, has_projector=True)
                session.add(room)
            else:
                room.building = f"Main Block - {label}"
                room.capacity = capacity
                room.has_projector = True

    for department in DEPARTMENTS:
        for index in range(1, 3):
            room_name = f"LAB-{department}-{index}"
            room = session.execute(select(Room).where(Room.name == room_name)).scalar_one_or_none()
            if room is None:
                session.add(Room(name=room_name, building=f"{department} Block", capacity=40))
            else:
                room.building = f"{department} Block"
                room.capacity = 40


def upsert_classes(session) -> None:
    for department in DEPARTMENTS:
        for year in YEARS:
            for section in SECTION_NAMES:
                name = f"{department}-{year}-{section}"
                item = session.execute(select(ClassSection).where(ClassSection.name == name)).scalar_one_or_none()
                if item is None:
                    session.add(ClassSection(name=name, department=department, year=year, section=section))


def upsert_subjects(session) -> None:
    for code, name, department in SUBJECTS:
        subject = session.execute(select(Subject).where(Subject.code == code)).scalar_one_or_none()
        if subject is None:
            session.add(Subject(code=code, name=name, department=department))
        else:
            subject.name = name
            subject.department = department


def upsert_teachers(session) -> None:
    for first_name, last_name, department in TEACHERS:
        email = _email(first_name, last_name)
        teacher = session.execute(select(Teacher).where(Teacher.email == email)).scalar_one_or_none()
        if teacher is None:
            session.add(Teacher(first_name=first_name, last_name=last_name, email=email, department=department))
        else:
            teacher.first_name = first_name
            teacher.last_name = last_name
            teacher.department = department


def main() -> None:
    ensure_runtime_schema_compatibility()

    with SessionLocal() as session:
        upsert_rooms(session)
        upsert_classes(session)
        upsert_subjects(session)
        upsert_teachers(session)

        session.commit()

        room_count = session.execute(select(func.count(Room.id))).scalar_one()
        class_count = session.execute(select(func.count(ClassSection.id))).scalar_one()
        subject_count = session.execute(select(func.count(Subject.id))).scalar_one()
        teacher_count = session.execute(select(func.count(Teacher.id))).scalar_one()

    print("Reference data seeded successfully.")
    print("")
    print(f"Rooms (lecture halls + labs): {room_count}")
    print(f"Class sections: {class_count}")
    print(f"Subjects: {subject_count}")
    print(f"Teachers: {teacher_count}")


if __name__ == "__main__":
    main()
