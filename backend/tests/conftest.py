import os

# Point the app-level engine at a throwaway database before anything imports settings.
os.environ.setdefault("DATABASE_URL", "sqlite+pysqlite:///:memory:")

from types import SimpleNamespace

import pytest
from fastapi.testclient import TestClient  # fake HTTP client, calls the routes without a real server
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from app.api.deps import get_db
from app.core.security import Role, create_access_token
from app.db.bootstrap import ensure_runtime_schema_compatibility
from app.main import app
from app.models.class_section import ClassSection
from app.models.room import Room
from app.models.subject import Subject
from app.models.teacher import Teacher


@pytest.fixture()
def engine():
    # isolated in-memory DB; StaticPool keeps a single connection so every session sees the same data
    engine = create_engine(
        "sqlite+pysqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    ensure_runtime_schema_compatibility(engine)
    yield engine
    engine.dispose()


@pytest.fixture()
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture()
def db_session(session_factory):
    db = session_factory()
    try:
        yield db
    finally:
        db.close()


def seed_references(db) -> SimpleNamespace:
    classes = [
        ClassSection(name="IT-2-A", department="IT", year=2, section="A"),
        ClassSection(name="IT-2-B", department="IT", year=2, section="B"),
    ]
    subjects = [
        Subject(code="IT201", name="Data Structures", department="IT"),
        Subject(code="IT202", name="Operating Systems", department="IT"),
    ]
    teachers = [
        Teacher(first_name="Asha", last_name="Rao", email="asha.rao@campus.edu", department="IT"),
        Teacher(first_name="Vikram", last_name="Nair", email="vikram.nair@campus.edu", department="IT"),
    ]
    rooms = [
        Room(name="LH-101", building="Main Block", capacity=60, has_projector=True),
        Room(name="LH-102", building="Main Block", capacity=60, has_projector=True),
        Room(name="LAB-IT-1", building="IT Block", capacity=40),
    ]
    db.add_all([*classes, *subjects, *teachers, *rooms])
    db.commit()
    return SimpleNamespace(
        C1=classes[0].id,
        C2=classes[1].id,
        S1=subjects[0].id,
        S2=subjects[1].id,
        T1=teachers[0].id,
        T2=teachers[1].id,
        R1=rooms[0].id,
        R2=rooms[1].id,
        R3=rooms[2].id,
    )


@pytest.fixture()
def refs(db_session):
    return seed_references(db_session)


@pytest.fixture()
def client(session_factory):
    def override_get_db():
        db = session_factory()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_get_db

    with TestClient(app) as test_client:
        yield test_client

    app.dependency_overrides.clear()


def auth_headers(subject: str, *roles: Role) -> dict[str, str]:
    return {"Authorization": f"Bearer {create_access_token(subject, list(roles))}"}


@pytest.fixture()
def admin_headers():
    return auth_headers("admin-1", Role.admin)


@pytest.fixture()
def teacher_headers():
    return auth_headers("teacher-1", Role.teacher)


@pytest.fixture()
def student_headers():
    return auth_headers("student-1", Role.student)
