"""
Configuration partagée pour tous les tests.

- client : override de get_db par un MagicMock (aucune connexion PostgreSQL)
- db_session : base SQLite en mémoire, schéma complet, pour les tests de services
- seed : jeu de données minimal (programme, cours, créneau, utilisateurs, présence)
"""

import types
from datetime import datetime

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool
from unittest.mock import MagicMock

import lecturetrack.models  # noqa: F401, enregistre toutes les tables
from lecturetrack.config import settings
from lecturetrack.database import Base, get_db
from lecturetrack.main import app
from lecturetrack.models.attendance import AttendanceRecord
from lecturetrack.models.programme import Course, CourseSchedule, Programme, ProgrammeCoordinator
from lecturetrack.models.user import User


@pytest.fixture
def client(monkeypatch):
    """Client HTTP de test avec la BDD mockée et le scheduler désactivé."""
    monkeypatch.setattr(settings, "SCHEDULER_ENABLED", False)
    mock_db = MagicMock()
    app.dependency_overrides[get_db] = lambda: mock_db
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


@pytest.fixture
def session_factory():
    """
    Fabrique de sessions sur une base SQLite en mémoire partagée entre threads.
    Les clés étrangères sont appliquées, comme sur PostgreSQL.
    """
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )

    @event.listens_for(engine, "connect")
    def _enable_foreign_keys(dbapi_connection, connection_record):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    Base.metadata.create_all(engine)
    factory = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    yield factory
    Base.metadata.drop_all(engine)
    engine.dispose()


@pytest.fixture
def db_session(session_factory):
    db = session_factory()
    try:
        yield db
    finally:
        db.close()


def make_user(db, role, email, first_name="Test", last_name="User", phone_number=None):
    user = User(
        email=email,
        first_name=first_name,
        last_name=last_name,
        role=role,
        phone_number=phone_number,
    )
    db.add(user)
    db.flush()
    return user


@pytest.fixture
def seed(db_session):
    """
    Programme avec deux coordinateurs, un cours, un créneau du lundi 09:00,
    un lecturer, un délégué et une présence du lundi 2 mars 2026 à 09:05 UTC.
    """
    db = db_session
    lecturer = make_user(db, "LECTURER", "kofi.mensah@upsa.edu.gh", "Kofi", "Mensah", "0241234567")
    class_rep = make_user(db, "CLASS_REP", "ama.owusu@upsa.edu.gh", "Ama", "Owusu", "0209876543")
    coordinator = make_user(db, "COORDINATOR", "yaw.boateng@upsa.edu.gh", "Yaw", "Boateng", "0551112223")
    coordinator_2 = make_user(db, "COORDINATOR", "efua.asante@upsa.edu.gh", "Efua", "Asante")
    supervisor = make_user(db, "SUPERVISOR", "kwame.addo@upsa.edu.gh", "Kwame", "Addo")

    programme = Programme(name="BSc Accounting", level="300")
    db.add(programme)
    db.flush()
    db.add_all([
        ProgrammeCoordinator(programme_id=programme.id, user_id=coordinator.id),
        ProgrammeCoordinator(programme_id=programme.id, user_id=coordinator_2.id),
    ])

    course = Course(course_code="ACC301", title="Financial Reporting", programme_id=programme.id)
    db.add(course)
    db.flush()

    schedule = CourseSchedule(
        course_id=course.id,
        lecturer_id=lecturer.id,
        class_group="Level 300 A",
        day_of_week=1,
        start_time="09:00",
        end_time="11:00",
        location="Block B, Room 12",
        session_type="LECTURE",
    )
    db.add(schedule)
    db.flush()

    record = AttendanceRecord(
        lecturer_id=lecturer.id,
        course_schedule_id=schedule.id,
        timestamp=datetime(2026, 3, 2, 9, 5),
        method="onsite",
        location_verified=True,
    )
    db.add(record)
    db.commit()

    return types.SimpleNamespace(
        lecturer=lecturer,
        class_rep=class_rep,
        coordinator=coordinator,
        coordinator_2=coordinator_2,
        supervisor=supervisor,
        programme=programme,
        course=course,
        schedule=schedule,
        record=record,
    )
