"""Shared test fixtures."""

import os

os.environ.setdefault("SECRET_KEY", "test-secret-key")
os.environ.setdefault("DATABASE_URL", "sqlite:///:memory:")
os.environ.setdefault("DB_LOG_SLOW_QUERIES", "false")

from datetime import datetime, time

import pytest
from fastapi.testclient import TestClient
from jose import jwt
from sqlalchemy.orm import sessionmaker

from clinic.config import JWT_ALGORITHM, SECRET_KEY
from clinic.database import Base, build_engine, get_db
from clinic.main import app
from clinic.models import Doctor, Patient
from clinic.services.realtime import RealtimeHub
from clinic.shared.clock import get_now

# Sunday; 2024-07-15 is the following Monday
NOW = datetime(2024, 7, 14, 9, 0)
MONDAY = "2024-07-15"
WEEKDAYS = ["monday", "tuesday", "wednesday", "thursday", "friday"]


def make_token(user_id: str, role: str) -> str:
    return jwt.encode({"sub": user_id, "role": role}, SECRET_KEY, algorithm=JWT_ALGORITHM)


def auth_headers(user_id: str = "admin-1", role: str = "admin") -> dict:
    return {"Authorization": f"Bearer {make_token(user_id, role)}"}


@pytest.fixture
def engine(tmp_path):
    """File-backed SQLite so several sessions and threads see the same data"""
    engine = build_engine(f"sqlite:///{tmp_path / 'clinic_test.db'}")
    Base.metadata.create_all(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def hub():
    return RealtimeHub()


@pytest.fixture
def make_doctor(db):
    def _create(**overrides) -> Doctor:
        data = {
            "user_id": "doc-1",
            "name": "Ayesha Rahman",
            "email": "ayesha@clinic.test",
            "specialization": "Cardiology",
            "consultation_fee": 50.0,
            "working_days": WEEKDAYS,
            "work_start": time(9, 0),
            "work_end": time(17, 0),
            "break_start": time(13, 0),
            "break_end": time(14, 0),
            "slot_minutes": 30,
            "status": "active",
        }
        data.update(overrides)
        doctor = Doctor(**data)
        db.add(doctor)
        db.commit()
        db.refresh(doctor)
        return doctor

    return _create


@pytest.fixture
def make_patient(db):
    def _create(**overrides) -> Patient:
        data = {
            "user_id": "pat-1",
            "name": "Karim Hossain",
            "email": "karim@example.test",
            "phone": "+8801712345678",
            "status": "active",
        }
        data.update(overrides)
        patient = Patient(**data)
        db.add(patient)
        db.commit()
        db.refresh(patient)
        return patient

    return _create


@pytest.fixture
def doctor(make_doctor):
    return make_doctor()


@pytest.fixture
def patient(make_patient):
    return make_patient()


@pytest.fixture
def client(session_factory):
    """API client on the test database with the clock frozen at NOW"""

    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_now] = lambda: NOW
    yield TestClient(app)
    app.dependency_overrides.clear()
