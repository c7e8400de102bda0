# tests/conftest.py
import os

os.environ["JWT_SECRET"] = "test-secret-key-with-at-least-32-characters"
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["ENVIRONMENT"] = "testing"

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from kidneycare import crud, models, schemas
from kidneycare.database import Base, get_db
from kidneycare.main import app
from kidneycare.security import create_access_token, get_password_hash, issued_tokens

PASSWORD = "Kidney-Care-1"

engine = create_engine(
    "sqlite://",
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def override_get_db():
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture
def db():
    Base.metadata.create_all(bind=engine)
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def client(db):
    app.dependency_overrides[get_db] = override_get_db
    issued_tokens.clear()
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


@pytest.fixture
def make_user(db):
    def _make_user(username, role, name=None, patient_id=None, password=PASSWORD, **extra):
        return crud.create_user(
            db,
            username=username,
            password_hash=get_password_hash(password),
            role=models.UserRole(role),
            name=name or username.title(),
            patient_id=patient_id,
            **extra,
        )
    return _make_user


def patient_payload(**overrides):
    data = {
        "firstName": "Jane",
        "lastName": "Cooper",
        "dateOfBirth": "1968-04-12",
        "gender": "Female",
        "bloodType": "O+",
        "address": "12 Harbor Road",
        "phone": "555-0100",
        "email": "jane@example.com",
        "emergencyContactName": "Tom Cooper",
        "emergencyContactRelation": "Spouse",
        "emergencyContactPhone": "555-0101",
        "insuranceProvider": "HealthFirst",
        "insurancePolicyNumber": "HF-22817",
        "primaryDiagnosis": "Chronic Kidney Disease Stage 4",
        "diagnosisDate": "2019-09-03",
        "allergies": [{"allergen": "Penicillin", "reaction": "Rash", "severity": "Moderate"}],
    }
    data.update(overrides)
    return data


@pytest.fixture(name="patient_payload")
def patient_payload_fixture():
    return patient_payload


@pytest.fixture
def make_patient(db):
    def _make_patient(patient_id=None, **overrides):
        return crud.create_patient(db, schemas.PatientCreate(**patient_payload(**overrides)), patient_id=patient_id)
    return _make_patient


@pytest.fixture
def auth_headers():
    """Cookie header carrying a freshly issued token for ``user``."""
    def _auth_headers(user, **token_kwargs):
        token, _ = create_access_token(user.id, **token_kwargs)
        return {"Cookie": f"token={token}"}
    return _auth_headers


@pytest.fixture
def doctor(make_user):
    return make_user("dr.smith", "doctor", name="Dr. Smith", specialty="Nephrology")


@pytest.fixture
def staff(make_user):
    return make_user("nurse.jones", "staff", name="Nurse Jones", department="Dialysis Unit")


@pytest.fixture
def patient_user(make_user, make_patient):
    record = make_patient(patient_id="PT-100")
    return make_user("jane.cooper", "patient", name="Jane Cooper", patient_id=record.id)
