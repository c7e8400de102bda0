# tests/test_guard.py
from datetime import datetime, timedelta, timezone

import pytest
from jose import jwt

from kidneycare import models
from kidneycare.config import get_settings
from kidneycare.security import create_access_token

UNAUTHORIZED = {"message": "Unauthorized"}

GUARDED = [
    ("GET", "/api/user", None),
    ("GET", "/api/messages", None),
    ("POST", "/api/messages", {"to": 1, "content": "hello"}),
    ("POST", "/api/chatbot", {"history": [{"role": "user", "content": "hi"}]}),
    ("GET", "/api/patient", None),
    ("GET", "/api/patients", None),
    ("GET", "/api/patient/PT-100", None),
    ("DELETE", "/api/patient/PT-100", None),
    ("POST", "/api/patient", {}),
    ("GET", "/api/dialysis-sessions", None),
    ("POST", "/api/dialysis-sessions/1", {"status": "In Progress"}),
    ("GET", "/api/reports", None),
]


@pytest.mark.parametrize("method,path,body", GUARDED)
def test_guarded_endpoints_reject_missing_credential(client, method, path, body):
    response = client.request(method, path, json=body)

    assert response.status_code == 401
    assert response.json() == UNAUTHORIZED


@pytest.mark.parametrize("method,path,body", GUARDED)
def test_guarded_endpoints_reject_garbage_credential(client, method, path, body):
    response = client.request(method, path, json=body, headers={"Cookie": "token=not-a-jwt"})

    assert response.status_code == 401
    assert response.json() == UNAUTHORIZED


def test_rejected_request_has_no_side_effects(client, db, doctor, patient_user):
    response = client.post("/api/messages", json={"to": doctor.id, "content": "let me in"})
    deleted = client.delete("/api/patient/PT-100", headers={"Cookie": "token=forged"})

    assert response.status_code == 401
    assert deleted.status_code == 401
    assert db.query(models.Message).count() == 0
    assert db.query(models.Patient).filter_by(id="PT-100").count() == 1


def test_valid_token_resolves_identity(client, doctor, auth_headers):
    response = client.get("/api/user", headers=auth_headers(doctor))

    assert response.status_code == 200
    assert response.json()["id"] == doctor.id


def test_expired_token_is_rejected(client, doctor, auth_headers):
    headers = auth_headers(doctor, now=datetime.now(timezone.utc) - timedelta(days=8))

    response = client.get("/api/user", headers=headers)

    assert response.status_code == 401
    assert response.json() == UNAUTHORIZED


def test_token_signed_with_another_secret_is_rejected(client, doctor):
    forged = jwt.encode(
        {"sub": str(doctor.id), "exp": datetime.now(timezone.utc) + timedelta(days=1)},
        "some-other-secret-that-is-long-enough-32",
        algorithm="HS256",
    )

    response = client.get("/api/user", headers={"Cookie": f"token={forged}"})

    assert response.status_code == 401


def test_token_with_non_numeric_subject_is_rejected(client):
    settings = get_settings()
    token = jwt.encode(
        {"sub": "admin", "exp": datetime.now(timezone.utc) + timedelta(days=1)},
        settings.secret_key,
        algorithm=settings.algorithm,
    )

    response = client.get("/api/user", headers={"Cookie": f"token={token}"})

    assert response.status_code == 401


def test_token_for_vanished_user_is_rejected(client, db, doctor, auth_headers):
    headers = auth_headers(doctor)
    db.delete(doctor)
    db.commit()

    response = client.get("/api/user", headers=headers)

    assert response.status_code == 401
    assert response.json() == UNAUTHORIZED


def test_patient_with_dangling_patient_link_is_rejected(client, make_user):
    user = make_user("ghost", "patient", patient_id="PT-404")
    token, _ = create_access_token(user.id)

    response = client.get("/api/user", headers={"Cookie": f"token={token}"})

    assert response.status_code == 401


def test_patient_without_link_is_authenticated(client, make_user, auth_headers):
    user = make_user("walkin", "patient")

    response = client.get("/api/user", headers=auth_headers(user))

    assert response.status_code == 200
    assert response.json()["role"] == "patient"


def test_guard_attaches_linked_patient(client, patient_user, auth_headers):
    response = client.get("/api/patient", headers=auth_headers(patient_user))

    assert response.status_code == 200
    assert response.json()["id"] == "PT-100"


def test_role_check_returns_forbidden(client, staff, auth_headers):
    response = client.get("/api/reports", headers=auth_headers(staff))

    assert response.status_code == 403
    assert response.json() == {"error": "Forbidden"}
