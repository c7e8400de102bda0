# tests/test_seed.py
from kidneycare import models
from kidneycare.seed import DEMO_PATIENT_ID, seed_demo_data


def test_seed_creates_demo_accounts(db):
    users = seed_demo_data(db, "Demo-Pass-1")

    assert [u.username for u in users] == ["dr.smith", "nurse.jones", "jane.cooper"]
    assert users[2].patient_id == DEMO_PATIENT_ID


def test_seed_is_idempotent(db):
    seed_demo_data(db, "Demo-Pass-1")
    seed_demo_data(db, "Demo-Pass-1")

    assert db.query(models.User).count() == 3
    assert db.query(models.Patient).count() == 1


def test_seeded_user_can_log_in(client, db):
    seed_demo_data(db, "Demo-Pass-1")

    response = client.post(
        "/api/login",
        json={"username": "dr.smith", "password": "Demo-Pass-1", "userRole": "doctor"},
    )

    assert response.status_code == 200
    assert response.json()["role"] == "doctor"


def test_health(client):
    response = client.get("/api/health")

    assert response.status_code == 200
    assert response.json() == {"status": "ok", "database": "ok"}
