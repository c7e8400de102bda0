# tests/test_vitals.py
from datetime import datetime, timezone

from kidneycare import crud, schemas


def test_staff_records_vitals(client, patient_user, staff, auth_headers):
    response = client.post(
        "/api/vitals",
        json={
            "patientId": "PT-100",
            "temperature": "36.8",
            "systolic": "128",
            "diastolic": 82,
            "heartRate": "",
            "weight": 71.5,
            "notes": "Pre-dialysis",
        },
        headers=auth_headers(staff),
    )

    assert response.status_code == 201
    body = response.json()
    assert body["temperature"] == 36.8
    assert body["systolic"] == 128
    assert body["heartRate"] is None
    assert body["recordedBy"] == staff.id
    assert body["createdAt"].endswith(("Z", "+00:00"))


def test_patients_cannot_record_vitals(client, patient_user, auth_headers):
    response = client.post("/api/vitals", json={"patientId": "PT-100", "weight": 70}, headers=auth_headers(patient_user))

    assert response.status_code == 403


def test_implausible_reading_rejected(client, patient_user, doctor, auth_headers):
    response = client.post(
        "/api/vitals", json={"patientId": "PT-100", "oxygenSaturation": 120}, headers=auth_headers(doctor)
    )

    assert response.status_code == 400
    assert response.json()["fields"][0]["field"] == "oxygenSaturation"


def test_vitals_for_unknown_patient(client, doctor, auth_headers):
    created = client.post("/api/vitals", json={"patientId": "PT-404", "weight": 70}, headers=auth_headers(doctor))
    listed = client.get("/api/vitals", params={"patientId": "PT-404"}, headers=auth_headers(doctor))

    assert created.status_code == 404
    assert listed.status_code == 404


def test_clinician_reads_require_patient(client, doctor, auth_headers):
    response = client.get("/api/vitals", headers=auth_headers(doctor))

    assert response.status_code == 400
    assert response.json()["error"] == "Patient ID is required"


def test_patient_reads_own_vitals_by_day(client, db, patient_user, make_patient, auth_headers):
    make_patient(patient_id="PT-2")
    crud.create_vitals(db, schemas.VitalsCreate(patient_id="PT-100", weight=71.0),
                       created_at=datetime(2025, 6, 2, 9, 0, tzinfo=timezone.utc))
    crud.create_vitals(db, schemas.VitalsCreate(patient_id="PT-100", weight=70.0),
                       created_at=datetime(2025, 6, 1, 9, 0, tzinfo=timezone.utc))
    crud.create_vitals(db, schemas.VitalsCreate(patient_id="PT-2", weight=90.0),
                       created_at=datetime(2025, 6, 1, 10, 0, tzinfo=timezone.utc))

    everything = client.get("/api/vitals", params={"patientId": "PT-2"}, headers=auth_headers(patient_user))
    one_day = client.get("/api/vitals", params={"date": "2025-06-02"}, headers=auth_headers(patient_user))

    assert [v["weight"] for v in everything.json()] == [70.0, 71.0]
    assert [v["weight"] for v in one_day.json()] == [71.0]
