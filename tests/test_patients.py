# tests/test_patients.py
from datetime import date

import pytest

from kidneycare import crud, models, schemas
from kidneycare.exceptions import Conflict


def test_staff_creates_patient_with_generated_id(client, db, staff, auth_headers, patient_payload):
    response = client.post("/api/patient", json=patient_payload(), headers=auth_headers(staff))

    assert response.status_code == 201
    body = response.json()
    assert body["id"].startswith("PT-")
    assert 0 <= int(body["id"][3:]) < 1000
    assert body["firstName"] == "Jane"
    assert body["dateOfBirth"] == "1968-04-12"
    assert [a["allergen"] for a in body["allergies"]] == ["Penicillin"]
    assert db.query(models.Allergy).count() == 1


def test_patient_cannot_create_patient_records(client, patient_user, auth_headers, patient_payload):
    response = client.post("/api/patient", json=patient_payload(), headers=auth_headers(patient_user))

    assert response.status_code == 403


def test_create_patient_validates_payload(client, doctor, auth_headers, patient_payload):
    payload = patient_payload(email="not-an-email")
    del payload["lastName"]

    response = client.post("/api/patient", json=payload, headers=auth_headers(doctor))

    assert response.status_code == 400
    assert {f["field"] for f in response.json()["fields"]} == {"lastName", "email"}


def test_patient_reads_own_record(client, patient_user, auth_headers):
    response = client.get("/api/patient", headers=auth_headers(patient_user))

    assert response.status_code == 200
    assert response.json()["primaryDiagnosis"] == "Chronic Kidney Disease Stage 4"


def test_patient_without_link_gets_bad_request(client, make_user, auth_headers):
    user = make_user("walkin", "patient")

    response = client.get("/api/patient", headers=auth_headers(user))

    assert response.status_code == 400
    assert response.json()["error"] == "Patient ID is required"


def test_clinicians_list_patients(client, make_patient, doctor, auth_headers):
    make_patient(patient_id="PT-1", lastName="Adams")
    make_patient(patient_id="PT-2", lastName="Baker")

    response = client.get("/api/patients", headers=auth_headers(doctor))

    assert response.status_code == 200
    assert [p["id"] for p in response.json()] == ["PT-1", "PT-2"]


def test_patient_cannot_list_patients(client, patient_user, auth_headers):
    assert client.get("/api/patients", headers=auth_headers(patient_user)).status_code == 403


def test_read_patient_by_id(client, patient_user, make_patient, doctor, auth_headers):
    make_patient(patient_id="PT-2")

    own = client.get("/api/patient/PT-100", headers=auth_headers(patient_user))
    other = client.get("/api/patient/PT-2", headers=auth_headers(patient_user))
    by_doctor = client.get("/api/patient/PT-2", headers=auth_headers(doctor))
    missing = client.get("/api/patient/PT-999", headers=auth_headers(doctor))

    assert own.status_code == 200
    assert other.status_code == 403
    assert by_doctor.status_code == 200
    assert missing.status_code == 404
    assert missing.json() == {"error": "Patient not found"}


def test_staff_deletes_patient_and_login(client, db, patient_user, staff, auth_headers):
    patient_headers = auth_headers(patient_user)
    crud.create_message(db, patient_user.id, staff.id, "Please call me")

    response = client.delete("/api/patient/PT-100", headers=auth_headers(staff))

    assert response.status_code == 200
    assert response.json() == {"message": "Patient deleted successfully."}
    db.expire_all()
    assert db.query(models.Patient).count() == 0
    assert db.query(models.Allergy).count() == 0
    assert db.query(models.User).filter_by(username="jane.cooper").count() == 0
    assert db.query(models.Message).count() == 0
    # the deleted patient's session no longer resolves
    assert client.get("/api/user", headers=patient_headers).status_code == 401


def test_deleting_patient_removes_clinical_records(db, patient_user):
    medication = crud.create_medication(db, "PT-100", schemas.MedicationCreate(
        name="Calcitriol", dosage="0.25mcg", frequency="Daily", time=["08:00"],
    ))
    crud.mark_dose_taken(db, medication, day=date(2025, 6, 1), time="08:00")
    crud.create_appointment(db, "PT-100", schemas.AppointmentCreate(
        type="Check-up", date=date(2025, 6, 3), time="10:00", location="Clinic A",
    ))
    crud.create_vitals(db, schemas.VitalsCreate(patient_id="PT-100", weight=70.5))
    crud.create_lab_order(db, schemas.LabOrderCreate(
        patient_id="PT-100", test_type="CBC", ordered_date=date(2025, 6, 1), due_date=date(2025, 6, 2),
    ))
    crud.create_medical_record(db, schemas.MedicalRecordCreate(
        patient_id="PT-100", record_type="Note", date=date(2025, 6, 1), provider="Dr. Smith", description="Stable",
    ))

    assert crud.delete_patient(db, "PT-100") is True

    db.expire_all()
    for model in (models.Appointment, models.Medication, models.MedicationDose,
                  models.Vitals, models.LabOrder, models.MedicalRecord):
        assert db.query(model).count() == 0


def test_doctor_cannot_delete_patient(client, patient_user, doctor, auth_headers):
    response = client.delete("/api/patient/PT-100", headers=auth_headers(doctor))

    assert response.status_code == 403


def test_delete_unknown_patient(client, staff, auth_headers):
    response = client.delete("/api/patient/PT-999", headers=auth_headers(staff))

    assert response.status_code == 404


def test_generate_patient_id_skips_taken_ids(db, make_patient):
    make_patient(patient_id="PT-5")
    draws = iter([5, 5, 42])

    assert crud.generate_patient_id(db, randbelow=lambda n: next(draws)) == "PT-42"


def test_generate_patient_id_fails_when_exhausted(db, make_patient, monkeypatch):
    monkeypatch.setattr(crud, "PATIENT_ID_SPACE", 1)
    make_patient(patient_id="PT-0")

    with pytest.raises(Conflict):
        crud.generate_patient_id(db)
