# tests/test_reports.py
from datetime import date, datetime, timezone

from kidneycare import crud, schemas
from kidneycare.services import reports


def test_doctor_reads_reports(client, db, patient_user, make_patient, doctor, auth_headers):
    make_patient(patient_id="PT-2", dateOfBirth="2001-01-01", primaryDiagnosis="Polycystic Kidney Disease")
    crud.create_appointment(db, "PT-100", schemas.AppointmentCreate(
        type="Check-up", date=date(2025, 3, 4), time="09:00", location="Clinic A",
    ))
    # dialysis sessions are not appointments
    crud.create_dialysis_session(db, schemas.DialysisSessionCreate(
        patient_id="PT-100",
        room="Room 1",
        machine="M-1",
        scheduled_start=datetime(2025, 5, 4, 8, 0, tzinfo=timezone.utc),
        scheduled_end=datetime(2025, 5, 4, 12, 0, tzinfo=timezone.utc),
        duration=240,
    ))

    response = client.get("/api/reports", headers=auth_headers(doctor))

    assert response.status_code == 200
    body = response.json()
    assert sum(d["value"] for d in body["demographicsData"]) == 2
    assert {d["name"] for d in body["diagnosisData"]} == {
        "Chronic Kidney Disease Stage 4",
        "Polycystic Kidney Disease",
    }
    assert len(body["appointmentData"]) == 12
    assert body["appointmentData"][2] == {"month": "Mar", "count": 1}
    assert body["appointmentData"][4] == {"month": "May", "count": 0}


def test_staff_cannot_read_reports(client, staff, auth_headers):
    assert client.get("/api/reports", headers=auth_headers(staff)).status_code == 403


def test_demographics_bands():
    today = date(2025, 6, 1)
    birth_dates = [
        date(2000, 6, 2),   # 24
        date(1995, 6, 1),   # 30, birthday today
        date(1940, 1, 1),   # 85
        None,
    ]

    assert reports.demographics(birth_dates, today=today) == [
        {"name": "18-30", "value": 2},
        {"name": "76+", "value": 1},
    ]


def test_age_before_birthday():
    assert reports.age_on(date(1980, 12, 31), date(2025, 12, 30)) == 44


def test_monthly_counts_always_has_twelve_months():
    counts = reports.monthly_counts([date(2024, 1, 5), date(2025, 1, 9), date(2025, 12, 31)])

    assert [c["month"] for c in counts][:3] == ["Jan", "Feb", "Mar"]
    assert counts[0]["count"] == 2
    assert counts[11]["count"] == 1
    assert sum(c["count"] for c in counts) == 3
