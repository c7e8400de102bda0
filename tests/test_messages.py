# tests/test_messages.py
from datetime import datetime, timedelta, timezone

from kidneycare import crud, models

T0 = datetime(2025, 5, 21, 8, 0, tzinfo=timezone.utc)


def test_send_message(client, db, patient_user, doctor, auth_headers):
    response = client.post(
        "/api/messages",
        json={"to": doctor.id, "content": "Hello!"},
        headers=auth_headers(patient_user),
    )

    assert response.status_code == 201
    body = response.json()
    assert body["sender"] == "Jane Cooper"
    assert body["senderId"] == patient_user.id
    assert body["recipient"] == "Dr. Smith"
    assert body["recipientId"] == doctor.id
    assert body["content"] == "Hello!"
    assert "timestamp" in body and "id" in body
    assert db.query(models.Message).count() == 1


def test_send_message_to_unknown_recipient(client, doctor, auth_headers):
    response = client.post(
        "/api/messages",
        json={"to": 9999, "content": "Anyone there?"},
        headers=auth_headers(doctor),
    )

    assert response.status_code == 404
    assert response.json() == {"error": "Recipient not found"}


def test_patient_cannot_message_another_patient(client, db, patient_user, make_user, auth_headers):
    other = make_user("bob.patient", "patient")

    response = client.post(
        "/api/messages",
        json={"to": other.id, "content": "hi"},
        headers=auth_headers(patient_user),
    )

    assert response.status_code == 403
    assert db.query(models.Message).count() == 0


def test_doctor_can_message_patient(client, patient_user, doctor, auth_headers):
    response = client.post(
        "/api/messages",
        json={"to": patient_user.id, "content": "Your labs look good"},
        headers=auth_headers(doctor),
    )

    assert response.status_code == 201


def test_blank_message_is_rejected(client, doctor, staff, auth_headers):
    response = client.post(
        "/api/messages",
        json={"to": staff.id, "content": "   "},
        headers=auth_headers(doctor),
    )

    assert response.status_code == 400
    assert response.json()["fields"][0]["field"] == "content"


def test_cannot_message_self(client, doctor, auth_headers):
    response = client.post(
        "/api/messages",
        json={"to": doctor.id, "content": "memo"},
        headers=auth_headers(doctor),
    )

    assert response.status_code == 400


def test_conversation_groups_both_directions(client, db, patient_user, doctor, auth_headers):
    crud.create_message(db, patient_user.id, doctor.id, "I feel swollen", timestamp=T0)
    crud.create_message(db, doctor.id, patient_user.id, "Come in tomorrow", timestamp=T0 + timedelta(hours=1))

    response = client.get("/api/messages", headers=auth_headers(patient_user))

    assert response.status_code == 200
    conversations = {c["participantId"]: c for c in response.json()}
    conversation = conversations[doctor.id]
    assert conversation["id"] == f"{patient_user.id}-{doctor.id}"
    assert conversation["participant"] == "Dr. Smith"
    assert conversation["participantRole"] == "doctor"
    assert conversation["lastMessage"] == "Come in tomorrow"
    assert conversation["role"] == "sender"
    assert datetime.fromisoformat(conversation["timestamp"].replace("Z", "+00:00")) == T0 + timedelta(hours=1)
    assert [m["content"] for m in conversation["messages"]] == ["I feel swollen", "Come in tomorrow"]


def test_patient_inbox_lists_clinicians_without_history(client, patient_user, doctor, staff, make_user, auth_headers):
    make_user("bob.patient", "patient")

    response = client.get("/api/messages", headers=auth_headers(patient_user))

    assert response.status_code == 200
    conversations = response.json()
    assert {c["participantId"] for c in conversations} == {doctor.id, staff.id}
    for conversation in conversations:
        assert conversation["messages"] == []
        assert conversation["lastMessage"] == ""
    assert patient_user.id not in {c["participantId"] for c in conversations}


def test_clinician_inbox_includes_patients(client, patient_user, doctor, staff, auth_headers):
    response = client.get("/api/messages", headers=auth_headers(doctor))

    assert {c["participantId"] for c in response.json()} == {patient_user.id, staff.id}


def test_inbox_only_contains_callers_messages(client, db, patient_user, doctor, staff, auth_headers):
    crud.create_message(db, doctor.id, staff.id, "Shift change at 6", timestamp=T0)

    response = client.get("/api/messages", headers=auth_headers(patient_user))

    assert all(c["messages"] == [] for c in response.json())
