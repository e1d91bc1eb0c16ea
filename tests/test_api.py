from datetime import date, timedelta

import pytest

from tokenease.core.exceptions import StoreUnavailable
from tokenease.db.models import AppointmentStatus, PenalizedAccount
from tokenease.db.stores import AppointmentStore

from conftest import login, make_appointment

@pytest.mark.asyncio
async def test_login_and_logout(client, redis, patient):
    headers = await login(client, patient)
    assert len(redis.tokens) == 1

    response = await client.get("/api/v1/appointments/", headers=headers)
    assert response.status_code == 200

    response = await client.post("/api/v1/auth/logout", headers=headers)
    assert response.status_code == 200
    assert redis.tokens == {}

    response = await client.get("/api/v1/appointments/", headers=headers)
    assert response.status_code == 401

@pytest.mark.asyncio
async def test_wrong_password_is_rejected(client, patient):
    response = await client.post("/api/v1/auth/login", json={"email": patient.email, "password": "nope"})
    assert response.status_code == 401

@pytest.mark.asyncio
async def test_admin_routes_need_an_admin(client, patient):
    response = await client.get("/api/v1/admin/appointments")
    assert response.status_code == 401

    headers = await login(client, patient)
    response = await client.get("/api/v1/admin/appointments", headers=headers)
    assert response.status_code == 403

@pytest.mark.asyncio
async def test_book_and_track_the_queue(client, admin, patient, doctor, slot_config):
    patient_headers = await login(client, patient)
    admin_headers = await login(client, admin)
    today = date.today()

    response = await client.get(f"/api/v1/doctors/{doctor.id}/slots", params={"date": today.isoformat()}, headers=patient_headers)
    assert response.status_code == 200
    assert [slot["start_time"] for slot in response.json()["slots"]] == ["09:00", "09:15"]

    response = await client.post("/api/v1/appointments/", json={
        "doctor_id": str(doctor.id),
        "slot_config_id": str(slot_config.id),
        "date": today.isoformat(),
        "start_time": "09:15",
    }, headers=patient_headers)
    assert response.status_code == 201, response.text
    booked = response.json()
    assert booked["token_number"] == 1
    assert booked["status"] == "upcoming"
    assert booked["doctor_name"] == "Dr. Priya Nair"

    response = await client.get(f"/api/v1/appointments/{booked['id']}/status", headers=patient_headers)
    progress = response.json()["progress"]
    assert progress == {"current_serving": 0, "wait_minutes": 5, "wait_label": "5 min", "is_your_turn": False}

    response = await client.post(f"/api/v1/admin/queue/{doctor.id}/advance", json={}, headers=admin_headers)
    assert response.status_code == 200
    assert response.json()["current_serving"] == 1

    response = await client.get(f"/api/v1/appointments/{booked['id']}/status", headers=patient_headers)
    body = response.json()
    assert body["status"] == "active"
    assert body["progress"]["is_your_turn"] is True
    assert body["progress"]["wait_label"] == "Your turn!"

    response = await client.post(f"/api/v1/admin/appointments/{booked['id']}/complete", headers=admin_headers)
    assert response.status_code == 200
    assert response.json()["status"] == "completed"

    response = await client.post(f"/api/v1/appointments/{booked['id']}/cancel", headers=patient_headers)
    assert response.status_code == 409
    assert response.json()["current"] == "completed"

@pytest.mark.asyncio
async def test_queue_counter_cannot_go_back(client, admin, doctor):
    headers = await login(client, admin)
    await client.post(f"/api/v1/admin/queue/{doctor.id}/advance", json={"to_token": 6}, headers=headers)

    response = await client.post(f"/api/v1/admin/queue/{doctor.id}/advance", json={"to_token": 2}, headers=headers)
    assert response.status_code == 409

    response = await client.get(f"/api/v1/queue/{doctor.id}", headers=headers)
    assert response.json()["current_serving"] == 6

@pytest.mark.asyncio
async def test_admin_listing_sweeps_missed_appointments(client, session, admin, patient, doctor):
    stale = await make_appointment(session, patient, doctor, date.today() - timedelta(days=3))
    await make_appointment(session, patient, doctor, date.today() + timedelta(days=1), token_number=1)
    headers = await login(client, admin)

    response = await client.get("/api/v1/admin/appointments", params={"tab": "past"}, headers=headers)
    assert response.status_code == 200
    body = response.json()
    assert body["swept"] == 1
    assert [a["id"] for a in body["appointments"]] == [str(stale.id)]
    assert body["appointments"][0]["status"] == "missed"

    response = await client.get("/api/v1/admin/appointments", params={"tab": "upcoming"}, headers=headers)
    body = response.json()
    assert body["swept"] == 0
    assert len(body["appointments"]) == 1

    response = await client.get("/api/v1/admin/penalties", headers=headers)
    accounts = response.json()
    assert len(accounts) == 1
    assert accounts[0]["patient_name"] == "Asha Menon"
    assert accounts[0]["strikes"] == 1

    response = await client.post(f"/api/v1/admin/penalties/{patient.id}/reset", headers=headers)
    assert response.status_code == 200
    assert response.json()["strikes"] == 0

    response = await client.get("/api/v1/admin/penalties", headers=headers)
    assert response.json() == []

@pytest.mark.asyncio
async def test_blocked_patient_gets_403_and_admin_can_unblock(client, session, admin, patient, doctor, slot_config):
    session.add(PenalizedAccount(patient_id=patient.id, strikes=3, is_blocked=True, blocked_until=date.today() + timedelta(days=10)))
    await session.commit()
    payload = {
        "doctor_id": str(doctor.id),
        "slot_config_id": str(slot_config.id),
        "date": date.today().isoformat(),
        "start_time": "09:00",
    }

    patient_headers = await login(client, patient)
    response = await client.post("/api/v1/appointments/", json=payload, headers=patient_headers)
    assert response.status_code == 403
    assert response.json()["code"] == "account_blocked"

    admin_headers = await login(client, admin)
    response = await client.post(f"/api/v1/admin/penalties/{patient.id}/unblock", headers=admin_headers)
    assert response.json()["is_blocked"] is False
    assert response.json()["blocked_until"] is None

    response = await client.post("/api/v1/appointments/", json=payload, headers=patient_headers)
    assert response.status_code == 201

@pytest.mark.asyncio
async def test_patients_only_see_their_own_appointments(client, session, admin, patient, doctor):
    appointment = await make_appointment(session, admin, doctor, date.today())
    headers = await login(client, patient)

    response = await client.get(f"/api/v1/appointments/{appointment.id}", headers=headers)
    assert response.status_code == 404

@pytest.mark.asyncio
async def test_dashboard_counts(client, session, admin, patient, doctor):
    await make_appointment(session, patient, doctor, date.today(), status=AppointmentStatus.COMPLETED)
    await make_appointment(session, patient, doctor, date.today() + timedelta(days=2), token_number=2)
    session.add(PenalizedAccount(patient_id=patient.id, strikes=1))
    await session.commit()
    headers = await login(client, admin)

    response = await client.get("/api/v1/admin/dashboard", headers=headers)
    body = response.json()
    assert body["total_patients"] == {"value": 1, "error": False}
    assert body["completed_appointments"]["value"] == 1
    assert body["visited_today"]["value"] == 1
    assert body["upcoming_today"]["value"] == 0
    assert body["active_penalties"] == {"value": 1, "error": False}
    assert body["appointments_by_doctor"] == {
        "items": [{"doctor_id": str(doctor.id), "name": "Dr. Priya Nair", "value": 2}],
        "error": False,
    }

@pytest.mark.asyncio
async def test_dashboard_flags_sections_that_failed_to_load(client, session, admin, patient, doctor, monkeypatch):
    await make_appointment(session, patient, doctor, date.today(), status=AppointmentStatus.COMPLETED)
    headers = await login(client, admin)

    async def unavailable(self, *args, **kwargs):
        raise StoreUnavailable("count_by_status", RuntimeError("connection reset"))

    monkeypatch.setattr(AppointmentStore, "count_by_status", unavailable)
    response = await client.get("/api/v1/admin/dashboard", headers=headers)

    assert response.status_code == 200
    body = response.json()
    for section in ("completed_appointments", "visited_today", "upcoming_today"):
        assert body[section] == {"value": 0, "error": True}
    assert body["total_patients"] == {"value": 1, "error": False}
    assert body["appointments_by_doctor"]["error"] is False
    assert body["appointments_by_doctor"]["items"][0]["value"] == 1

@pytest.mark.asyncio
async def test_admin_listing_reports_a_failed_read(client, session, admin, patient, doctor, monkeypatch):
    await make_appointment(session, patient, doctor, date.today())
    headers = await login(client, admin)

    async def unavailable(self):
        raise StoreUnavailable("query_all", RuntimeError("connection reset"))

    monkeypatch.setattr(AppointmentStore, "query_all", unavailable)
    response = await client.get("/api/v1/admin/appointments", headers=headers)

    assert response.status_code == 200
    body = response.json()
    assert body["appointments"] == []
    assert body["error"] == "Could not fetch appointments."

@pytest.mark.asyncio
async def test_stale_appointment_cannot_be_activated(client, session, admin, patient, doctor):
    stale = await make_appointment(session, patient, doctor, date.today() - timedelta(days=2))
    headers = await login(client, admin)

    for action in ("activate", "delay", "complete"):
        response = await client.post(f"/api/v1/admin/appointments/{stale.id}/{action}", headers=headers)
        assert response.status_code == 409
        assert response.json()["current"] == "missed"

    await session.refresh(stale)
    assert stale.status == AppointmentStatus.UPCOMING

@pytest.mark.asyncio
async def test_slot_config_with_bookings_cannot_be_deleted(client, session, admin, patient, doctor, slot_config):
    await make_appointment(session, patient, doctor, date.today(), slot_config=slot_config)
    headers = await login(client, admin)

    response = await client.delete(f"/api/v1/admin/slots/{slot_config.id}", headers=headers)
    assert response.status_code == 409

    response = await client.get("/api/v1/admin/slots", params={"doctor_id": str(doctor.id)}, headers=headers)
    assert [s["id"] for s in response.json()] == [str(slot_config.id)]

@pytest.mark.asyncio
async def test_lab_test_crud(client, admin):
    headers = await login(client, admin)

    response = await client.post("/api/v1/admin/tests", json={"name": "X", "price": 10}, headers=headers)
    assert response.status_code == 422
    response = await client.post("/api/v1/admin/tests", json={"name": "Thyroid Panel", "price": -1}, headers=headers)
    assert response.status_code == 422

    response = await client.post("/api/v1/admin/tests", json={"name": "Thyroid Panel", "price": 45.5, "category": "Blood"}, headers=headers)
    assert response.status_code == 201
    thyroid = response.json()
    await client.post("/api/v1/admin/tests", json={"name": "Glucose Tolerance", "price": 30}, headers=headers)

    response = await client.get("/api/v1/admin/tests", headers=headers)
    assert [t["name"] for t in response.json()] == ["Glucose Tolerance", "Thyroid Panel"]

    response = await client.patch(f"/api/v1/admin/tests/{thyroid['id']}", json={"price": 50}, headers=headers)
    assert response.json()["price"] == 50
    assert response.json()["category"] == "Blood"

    response = await client.delete(f"/api/v1/admin/tests/{thyroid['id']}", headers=headers)
    assert response.status_code == 200
    response = await client.delete(f"/api/v1/admin/tests/{thyroid['id']}", headers=headers)
    assert response.status_code == 404

@pytest.mark.asyncio
async def test_slot_config_validation_and_crud(client, admin, doctor):
    headers = await login(client, admin)

    response = await client.post("/api/v1/admin/slots", json={
        "doctor_id": str(doctor.id),
        "days_of_week": [],
        "start_times": ["09:00"],
        "capacity_per_slot": 16,
    }, headers=headers)
    assert response.status_code == 422

    response = await client.post("/api/v1/admin/slots", json={
        "doctor_id": str(doctor.id),
        "days_of_week": ["Tuesday"],
        "start_times": ["14:30", "14:00"],
        "capacity_per_slot": 5,
    }, headers=headers)
    assert response.status_code == 201
    created = response.json()
    assert created["start_times"] == ["14:00", "14:30"]

    response = await client.patch(f"/api/v1/admin/slots/{created['id']}", json={"capacity_per_slot": 8}, headers=headers)
    assert response.json()["capacity_per_slot"] == 8

    response = await client.delete(f"/api/v1/admin/slots/{created['id']}", headers=headers)
    assert response.status_code == 200

    response = await client.get("/api/v1/admin/slots", params={"doctor_id": str(doctor.id)}, headers=headers)
    assert response.json() == []

@pytest.mark.asyncio
async def test_doctor_crud(client, admin):
    headers = await login(client, admin)

    response = await client.post("/api/v1/admin/doctors", json={"name": "Dr. Kiran Rao", "specialization": "Obstetrics"}, headers=headers)
    assert response.status_code == 201
    doctor_id = response.json()["id"]

    response = await client.patch(f"/api/v1/admin/doctors/{doctor_id}", json={"avg_minutes_per_token": 8}, headers=headers)
    assert response.json()["avg_minutes_per_token"] == 8

    await client.delete(f"/api/v1/admin/doctors/{doctor_id}", headers=headers)
    response = await client.get("/api/v1/doctors/", headers=headers)
    assert response.json() == []
