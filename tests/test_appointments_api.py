from datetime import datetime, timedelta
from uuid import UUID

import pytest
from conftest import FakeSmsSender, add_appointment, load_appointment, local, next_workday

from app.api.deps import get_sms_sender
from app.main import app
from app.models import AppointmentStatus
from app.services.time_service import now_in_business_tz


def _payload(start, phone="0170 1234567", services=None, name="Max Mustermann"):
    return {
        "startAt": start.isoformat(),
        "customerName": name,
        "customerPhone": phone,
        "services": services or ["haircut"],
    }


async def test_booking_request_creates_pending_appointment(client, sms):
    start = local(next_workday(), 10)
    res = await client.post("/api/appointments/request", json=_payload(start))

    assert res.status_code == 201
    body = res.json()
    assert body["success"] is True
    appointment = body["appointment"]
    assert appointment["status"] == "PENDING"
    assert appointment["services"] == ["haircut"]
    assert appointment["startAt"].endswith("Z")
    assert len(sms.sent) == 1
    recipient, message = sms.sent[0]
    assert recipient == "+491701234567"
    assert "Terminanfrage ist eingegangen" in message
    assert "Haarschnitt" in message
    assert "10:00 Uhr" in message


@pytest.mark.parametrize("count, minutes", [(3, 60), (4, 75)])
async def test_end_time_follows_service_count(client, count, minutes):
    start = local(next_workday(), 10)
    services = ["haircut", "beard", "wash", "styling"][:count]
    res = await client.post("/api/appointments/request", json=_payload(start, services=services))

    assert res.status_code == 201
    appointment = res.json()["appointment"]
    start_at = datetime.fromisoformat(appointment["startAt"])
    end_at = datetime.fromisoformat(appointment["endAt"])
    assert end_at - start_at == timedelta(minutes=minutes)


@pytest.mark.parametrize(
    "raw, normalized",
    [
        ("0170 1234567", "+491701234567"),
        ("0049-170-1234567", "+491701234567"),
        ("+491701234567", "+491701234567"),
        ("1701234567", "+491701234567"),
    ],
)
async def test_phone_is_normalized(client, db, raw, normalized):
    res = await client.post("/api/appointments/request", json=_payload(local(next_workday(), 11), phone=raw))

    assert res.status_code == 201
    stored = await load_appointment(db, UUID(res.json()["appointment"]["id"]))
    assert stored.customer_phone == normalized


async def test_validation_reports_every_invalid_field(client, sms):
    res = await client.post(
        "/api/appointments/request",
        json={"startAt": "morgen", "customerName": " A ", "customerPhone": "abc", "services": []},
    )

    assert res.status_code == 400
    body = res.json()
    assert body["error"] == "Ungültige Daten"
    fields = {d["field"] for d in body["details"]}
    assert fields == {"startAt", "customerName", "customerPhone", "services"}
    assert sms.sent == []


async def test_too_many_services_and_long_name_rejected(client):
    res = await client.post(
        "/api/appointments/request",
        json=_payload(local(next_workday(), 10), services=["haircut"] * 11, name="x" * 101),
    )

    assert res.status_code == 400
    messages = {d["message"] for d in res.json()["details"]}
    assert "Maximal 10 Leistungen möglich" in messages
    assert "Name darf maximal 100 Zeichen haben" in messages


async def test_naive_start_time_is_rejected(client):
    payload = _payload(local(next_workday(), 10))
    payload["startAt"] = payload["startAt"][:19]
    res = await client.post("/api/appointments/request", json=payload)
    assert res.status_code == 400


@pytest.mark.parametrize("offset", [timedelta(hours=-1), timedelta(days=30)])
async def test_outside_booking_window(client, sms, offset):
    res = await client.post("/api/appointments/request", json=_payload(now_in_business_tz() + offset))

    assert res.status_code == 400
    assert "außerhalb des Buchungszeitraums" in res.json()["error"]
    assert sms.sent == []


async def test_second_active_booking_for_same_phone_returns_existing(client):
    day = next_workday()
    first = await client.post("/api/appointments/request", json=_payload(local(day, 10)))
    first_id = first.json()["appointment"]["id"]

    res = await client.post("/api/appointments/request", json=_payload(local(day + timedelta(days=1), 15)))

    assert res.status_code == 409
    body = res.json()
    assert body["error"] == "Du hast bereits einen aktiven Termin"
    assert body["existingAppointment"]["id"] == first_id
    assert body["existingAppointment"]["startAt"] == first.json()["appointment"]["startAt"]


async def test_finished_booking_does_not_count_as_active(client, db):
    day = next_workday()
    await add_appointment(db, local(day, 10), status=AppointmentStatus.CANCELLED)

    res = await client.post("/api/appointments/request", json=_payload(local(day, 10)))
    assert res.status_code == 201


async def test_overlapping_slot_is_rejected(client, db, sms):
    day = next_workday()
    await add_appointment(db, local(day, 10), phone="+4915199999999", status=AppointmentStatus.CONFIRMED)

    res = await client.post("/api/appointments/request", json=_payload(local(day, 10, 30)))

    assert res.status_code == 409
    assert "nicht mehr verfügbar" in res.json()["error"]
    assert sms.sent == []


async def test_touching_slot_is_accepted(client, db):
    day = next_workday()
    await add_appointment(db, local(day, 10), phone="+4915199999999")

    res = await client.post("/api/appointments/request", json=_payload(local(day, 11)))
    assert res.status_code == 201


async def test_extended_booking_checks_real_duration(client, db):
    day = next_workday()
    await add_appointment(db, local(day, 11, 10), minutes=50, phone="+4915199999999")

    # 10:00 + 60 min ends at 11:00 and fits; 10:00 + 75 min runs into 11:10
    res = await client.post(
        "/api/appointments/request",
        json=_payload(local(day, 10), services=["haircut", "beard", "wash", "styling"]),
    )
    assert res.status_code == 409


async def test_storage_constraint_violation_maps_to_conflict(client, db):
    # Active booking that already started today slips past the future-only
    # pre-check; the active-phone index still refuses the insert.
    earlier = now_in_business_tz() - timedelta(hours=2)
    existing = await add_appointment(db, earlier, status=AppointmentStatus.CONFIRMED)

    res = await client.post(
        "/api/appointments/request",
        json=_payload(local(next_workday(), 10), phone="+491701234567"),
    )

    assert res.status_code == 409
    body = res.json()
    assert body["error"] == "Du hast bereits einen aktiven Termin"
    assert body["existingAppointment"]["id"] == str(existing.id)
    assert body["existingAppointment"]["startAt"].endswith("Z")


@pytest.mark.parametrize("sender", [FakeSmsSender(result=False), FakeSmsSender(error=RuntimeError("boom"))])
async def test_sms_failure_does_not_fail_booking(client, db, sender):
    app.dependency_overrides[get_sms_sender] = lambda: sender

    res = await client.post("/api/appointments/request", json=_payload(local(next_workday(), 10)))

    assert res.status_code == 201
    stored = await load_appointment(db, UUID(res.json()["appointment"]["id"]))
    assert stored.status == AppointmentStatus.PENDING
