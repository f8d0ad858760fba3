from uuid import uuid4

import pytest
from conftest import add_appointment, load_appointment, local, next_workday
from sqlalchemy.exc import OperationalError

from app.api.deps import get_session
from app.core.config import settings
from app.main import app
from app.models import AppointmentStatus


async def test_login_returns_password_as_token(client):
    res = await client.post("/api/admin/login", json={"password": "geheim"})
    assert res.status_code == 200
    assert res.json() == {"success": True, "token": "geheim"}


async def test_login_rejects_wrong_password(client):
    res = await client.post("/api/admin/login", json={"password": "falsch"})
    assert res.status_code == 401
    assert res.json()["error"] == "Falsches Passwort"


async def test_login_requires_password(client):
    res = await client.post("/api/admin/login", json={})
    assert res.status_code == 400


async def test_login_without_configured_secret(client, monkeypatch):
    monkeypatch.setattr(settings, "admin_password", "")
    res = await client.post("/api/admin/login", json={"password": "irgendwas"})
    assert res.status_code == 500


@pytest.mark.parametrize("headers", [{}, {"Authorization": "Bearer falsch"}, {"Authorization": "Basic geheim"}])
async def test_admin_routes_require_secret(client, headers):
    res = await client.get("/api/admin/appointments", headers=headers)
    assert res.status_code == 401
    assert res.json() == {"error": "Nicht autorisiert"}


async def test_list_appointments_with_filters(client, db, admin_headers):
    day = next_workday()
    await add_appointment(db, local(day, 14), phone="+4915100000001")
    await add_appointment(db, local(day, 9), phone="+4915100000002", status=AppointmentStatus.CONFIRMED)
    await add_appointment(db, local(day, 16), phone="+4915100000003", status=AppointmentStatus.CANCELLED)

    res = await client.get("/api/admin/appointments", headers=admin_headers)
    body = res.json()
    assert res.status_code == 200
    assert body["count"] == 3
    assert [a["customer_phone"] for a in body["appointments"]] == [
        "+4915100000002",
        "+4915100000001",
        "+4915100000003",
    ]

    res = await client.get(
        "/api/admin/appointments",
        params={"date": day.isoformat(), "status": "PENDING"},
        headers=admin_headers,
    )
    assert [a["customer_phone"] for a in res.json()["appointments"]] == ["+4915100000001"]

    res = await client.get("/api/admin/appointments", params={"status": "DONE"}, headers=admin_headers)
    assert res.status_code == 400


async def test_confirm_pending_appointment(client, db, sms, admin_headers):
    appointment = await add_appointment(db, local(next_workday(), 10), services=["haircut", "beard", "mystery"])

    res = await client.post(f"/api/admin/appointments/{appointment.id}/confirm", headers=admin_headers)

    assert res.status_code == 200
    assert res.json() == {
        "success": True,
        "message": "Termin wurde bestätigt",
        "appointmentId": str(appointment.id),
    }
    stored = await load_appointment(db, appointment.id)
    assert stored.status == AppointmentStatus.CONFIRMED
    assert stored.updated_at >= appointment.updated_at
    assert len(sms.sent) == 1
    assert "Termin bestätigt" in sms.sent[0][1]
    assert "Haarschnitt, Bart trimmen, mystery" in sms.sent[0][1]


async def test_confirm_twice_is_rejected_without_side_effects(client, db, sms, admin_headers):
    appointment = await add_appointment(db, local(next_workday(), 10), status=AppointmentStatus.CONFIRMED)

    res = await client.post(f"/api/admin/appointments/{appointment.id}/confirm", headers=admin_headers)

    assert res.status_code == 400
    assert res.json()["error"] == "Termin kann nicht bestätigt werden (Status: CONFIRMED)"
    assert (await load_appointment(db, appointment.id)).status == AppointmentStatus.CONFIRMED
    assert sms.sent == []


async def test_reject_with_reason(client, db, sms, admin_headers):
    appointment = await add_appointment(db, local(next_workday(), 10))

    res = await client.post(
        f"/api/admin/appointments/{appointment.id}/reject",
        json={"reason": "Krankheit"},
        headers=admin_headers,
    )

    assert res.status_code == 200
    assert (await load_appointment(db, appointment.id)).status == AppointmentStatus.REJECTED
    assert "Grund: Krankheit" in sms.sent[0][1]


async def test_reject_confirmed_is_not_allowed(client, db, admin_headers):
    appointment = await add_appointment(db, local(next_workday(), 10), status=AppointmentStatus.CONFIRMED)
    res = await client.post(f"/api/admin/appointments/{appointment.id}/reject", headers=admin_headers)
    assert res.status_code == 400
    assert "CONFIRMED" in res.json()["error"]


@pytest.mark.parametrize("status", [AppointmentStatus.PENDING, AppointmentStatus.CONFIRMED])
async def test_cancel_active_appointment(client, db, sms, admin_headers, status):
    appointment = await add_appointment(db, local(next_workday(), 10), status=status)

    res = await client.post(f"/api/admin/appointments/{appointment.id}/cancel", headers=admin_headers)

    assert res.status_code == 200
    assert (await load_appointment(db, appointment.id)).status == AppointmentStatus.CANCELLED
    assert "Termin storniert" in sms.sent[0][1]
    assert "Grund" not in sms.sent[0][1]


@pytest.mark.parametrize("status", [AppointmentStatus.CANCELLED, AppointmentStatus.REJECTED])
async def test_terminal_appointments_cannot_be_cancelled(client, db, sms, admin_headers, status):
    appointment = await add_appointment(db, local(next_workday(), 10), status=status)

    res = await client.post(f"/api/admin/appointments/{appointment.id}/cancel", headers=admin_headers)

    assert res.status_code == 400
    assert f"(Status: {status})" in res.json()["error"]
    assert sms.sent == []


async def test_unknown_appointment(client, admin_headers):
    res = await client.post(f"/api/admin/appointments/{uuid4()}/confirm", headers=admin_headers)
    assert res.status_code == 404
    assert res.json()["error"] == "Termin nicht gefunden"


async def test_malformed_appointment_id(client, admin_headers):
    res = await client.post("/api/admin/appointments/not-a-uuid/confirm", headers=admin_headers)
    assert res.status_code == 400


async def test_storage_failure_does_not_notify(client, db, sms, admin_headers):
    appointment = await add_appointment(db, local(next_workday(), 10))

    async def _failing_session():
        async with db() as session:
            async def _commit():
                raise OperationalError("UPDATE appointments", {}, Exception("database is gone"))

            session.commit = _commit
            try:
                yield session
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_session] = _failing_session

    res = await client.post(f"/api/admin/appointments/{appointment.id}/confirm", headers=admin_headers)

    assert res.status_code == 500
    assert "database is gone" not in res.text
    assert sms.sent == []
    assert (await load_appointment(db, appointment.id)).status == AppointmentStatus.PENDING


async def test_sms_failure_does_not_undo_transition(client, db, sms, admin_headers):
    sms.result = False
    appointment = await add_appointment(db, local(next_workday(), 10))

    res = await client.post(f"/api/admin/appointments/{appointment.id}/confirm", headers=admin_headers)

    assert res.status_code == 200
    assert (await load_appointment(db, appointment.id)).status == AppointmentStatus.CONFIRMED
