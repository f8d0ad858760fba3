import logging
from datetime import date
from uuid import UUID

from fastapi import APIRouter, BackgroundTasks, Depends, Query
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import SmsSender, get_session, get_sms_sender, require_admin
from app.api.schemas.admin import (
    ActionRequest,
    ActionResponse,
    AppointmentAdminPublic,
    AppointmentListResponse,
    LoginRequest,
    LoginResponse,
)
from app.core.errors import AppError, NotAuthorized, StorageError, ValidationFailed
from app.core.security import AdminAuthenticator, get_admin_authenticator
from app.models.appointment import Appointment, AppointmentStatus
from app.services.appointment_service import list_appointments, transition_appointment
from app.services.notification_service import TRANSITION_NOTIFIERS
from app.services.time_service import from_naive_utc

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/admin", tags=["admin"])

_SUCCESS_MESSAGES = {
    "confirm": "Termin wurde bestätigt",
    "reject": "Termin wurde abgelehnt",
    "cancel": "Termin wurde storniert",
}


def _to_admin_public(a: Appointment) -> AppointmentAdminPublic:
    return AppointmentAdminPublic(
        id=a.id,
        start_at=from_naive_utc(a.start_at),
        end_at=from_naive_utc(a.end_at),
        duration_minutes=a.duration_minutes,
        buffer_minutes=a.buffer_minutes,
        services=a.services,
        customer_name=a.customer_name,
        customer_phone=a.customer_phone,
        status=a.status,
        created_at=from_naive_utc(a.created_at),
        updated_at=from_naive_utc(a.updated_at),
    )


@router.post("/login", response_model=LoginResponse)
async def login(
    body: LoginRequest,
    authenticator: AdminAuthenticator = Depends(get_admin_authenticator),
) -> LoginResponse:
    """The token is the password itself; protected routes compare it on every request."""
    if not body.password:
        raise ValidationFailed("Passwort erforderlich")
    if not authenticator.configured:
        logger.error("ADMIN_PASSWORD environment variable not set")
        raise AppError("Server-Konfigurationsfehler")
    if not authenticator.verify(body.password):
        raise NotAuthorized("Falsches Passwort")
    return LoginResponse(token=body.password)


@router.get("/appointments", response_model=AppointmentListResponse, dependencies=[Depends(require_admin)])
async def list_all_appointments(
    day: date | None = Query(None, alias="date"),
    status_filter: AppointmentStatus | None = Query(None, alias="status"),
    session: AsyncSession = Depends(get_session),
) -> AppointmentListResponse:
    try:
        appointments = await list_appointments(session, day=day, status=status_filter)
    except SQLAlchemyError as e:
        logger.exception("Error fetching appointments: %s", e)
        raise StorageError("Fehler beim Laden der Termine") from e
    return AppointmentListResponse(
        appointments=[_to_admin_public(a) for a in appointments],
        count=len(appointments),
    )


async def _apply_action(
    action: str,
    appointment_id: UUID,
    reason: str | None,
    session: AsyncSession,
    background_tasks: BackgroundTasks,
    sms: SmsSender,
) -> ActionResponse:
    appointment = await transition_appointment(session, appointment_id, action)
    logger.info("Appointment %s: %s -> %s", appointment_id, action, appointment.status)
    background_tasks.add_task(TRANSITION_NOTIFIERS[action], sms, appointment, reason)
    return ActionResponse(message=_SUCCESS_MESSAGES[action], appointment_id=appointment_id)


@router.post(
    "/appointments/{appointment_id}/confirm",
    response_model=ActionResponse,
    dependencies=[Depends(require_admin)],
)
async def confirm_appointment(
    appointment_id: UUID,
    background_tasks: BackgroundTasks,
    session: AsyncSession = Depends(get_session),
    sms: SmsSender = Depends(get_sms_sender),
) -> ActionResponse:
    return await _apply_action("confirm", appointment_id, None, session, background_tasks, sms)


@router.post(
    "/appointments/{appointment_id}/reject",
    response_model=ActionResponse,
    dependencies=[Depends(require_admin)],
)
async def reject_appointment(
    appointment_id: UUID,
    background_tasks: BackgroundTasks,
    body: ActionRequest | None = None,
    session: AsyncSession = Depends(get_session),
    sms: SmsSender = Depends(get_sms_sender),
) -> ActionResponse:
    reason = body.reason if body else None
    return await _apply_action("reject", appointment_id, reason, session, background_tasks, sms)


@router.post(
    "/appointments/{appointment_id}/cancel",
    response_model=ActionResponse,
    dependencies=[Depends(require_admin)],
)
async def cancel_appointment(
    appointment_id: UUID,
    background_tasks: BackgroundTasks,
    body: ActionRequest | None = None,
    session: AsyncSession = Depends(get_session),
    sms: SmsSender = Depends(get_sms_sender),
) -> ActionResponse:
    reason = body.reason if body else None
    return await _apply_action("cancel", appointment_id, reason, session, background_tasks, sms)
