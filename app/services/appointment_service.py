import logging
from datetime import UTC, date, datetime
from uuid import UUID

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.errors import (
    DuplicateActiveBooking,
    InvalidTransition,
    NotFound,
    OutsideBookingWindow,
    SlotUnavailable,
    StorageError,
)
from app.models.appointment import (
    ACTIVE_PHONE_INDEX,
    ACTIVE_STATUSES,
    OVERLAP_CONSTRAINT,
    Appointment,
    AppointmentCreate,
    AppointmentStatus,
)
from app.services.time_service import (
    business_day_bounds,
    calculate_duration,
    calculate_end_time,
    from_naive_utc,
    is_within_booking_window,
    to_naive_utc,
)

logger = logging.getLogger(__name__)

# action -> (allowed current statuses, new status, verb used in the error message)
TRANSITIONS: dict[str, tuple[tuple[AppointmentStatus, ...], AppointmentStatus, str]] = {
    "confirm": ((AppointmentStatus.PENDING,), AppointmentStatus.CONFIRMED, "bestätigt"),
    "reject": ((AppointmentStatus.PENDING,), AppointmentStatus.REJECTED, "abgelehnt"),
    "cancel": (ACTIVE_STATUSES, AppointmentStatus.CANCELLED, "storniert"),
}


def _utc_naive_now() -> datetime:
    """Naive UTC for comparison with TIMESTAMP WITHOUT TIME ZONE."""
    return datetime.now(UTC).replace(tzinfo=None)


def _duplicate_error(existing: Appointment | None = None) -> DuplicateActiveBooking:
    if existing is None:
        return DuplicateActiveBooking()
    return DuplicateActiveBooking(
        existingAppointment={
            "id": str(existing.id),
            "startAt": from_naive_utc(existing.start_at).isoformat().replace("+00:00", "Z"),
        }
    )


async def find_active_booking_for_phone(
    session: AsyncSession, phone: str, now_utc: datetime | None = None
) -> Appointment | None:
    """Earliest PENDING/CONFIRMED booking for the phone, only future ones when now_utc is given."""
    q = select(Appointment).where(
        Appointment.customer_phone == phone,
        Appointment.status.in_(ACTIVE_STATUSES),
    )
    if now_utc is not None:
        q = q.where(Appointment.start_at > now_utc)
    result = await session.execute(q.order_by(Appointment.start_at).limit(1))
    return result.scalars().first()


async def find_conflicting_appointment(
    session: AsyncSession, start_utc: datetime, end_utc: datetime
) -> Appointment | None:
    result = await session.execute(
        select(Appointment)
        .where(
            Appointment.status.in_(ACTIVE_STATUSES),
            Appointment.start_at < end_utc,
            Appointment.end_at > start_utc,
        )
        .limit(1)
    )
    return result.scalars().first()


async def request_appointment(
    session: AsyncSession, data: AppointmentCreate, now: datetime | None = None
) -> Appointment:
    """Create a PENDING appointment after re-checking window, phone and slot.

    The lookups are only a pre-check. Two requests can pass them at once; the
    database then rejects the second insert and that rejection is reported as the
    same conflict.
    """
    if not is_within_booking_window(data.start_at, now=now):
        raise OutsideBookingWindow(
            "Dieser Termin liegt außerhalb des Buchungszeitraums (max. 3 Wochen im Voraus)"
        )

    duration, buffer, _ = calculate_duration(len(data.services))
    start_utc = to_naive_utc(data.start_at)
    end_utc = to_naive_utc(calculate_end_time(data.start_at, len(data.services)))
    now_utc = to_naive_utc(now) if now else _utc_naive_now()

    existing = await find_active_booking_for_phone(session, data.customer_phone, now_utc)
    if existing:
        raise _duplicate_error(existing)

    if await find_conflicting_appointment(session, start_utc, end_utc):
        raise SlotUnavailable()

    appointment = Appointment(
        start_at=start_utc,
        end_at=end_utc,
        duration_minutes=duration,
        buffer_minutes=buffer,
        services=list(data.services),
        customer_name=data.customer_name,
        customer_phone=data.customer_phone,
        status=AppointmentStatus.PENDING,
    )
    session.add(appointment)
    try:
        await session.flush()
        await session.refresh(appointment)
        await session.commit()
    except IntegrityError as e:
        await session.rollback()
        error = _translate_integrity_error(e)
        if isinstance(error, DuplicateActiveBooking):
            # The index also covers bookings that already started
            existing = await find_active_booking_for_phone(session, data.customer_phone)
            if existing:
                error = _duplicate_error(existing)
        raise error from e
    except SQLAlchemyError as e:
        await session.rollback()
        logger.exception("Error creating appointment: %s", e)
        raise StorageError("Fehler beim Erstellen des Termins. Bitte versuche es erneut.") from e
    return appointment


def _translate_integrity_error(exc: IntegrityError) -> Exception:
    message = str(exc.orig)
    if OVERLAP_CONSTRAINT in message or "exclusion constraint" in message:
        logger.info("Insert rejected by overlap constraint")
        return SlotUnavailable("Dieser Termin ist leider nicht mehr verfügbar.")
    if ACTIVE_PHONE_INDEX in message or "customer_phone" in message:
        logger.info("Insert rejected by active-phone index")
        return _duplicate_error()
    logger.error("Error creating appointment: %s", message)
    return StorageError("Fehler beim Erstellen des Termins. Bitte versuche es erneut.")


async def list_appointments(
    session: AsyncSession, day: date | None = None, status: AppointmentStatus | None = None
) -> list[Appointment]:
    q = select(Appointment).order_by(Appointment.start_at)
    if day:
        start, end = business_day_bounds(day)
        q = q.where(Appointment.start_at >= start, Appointment.start_at < end)
    if status:
        q = q.where(Appointment.status == status)
    result = await session.execute(q)
    return list(result.scalars().all())


async def get_appointment(
    session: AsyncSession, appointment_id: UUID, reload: bool = False
) -> Appointment:
    q = select(Appointment).where(Appointment.id == appointment_id)
    if reload:
        q = q.execution_options(populate_existing=True)
    result = await session.execute(q)
    appointment = result.scalar_one_or_none()
    if not appointment:
        raise NotFound("Termin nicht gefunden")
    return appointment


async def transition_appointment(
    session: AsyncSession, appointment_id: UUID, action: str
) -> Appointment:
    """Apply confirm / reject / cancel and commit. Raises before touching anything on a bad status.

    The UPDATE only matches while the row still has an allowed status, so of two
    concurrent actions on the same appointment only one goes through.
    """
    allowed, new_status, verb = TRANSITIONS[action]
    appointment = await get_appointment(session, appointment_id)
    if appointment.status not in allowed:
        raise InvalidTransition(
            f"Termin kann nicht {verb} werden (Status: {appointment.status})"
        )
    try:
        result = await session.execute(
            update(Appointment)
            .where(Appointment.id == appointment_id, Appointment.status.in_(allowed))
            .values(status=new_status, updated_at=_utc_naive_now())
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            await session.rollback()
            current = await get_appointment(session, appointment_id, reload=True)
            logger.info("Appointment %s changed concurrently, now %s", appointment_id, current.status)
            raise InvalidTransition(
                f"Termin kann nicht {verb} werden (Status: {current.status})"
            )
        await session.commit()
        await session.refresh(appointment)
    except SQLAlchemyError as e:
        await session.rollback()
        logger.exception("Error updating appointment %s to %s: %s", appointment_id, new_status, e)
        raise StorageError(f"Fehler: Termin konnte nicht {verb} werden") from e
    return appointment
