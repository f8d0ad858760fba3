from datetime import date, datetime, timedelta
from enum import StrEnum
from typing import NamedTuple

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.models.appointment import ACTIVE_STATUSES, Appointment
from app.models.blocked_time import BlockedTime
from app.services.time_service import (
    business_day_bounds,
    from_naive_utc,
    generate_day_slots,
    now_in_business_tz,
    overlaps,
)


class SlotStatus(StrEnum):
    FREE = "free"
    RESERVED = "reserved"
    BLOCKED = "blocked"


class Slot(NamedTuple):
    time: datetime
    status: SlotStatus

    @property
    def available(self) -> bool:
        return self.status is SlotStatus.FREE


Interval = tuple[datetime, datetime]


async def get_busy_intervals(
    session: AsyncSession, start_inclusive: datetime, end_exclusive: datetime
) -> tuple[list[Interval], list[Interval]]:
    """Active appointments and blocked times intersecting the naive UTC range, as aware UTC intervals."""
    appointments = await session.execute(
        select(Appointment.start_at, Appointment.end_at).where(
            Appointment.status.in_(ACTIVE_STATUSES),
            Appointment.start_at < end_exclusive,
            Appointment.end_at > start_inclusive,
        )
    )
    blocked = await session.execute(
        select(BlockedTime.start_at, BlockedTime.end_at).where(
            BlockedTime.start_at < end_exclusive,
            BlockedTime.end_at > start_inclusive,
        )
    )
    return (
        [(from_naive_utc(s), from_naive_utc(e)) for s, e in appointments.all()],
        [(from_naive_utc(s), from_naive_utc(e)) for s, e in blocked.all()],
    )


def classify_slot(
    slot_start: datetime,
    duration_minutes: int,
    now: datetime,
    appointments: list[Interval],
    blocked: list[Interval],
) -> SlotStatus:
    if slot_start < now:
        return SlotStatus.BLOCKED
    slot_end = slot_start + timedelta(minutes=duration_minutes)
    if any(overlaps(slot_start, slot_end, s, e) for s, e in appointments):
        return SlotStatus.RESERVED
    if any(overlaps(slot_start, slot_end, s, e) for s, e in blocked):
        return SlotStatus.BLOCKED
    return SlotStatus.FREE


async def get_available_slots(
    session: AsyncSession,
    from_date: date,
    to_date: date,
    requested_duration: int | None = None,
    now: datetime | None = None,
) -> dict[str, list[Slot]]:
    """Every slot per day in [from_date, to_date], keyed by ISO date.

    Slots are checked against the requested duration, or the default one. A slot
    can therefore show as free yet be too short for an extended booking; the
    booking request re-checks with the real duration.
    """
    now = now or now_in_business_tz()
    duration = requested_duration or settings.min_appointment_minutes
    range_start, _ = business_day_bounds(from_date)
    _, range_end = business_day_bounds(to_date)
    appointments, blocked = await get_busy_intervals(session, range_start, range_end)

    out: dict[str, list[Slot]] = {}
    day = from_date
    while day <= to_date:
        out[day.isoformat()] = [
            Slot(s, classify_slot(s, duration, now, appointments, blocked))
            for s in generate_day_slots(day)
        ]
        day += timedelta(days=1)
    return out
