from datetime import UTC, date, timedelta

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import get_session
from app.api.schemas.appointment import AvailableSlotsResponse, DateRange, SlotInfo, SlotRules
from app.core.config import settings
from app.core.errors import ValidationFailed
from app.services.slot_service import get_available_slots
from app.services.time_service import now_in_business_tz

router = APIRouter(prefix="/slots", tags=["slots"])


@router.get("", response_model=AvailableSlotsResponse)
async def available_slots(
    from_date: date | None = Query(None, alias="from"),
    to_date: date | None = Query(None, alias="to"),
    session: AsyncSession = Depends(get_session),
) -> AvailableSlotsResponse:
    """All slots per day in [from, to] with status free / reserved / blocked. Defaults to today + booking window."""
    today = now_in_business_tz().date()
    from_date = from_date or today
    to_date = to_date or today + timedelta(days=settings.booking_window_days)
    if to_date < from_date:
        raise ValidationFailed("Ungültige Parameter", details=["'to' liegt vor 'from'"])
    if (to_date - from_date).days > settings.booking_window_days:
        raise ValidationFailed(
            "Ungültige Parameter",
            details=[f"Zeitraum darf maximal {settings.booking_window_days} Tage umfassen"],
        )

    slots = await get_available_slots(session, from_date, to_date)
    return AvailableSlotsResponse(
        slots={
            day: [SlotInfo(time=s.time.astimezone(UTC), available=s.available, status=s.status.value) for s in day_slots]
            for day, day_slots in slots.items()
        },
        booking_window=DateRange(from_=from_date, to=to_date),
        config=SlotRules(
            slot_interval=settings.slot_interval_minutes,
            default_duration=settings.default_duration_minutes,
            extended_duration=settings.extended_duration_minutes,
            buffer=settings.buffer_minutes,
            service_threshold=settings.service_threshold,
        ),
    )
