from fastapi import APIRouter

from app.core.catalog import OPENING_HOURS, SERVICES
from app.core.config import settings

router = APIRouter(prefix="/config", tags=["config"])


@router.get("")
async def get_config() -> dict:
    """Static booking configuration for the booking flow. Opening hours are keyed by weekday, Monday = 0."""
    return {
        "services": [s._asdict() for s in SERVICES],
        "openingHours": {
            str(day): ({"start": h.start.strftime("%H:%M"), "end": h.end.strftime("%H:%M")} if h else None)
            for day, h in OPENING_HOURS.items()
        },
        "bookingWindowDays": settings.booking_window_days,
        "durations": {
            "default": settings.default_duration_minutes,
            "extended": settings.extended_duration_minutes,
            "buffer": settings.buffer_minutes,
            "serviceThreshold": settings.service_threshold,
        },
        "slotInterval": settings.slot_interval_minutes,
        "timezone": settings.timezone,
    }
