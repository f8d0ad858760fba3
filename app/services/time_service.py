from datetime import UTC, date, datetime, timedelta
from zoneinfo import ZoneInfo

from app.core.catalog import OPENING_HOURS, OpeningHours
from app.core.config import settings

_WEEKDAYS_DE = ("Montag", "Dienstag", "Mittwoch", "Donnerstag", "Freitag", "Samstag", "Sonntag")


def business_tz() -> ZoneInfo:
    return ZoneInfo(settings.timezone)


def now_in_business_tz() -> datetime:
    return datetime.now(business_tz())


def to_naive_utc(dt: datetime) -> datetime:
    """Convert to naive UTC for TIMESTAMP WITHOUT TIME ZONE columns."""
    if dt.tzinfo is not None:
        return dt.astimezone(UTC).replace(tzinfo=None)
    return dt


def from_naive_utc(dt: datetime) -> datetime:
    """Attach UTC to a naive datetime read back from the database."""
    if dt.tzinfo is None:
        return dt.replace(tzinfo=UTC)
    return dt


def business_day_bounds(d: date) -> tuple[datetime, datetime]:
    """Naive UTC [start, end) of the business-timezone calendar day ``d``."""
    tz = business_tz()
    start = datetime.combine(d, datetime.min.time(), tzinfo=tz)
    end = datetime.combine(d + timedelta(days=1), datetime.min.time(), tzinfo=tz)
    return to_naive_utc(start), to_naive_utc(end)


def start_of_business_day(now: datetime | None = None) -> datetime:
    """Naive UTC instant of today's midnight in the business timezone."""
    now = now or now_in_business_tz()
    return business_day_bounds(now.astimezone(business_tz()).date())[0]


def opening_hours_for(day_of_week: int) -> OpeningHours | None:
    """Opening hours for ``date.weekday()`` (Monday = 0), or None when closed."""
    return OPENING_HOURS.get(day_of_week)


def generate_day_slots(d: date) -> list[datetime]:
    """Slot start times for ``d`` as aware datetimes in the business timezone.

    Starts at opening time and steps by the slot interval while a minimum-length
    appointment still ends by closing time. Closed days yield an empty list.
    """
    hours = opening_hours_for(d.weekday())
    if hours is None:
        return []
    tz = business_tz()
    current = datetime.combine(d, hours.start, tzinfo=tz)
    day_end = datetime.combine(d, hours.end, tzinfo=tz)
    min_length = timedelta(minutes=settings.min_appointment_minutes)
    step = timedelta(minutes=settings.slot_interval_minutes)
    slots: list[datetime] = []
    while current + min_length <= day_end:
        slots.append(current)
        current += step
    return slots


def calculate_duration(service_count: int) -> tuple[int, int, int]:
    """Returns (duration, buffer, total) in minutes for the number of services booked."""
    if service_count > settings.service_threshold:
        duration = settings.extended_duration_minutes
    else:
        duration = settings.default_duration_minutes
    buffer = settings.buffer_minutes
    return duration, buffer, duration + buffer


def calculate_end_time(start: datetime, service_count: int) -> datetime:
    _, _, total = calculate_duration(service_count)
    return start + timedelta(minutes=total)


def is_within_booking_window(instant: datetime, now: datetime | None = None) -> bool:
    """True iff now < instant < now + booking_window_days. Both ends exclusive."""
    now = now or now_in_business_tz()
    window_end = now + timedelta(days=settings.booking_window_days)
    return now < instant < window_end


def overlaps(start1: datetime, end1: datetime, start2: datetime, end2: datetime) -> bool:
    """Half-open interval overlap: touching intervals do not conflict."""
    return start1 < end2 and end1 > start2


def format_date_display(dt: datetime) -> str:
    return from_naive_utc(dt).astimezone(business_tz()).strftime("%d.%m.%Y")


def format_time_display(dt: datetime) -> str:
    return from_naive_utc(dt).astimezone(business_tz()).strftime("%H:%M")


def weekday_name(d: date) -> str:
    return _WEEKDAYS_DE[d.weekday()]
