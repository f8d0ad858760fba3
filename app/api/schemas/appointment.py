import re
from datetime import date, datetime
from uuid import UUID

from pydantic import Field, field_validator
from pydantic_core import PydanticCustomError

from app.api.schemas.base import CamelModel

# German numbers: +49 / 0049 / 0 prefix or none, then 7-15 digits
PHONE_RE = re.compile(r"^(\+49|0049|0)?[1-9]\d{6,14}$")


def normalize_phone(raw: str) -> str:
    """Normalize a German phone number to +49..., raising on anything PHONE_RE rejects."""
    phone = re.sub(r"[\s-]", "", raw)
    if not PHONE_RE.match(phone):
        raise PydanticCustomError("phone", "Bitte gib eine gültige Telefonnummer ein")
    if phone.startswith("0049"):
        return "+49" + phone[4:]
    if phone.startswith("0"):
        return "+49" + phone[1:]
    if not phone.startswith("+"):
        return "+49" + phone
    return phone


class BookingRequest(CamelModel):
    start_at: datetime
    customer_name: str
    customer_phone: str
    services: list[str]

    @field_validator("start_at")
    @classmethod
    def _aware(cls, v: datetime) -> datetime:
        if v.tzinfo is None:
            raise PydanticCustomError("datetime_tz", "Ungültiges Datum")
        return v

    @field_validator("customer_name")
    @classmethod
    def _name_length(cls, v: str) -> str:
        v = v.strip()
        if len(v) < 2:
            raise PydanticCustomError("name_short", "Name muss mindestens 2 Zeichen haben")
        if len(v) > 100:
            raise PydanticCustomError("name_long", "Name darf maximal 100 Zeichen haben")
        return v

    @field_validator("customer_phone")
    @classmethod
    def _phone(cls, v: str) -> str:
        return normalize_phone(v)

    @field_validator("services")
    @classmethod
    def _services_count(cls, v: list[str]) -> list[str]:
        if len(v) < 1:
            raise PydanticCustomError("services_empty", "Bitte wähle mindestens eine Leistung")
        if len(v) > 10:
            raise PydanticCustomError("services_many", "Maximal 10 Leistungen möglich")
        return v


class AppointmentSummary(CamelModel):
    id: UUID
    start_at: datetime
    end_at: datetime
    services: list[str]
    status: str


class BookingResponse(CamelModel):
    success: bool = True
    appointment: AppointmentSummary
    message: str = "Deine Terminanfrage wurde erfolgreich eingereicht!"


class SlotInfo(CamelModel):
    time: datetime  # UTC
    available: bool
    status: str


class DateRange(CamelModel):
    from_: date = Field(alias="from")
    to: date


class SlotRules(CamelModel):
    slot_interval: int
    default_duration: int
    extended_duration: int
    buffer: int
    service_threshold: int


class AvailableSlotsResponse(CamelModel):
    slots: dict[str, list[SlotInfo]]  # YYYY-MM-DD -> ordered slots
    booking_window: DateRange
    config: SlotRules
