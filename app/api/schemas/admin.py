from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, model_validator
from pydantic_core import PydanticCustomError

from app.api.schemas.base import CamelModel


class LoginRequest(BaseModel):
    password: str | None = None


class LoginResponse(BaseModel):
    success: bool = True
    token: str


class AppointmentAdminPublic(BaseModel):
    """Admin view keeps the column names of the appointments table."""

    id: UUID
    start_at: datetime
    end_at: datetime
    duration_minutes: int
    buffer_minutes: int
    services: list[str]
    customer_name: str
    customer_phone: str
    status: str
    created_at: datetime
    updated_at: datetime


class AppointmentListResponse(BaseModel):
    appointments: list[AppointmentAdminPublic]
    count: int


class ActionRequest(BaseModel):
    reason: str | None = None


class ActionResponse(CamelModel):
    success: bool = True
    message: str
    appointment_id: UUID


class BlockedTimeCreate(CamelModel):
    start_at: datetime
    end_at: datetime
    reason: str | None = None

    @model_validator(mode="after")
    def _end_after_start(self) -> "BlockedTimeCreate":
        if self.start_at.tzinfo is None or self.end_at.tzinfo is None:
            raise PydanticCustomError("datetime_tz", "Ungültiges Datum")
        if self.end_at <= self.start_at:
            raise PydanticCustomError("range", "Endzeit muss nach der Startzeit liegen")
        return self


class BlockedTimePublic(BaseModel):
    id: UUID
    start_at: datetime
    end_at: datetime
    reason: str | None = None


class BlockedTimeCreated(CamelModel):
    success: bool = True
    blocked_time: BlockedTimePublic


class BlockedTimeListResponse(CamelModel):
    blocked_times: list[BlockedTimePublic]


class CleanupResponse(CamelModel):
    success: bool
    deleted: dict[str, int]
    deleted_count: int
    cleanup_date: datetime
    message: str
