from datetime import UTC, datetime
from enum import StrEnum
from uuid import UUID, uuid4

from sqlalchemy import JSON, Column, DDL, DateTime, Index, String, event, text
from sqlmodel import Field, SQLModel


def _utc_naive_now() -> datetime:
    """Naive UTC for TIMESTAMP WITHOUT TIME ZONE columns."""
    return datetime.now(UTC).replace(tzinfo=None)


class AppointmentStatus(StrEnum):
    PENDING = "PENDING"
    CONFIRMED = "CONFIRMED"
    REJECTED = "REJECTED"
    CANCELLED = "CANCELLED"


ACTIVE_STATUSES = (AppointmentStatus.PENDING, AppointmentStatus.CONFIRMED)
TERMINAL_STATUSES = (AppointmentStatus.REJECTED, AppointmentStatus.CANCELLED)

OVERLAP_CONSTRAINT = "appointments_no_overlap"
ACTIVE_PHONE_INDEX = "uq_appointments_active_phone"

_ACTIVE_WHERE = text("status IN ('PENDING', 'CONFIRMED')")


class Appointment(SQLModel, table=True):
    __tablename__ = "appointments"
    __table_args__ = (
        # One PENDING/CONFIRMED booking per phone number
        Index(
            ACTIVE_PHONE_INDEX,
            "customer_phone",
            unique=True,
            postgresql_where=_ACTIVE_WHERE,
            sqlite_where=_ACTIVE_WHERE,
        ),
    )

    id: UUID = Field(default_factory=uuid4, primary_key=True)
    start_at: datetime = Field(sa_column=Column(DateTime(), nullable=False, index=True))
    end_at: datetime = Field(sa_column=Column(DateTime(), nullable=False))
    duration_minutes: int
    buffer_minutes: int = 0
    services: list[str] = Field(sa_column=Column(JSON, nullable=False))
    customer_name: str = Field(max_length=100)
    customer_phone: str = Field(index=True)
    status: str = Field(
        default=AppointmentStatus.PENDING,
        sa_column=Column(String(16), nullable=False, index=True, server_default="PENDING"),
    )
    created_at: datetime = Field(default_factory=_utc_naive_now, sa_column=Column(DateTime(), nullable=False))
    updated_at: datetime = Field(default_factory=_utc_naive_now, sa_column=Column(DateTime(), nullable=False))


class AppointmentCreate(SQLModel):
    start_at: datetime  # timezone-aware
    customer_name: str
    customer_phone: str  # normalized +49...
    services: list[str]


# No two active appointments may overlap. Postgres only; mirrors migration 001.
event.listen(
    Appointment.__table__,
    "after_create",
    DDL(
        f"ALTER TABLE appointments ADD CONSTRAINT {OVERLAP_CONSTRAINT} "
        "EXCLUDE USING gist (tsrange(start_at, end_at, '[)') WITH &&) "
        "WHERE (status IN ('PENDING', 'CONFIRMED'))"
    ).execute_if(dialect="postgresql"),
)
