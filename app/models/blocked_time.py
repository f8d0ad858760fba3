from datetime import UTC, datetime
from uuid import UUID, uuid4

from sqlalchemy import Column, DateTime
from sqlmodel import Field, SQLModel


def _utc_naive_now() -> datetime:
    return datetime.now(UTC).replace(tzinfo=None)


class BlockedTime(SQLModel, table=True):
    __tablename__ = "blocked_times"
    id: UUID = Field(default_factory=uuid4, primary_key=True)
    start_at: datetime = Field(sa_column=Column(DateTime(), nullable=False, index=True))
    end_at: datetime = Field(sa_column=Column(DateTime(), nullable=False, index=True))
    reason: str | None = None
    created_at: datetime = Field(default_factory=_utc_naive_now, sa_column=Column(DateTime(), nullable=False))
