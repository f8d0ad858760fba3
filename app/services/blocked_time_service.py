from datetime import datetime
from uuid import UUID

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.blocked_time import BlockedTime
from app.services.time_service import to_naive_utc


async def create_blocked_time(
    session: AsyncSession, start_at: datetime, end_at: datetime, reason: str | None = None
) -> BlockedTime:
    """No overlap check against appointments: the admin decides what to block."""
    blocked = BlockedTime(
        start_at=to_naive_utc(start_at),
        end_at=to_naive_utc(end_at),
        reason=reason or None,
    )
    session.add(blocked)
    await session.flush()
    await session.refresh(blocked)
    return blocked


async def list_blocked_times(
    session: AsyncSession, from_dt: datetime | None = None, to_dt: datetime | None = None
) -> list[BlockedTime]:
    """Blocked times intersecting [from_dt, to_dt); either bound may be open."""
    q = select(BlockedTime).order_by(BlockedTime.start_at)
    if from_dt:
        q = q.where(BlockedTime.end_at > to_naive_utc(from_dt))
    if to_dt:
        q = q.where(BlockedTime.start_at < to_naive_utc(to_dt))
    result = await session.execute(q)
    return list(result.scalars().all())


async def delete_blocked_time(session: AsyncSession, blocked_time_id: UUID) -> bool:
    result = await session.execute(delete(BlockedTime).where(BlockedTime.id == blocked_time_id))
    await session.flush()
    return bool(result.rowcount)
