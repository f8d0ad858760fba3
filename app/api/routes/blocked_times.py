import logging
from datetime import datetime
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import get_session, require_admin
from app.api.schemas.admin import (
    BlockedTimeCreate,
    BlockedTimeCreated,
    BlockedTimeListResponse,
    BlockedTimePublic,
)
from app.core.errors import NotFound, ValidationFailed
from app.models.blocked_time import BlockedTime
from app.services.blocked_time_service import (
    create_blocked_time,
    delete_blocked_time,
    list_blocked_times,
)
from app.services.time_service import from_naive_utc

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/admin/blocked-times", tags=["admin"], dependencies=[Depends(require_admin)])


def _to_public(b: BlockedTime) -> BlockedTimePublic:
    return BlockedTimePublic(
        id=b.id,
        start_at=from_naive_utc(b.start_at),
        end_at=from_naive_utc(b.end_at),
        reason=b.reason,
    )


@router.get("", response_model=BlockedTimeListResponse)
async def list_blocked(
    from_dt: datetime | None = Query(None, alias="from"),
    to_dt: datetime | None = Query(None, alias="to"),
    session: AsyncSession = Depends(get_session),
) -> BlockedTimeListResponse:
    naive = [name for name, value in (("from", from_dt), ("to", to_dt)) if value and value.tzinfo is None]
    if naive:
        raise ValidationFailed(
            "Ungültige Parameter",
            details=[f"'{name}' braucht eine Zeitzone" for name in naive],
        )
    rows = await list_blocked_times(session, from_dt=from_dt, to_dt=to_dt)
    return BlockedTimeListResponse(blocked_times=[_to_public(b) for b in rows])


@router.post("", response_model=BlockedTimeCreated, status_code=status.HTTP_201_CREATED)
async def create_blocked(
    body: BlockedTimeCreate,
    session: AsyncSession = Depends(get_session),
) -> BlockedTimeCreated:
    blocked = await create_blocked_time(session, body.start_at, body.end_at, body.reason)
    logger.info("Blocked %s - %s (%s)", blocked.start_at, blocked.end_at, blocked.reason or "-")
    return BlockedTimeCreated(blocked_time=_to_public(blocked))


@router.delete("")
async def delete_blocked(
    blocked_time_id: UUID | None = Query(None, alias="id"),
    session: AsyncSession = Depends(get_session),
) -> dict:
    if blocked_time_id is None:
        raise ValidationFailed("ID erforderlich")
    if not await delete_blocked_time(session, blocked_time_id):
        raise NotFound("Sperrzeit nicht gefunden")
    return {"success": True}
