"""Daily sweep of past and finished data.

Each category is deleted and committed on its own. A failure in one is logged and
reported but does not undo the others, so a partial run is possible; re-running
picks up whatever is left.
"""
import logging
from dataclasses import dataclass, field
from datetime import datetime

from sqlalchemy import Delete, delete
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.appointment import TERMINAL_STATUSES, Appointment
from app.models.blocked_time import BlockedTime
from app.services.time_service import start_of_business_day

logger = logging.getLogger(__name__)


@dataclass
class CleanupResult:
    cutoff: datetime
    deleted: dict[str, int] = field(default_factory=dict)
    failed: list[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.failed


def _cleanup_statements(cutoff: datetime) -> list[tuple[str, Delete]]:
    return [
        ("pastAppointments", delete(Appointment).where(Appointment.start_at < cutoff)),
        ("terminalAppointments", delete(Appointment).where(Appointment.status.in_(TERMINAL_STATUSES))),
        ("pastBlockedTimes", delete(BlockedTime).where(BlockedTime.end_at < cutoff)),
    ]


async def run_cleanup(session: AsyncSession, now: datetime | None = None) -> CleanupResult:
    cutoff = start_of_business_day(now)
    result = CleanupResult(cutoff=cutoff)
    for category, stmt in _cleanup_statements(cutoff):
        try:
            res = await session.execute(stmt)
            await session.commit()
        except SQLAlchemyError as e:
            await session.rollback()
            logger.exception("Cleanup of %s failed: %s", category, e)
            result.failed.append(category)
            continue
        result.deleted[category] = res.rowcount or 0
    logger.info("Cleanup before %s: %s", cutoff.isoformat(), result.deleted)
    return result
