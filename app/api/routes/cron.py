from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import get_session, require_admin
from app.api.schemas.admin import CleanupResponse
from app.services.cleanup_service import run_cleanup
from app.services.time_service import from_naive_utc

router = APIRouter(prefix="/cron", tags=["cron"], dependencies=[Depends(require_admin)])


@router.post("/cleanup", response_model=CleanupResponse)
async def cleanup(session: AsyncSession = Depends(get_session)):
    """Called once a day by the scheduler with the admin secret as bearer token."""
    result = await run_cleanup(session)
    total = sum(result.deleted.values())
    body = CleanupResponse(
        success=result.ok,
        deleted=result.deleted,
        deleted_count=total,
        cleanup_date=from_naive_utc(result.cutoff),
        message=(
            f"{total} Einträge wurden gelöscht"
            if result.ok
            else f"Fehler beim Aufräumen: {', '.join(result.failed)}"
        ),
    )
    if not result.ok:
        return JSONResponse(
            status_code=500,
            content={"error": "Fehler beim Aufräumen", **body.model_dump(mode="json", by_alias=True)},
        )
    return body
