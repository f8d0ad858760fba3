import asyncio
import logging
import os
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from app.api.routes import admin, appointments, blocked_times, config, cron, slots
from app.core.config import _ENV_FILE, settings
from app.core.db import async_session_maker, dispose_engine
from app.core.errors import AppError
from app.services.cleanup_service import run_cleanup

if os.getenv("ENV") != "production":
    logging.basicConfig(level=logging.DEBUG)
else:
    logging.basicConfig(
        level=logging.INFO,
        format='{"time": "%(asctime)s", "level": "%(levelname)s", "message": "%(message)s"}',
    )
logger = logging.getLogger(__name__)


async def _run_scheduled_cleanup() -> None:
    try:
        async with async_session_maker() as session:
            result = await run_cleanup(session)
            if not result.ok:
                logger.error("Scheduled cleanup incomplete, failed: %s", result.failed)
    except Exception as e:
        logger.exception("Scheduled cleanup failed: %s", e)


async def _cleanup_loop(interval_seconds: int) -> None:
    while True:
        await asyncio.sleep(interval_seconds)
        await _run_scheduled_cleanup()


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Loading .env from: %s (exists: %s)", _ENV_FILE, _ENV_FILE.exists())
    if not settings.admin_password:
        logger.warning("ADMIN_PASSWORD not set: admin and cron routes will reject every request")
    if not settings.sms_enabled:
        logger.warning("Twilio not configured: SMS notifications are disabled")
    task = None
    if settings.cleanup_interval_hours > 0:
        logger.info("In-process cleanup every %d hours", settings.cleanup_interval_hours)
        task = asyncio.create_task(_cleanup_loop(settings.cleanup_interval_hours * 60 * 60))
    yield
    if task:
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass
    await dispose_engine()


app = FastAPI(
    title="Barbershop Booking API",
    description="Slots, booking requests, admin dashboard and cleanup for the barbershop",
    version="0.1.0",
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=True,
    allow_methods=["GET", "POST", "DELETE", "OPTIONS"],
    allow_headers=["Authorization", "Content-Type"],
)

app.include_router(config.router, prefix="/api")
app.include_router(slots.router, prefix="/api")
app.include_router(appointments.router, prefix="/api")
app.include_router(admin.router, prefix="/api")
app.include_router(blocked_times.router, prefix="/api")
app.include_router(cron.router, prefix="/api")


def _cors_headers(origin: str | None) -> dict[str, str]:
    """Add CORS headers to error responses so the browser doesn't block them."""
    headers = {
        "Access-Control-Allow-Credentials": "true",
        "Access-Control-Allow-Methods": "GET, POST, DELETE, OPTIONS",
        "Access-Control-Allow-Headers": "Authorization, Content-Type",
    }
    if origin and origin in settings.cors_origins_list:
        headers["Access-Control-Allow-Origin"] = origin
    elif settings.cors_origins_list:
        headers["Access-Control-Allow-Origin"] = settings.cors_origins_list[0]
    return headers


@app.exception_handler(AppError)
async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    headers = _cors_headers(request.headers.get("origin"))
    if exc.status_code == 401:
        headers["WWW-Authenticate"] = "Bearer"
    return JSONResponse(status_code=exc.status_code, content=exc.to_content(), headers=headers)


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Report every invalid field at once, as 400 rather than FastAPI's 422."""
    details = [
        {"field": ".".join(str(p) for p in err["loc"][1:]), "message": err["msg"]}
        for err in exc.errors()
    ]
    return JSONResponse(
        status_code=400,
        content=jsonable_encoder({"error": "Ungültige Daten", "details": details}),
        headers=_cors_headers(request.headers.get("origin")),
    )


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Log the real error; the client only gets a generic message."""
    logger.exception("Unhandled exception: %s", exc)
    return JSONResponse(
        status_code=500,
        content={"error": "Ein unerwarteter Fehler ist aufgetreten"},
        headers=_cors_headers(request.headers.get("origin")),
    )


@app.get("/health")
async def health() -> dict:
    return {"status": "ok"}
