import logging

from fastapi import APIRouter, BackgroundTasks, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import SmsSender, get_session, get_sms_sender
from app.api.schemas.appointment import AppointmentSummary, BookingRequest, BookingResponse
from app.models.appointment import AppointmentCreate
from app.services.appointment_service import request_appointment
from app.services.notification_service import notify_request_received
from app.services.time_service import from_naive_utc

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/appointments", tags=["appointments"])


@router.post("/request", response_model=BookingResponse, status_code=status.HTTP_201_CREATED)
async def book_appointment(
    body: BookingRequest,
    background_tasks: BackgroundTasks,
    session: AsyncSession = Depends(get_session),
    sms: SmsSender = Depends(get_sms_sender),
) -> BookingResponse:
    data = AppointmentCreate(
        start_at=body.start_at,
        customer_name=body.customer_name,
        customer_phone=body.customer_phone,
        services=body.services,
    )
    appointment = await request_appointment(session, data)
    logger.info("Appointment %s requested for %s", appointment.id, appointment.start_at)
    # Committed already; the SMS goes out after the response and its result is only logged
    background_tasks.add_task(notify_request_received, sms, appointment)
    return BookingResponse(
        appointment=AppointmentSummary(
            id=appointment.id,
            start_at=from_naive_utc(appointment.start_at),
            end_at=from_naive_utc(appointment.end_at),
            services=appointment.services,
            status=appointment.status,
        )
    )
