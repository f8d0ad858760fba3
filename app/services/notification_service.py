import logging
from typing import Protocol

import httpx

from app.core.catalog import service_names
from app.core.config import settings
from app.models.appointment import Appointment
from app.services.time_service import (
    business_tz,
    format_date_display,
    format_time_display,
    from_naive_utc,
    weekday_name,
)

logger = logging.getLogger(__name__)

TWILIO_MESSAGES_URL = "https://api.twilio.com/2010-04-01/Accounts/{sid}/Messages.json"


class SmsSender(Protocol):
    async def send(self, recipient: str, message: str) -> bool: ...


class TwilioSmsSender:
    """Sends one SMS through the Twilio REST API. Never raises; returns False on any failure."""

    def __init__(
        self,
        account_sid: str,
        auth_token: str,
        from_number: str,
        timeout: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.account_sid = account_sid
        self.auth_token = auth_token
        self.from_number = from_number
        self.timeout = timeout
        self.transport = transport

    @property
    def configured(self) -> bool:
        return bool(self.account_sid and self.auth_token and self.from_number)

    async def send(self, recipient: str, message: str) -> bool:
        if not self.configured:
            logger.debug("SMS disabled (Twilio not configured), skipping send to %s", recipient)
            return False
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
                response = await client.post(
                    TWILIO_MESSAGES_URL.format(sid=self.account_sid),
                    auth=(self.account_sid, self.auth_token),
                    data={"To": recipient, "From": self.from_number, "Body": message},
                )
        except httpx.HTTPError as e:
            logger.error("Failed to send SMS to %s: %s", recipient, e)
            return False
        if response.status_code not in (200, 201):
            logger.error("Twilio API error %s for %s: %s", response.status_code, recipient, response.text)
            return False
        logger.info("SMS sent to %s", recipient)
        return True


def get_sms_sender() -> SmsSender:
    return TwilioSmsSender(
        settings.twilio_account_sid,
        settings.twilio_auth_token,
        settings.twilio_phone_number,
    )


def _when(appointment: Appointment) -> str:
    local_day = from_naive_utc(appointment.start_at).astimezone(business_tz()).date()
    return (
        f"{weekday_name(local_day)}, {format_date_display(appointment.start_at)} "
        f"um {format_time_display(appointment.start_at)} Uhr"
    )


def build_request_received_message(appointment: Appointment) -> str:
    services = ", ".join(service_names(appointment.services))
    return (
        f"Hallo {appointment.customer_name}! Deine Terminanfrage ist eingegangen:\n\n"
        f"📅 {_when(appointment)}\n✂️ {services}\n\nWir melden uns bald bei dir!"
    )


def build_confirmed_message(appointment: Appointment) -> str:
    services = ", ".join(service_names(appointment.services))
    return (
        f"✅ Termin bestätigt!\n\nHallo {appointment.customer_name}!\n\n"
        f"📅 {_when(appointment)}\n✂️ {services}\n\nWir freuen uns auf dich!"
    )


def build_rejected_message(appointment: Appointment, reason: str | None = None) -> str:
    message = (
        f"Hallo {appointment.customer_name}, leider können wir deinen Termin am "
        f"{_when(appointment)} nicht bestätigen."
    )
    if reason:
        message += f"\n\nGrund: {reason}"
    return message + "\n\nBitte buche einen anderen Termin."


def build_cancelled_message(appointment: Appointment, reason: str | None = None) -> str:
    message = (
        f"⚠️ Termin storniert\n\nHallo {appointment.customer_name}, dein Termin am "
        f"{_when(appointment)} wurde storniert."
    )
    if reason:
        message += f"\n\nGrund: {reason}"
    return message + "\n\nBitte buche einen neuen Termin."


async def _dispatch(sender: SmsSender, recipient: str, message: str, kind: str) -> bool:
    try:
        return await sender.send(recipient, message)
    except Exception as e:
        logger.exception("Failed to send %s SMS to %s: %s", kind, recipient, e)
        return False


async def notify_request_received(sender: SmsSender, appointment: Appointment) -> bool:
    return await _dispatch(
        sender, appointment.customer_phone, build_request_received_message(appointment), "request"
    )


async def notify_confirmed(sender: SmsSender, appointment: Appointment, reason: str | None = None) -> bool:
    return await _dispatch(
        sender, appointment.customer_phone, build_confirmed_message(appointment), "confirmation"
    )


async def notify_rejected(sender: SmsSender, appointment: Appointment, reason: str | None = None) -> bool:
    return await _dispatch(
        sender, appointment.customer_phone, build_rejected_message(appointment, reason), "rejection"
    )


async def notify_cancelled(sender: SmsSender, appointment: Appointment, reason: str | None = None) -> bool:
    return await _dispatch(
        sender, appointment.customer_phone, build_cancelled_message(appointment, reason), "cancellation"
    )


TRANSITION_NOTIFIERS = {
    "confirm": notify_confirmed,
    "reject": notify_rejected,
    "cancel": notify_cancelled,
}
