from app.models.appointment import (
    ACTIVE_STATUSES,
    TERMINAL_STATUSES,
    Appointment,
    AppointmentStatus,
)
from app.models.blocked_time import BlockedTime

__all__ = [
    "ACTIVE_STATUSES",
    "TERMINAL_STATUSES",
    "Appointment",
    "AppointmentStatus",
    "BlockedTime",
]
