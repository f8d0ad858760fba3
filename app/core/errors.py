"""Application errors rendered as ``{"error": ..., **extra}`` by the handlers in app.main."""
from typing import Any

from fastapi import status


class AppError(Exception):
    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    message: str = "Ein Fehler ist aufgetreten"

    def __init__(self, message: str | None = None, **extra: Any) -> None:
        self.message = message or self.message
        self.extra = extra
        super().__init__(self.message)

    def to_content(self) -> dict[str, Any]:
        return {"error": self.message, **self.extra}


class ValidationFailed(AppError):
    status_code = status.HTTP_400_BAD_REQUEST
    message = "Ungültige Daten"


class NotAuthorized(AppError):
    status_code = status.HTTP_401_UNAUTHORIZED
    message = "Nicht autorisiert"


class NotFound(AppError):
    status_code = status.HTTP_404_NOT_FOUND
    message = "Nicht gefunden"


class OutsideBookingWindow(AppError):
    status_code = status.HTTP_400_BAD_REQUEST
    message = "Dieser Termin liegt außerhalb des Buchungszeitraums"


class InvalidTransition(AppError):
    status_code = status.HTTP_400_BAD_REQUEST
    message = "Statuswechsel nicht möglich"


class DuplicateActiveBooking(AppError):
    status_code = status.HTTP_409_CONFLICT
    message = "Du hast bereits einen aktiven Termin"


class SlotUnavailable(AppError):
    status_code = status.HTTP_409_CONFLICT
    message = "Dieser Termin ist leider nicht mehr verfügbar. Bitte wähle einen anderen."


class StorageError(AppError):
    """Database failure; the client only ever sees the generic message."""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
