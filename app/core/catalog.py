"""Static shop data: opening hours and the service catalog."""
from datetime import time
from typing import NamedTuple


class OpeningHours(NamedTuple):
    start: time
    end: time


class Service(NamedTuple):
    id: str
    name: str
    description: str


# Keyed by date.weekday(): Monday = 0 ... Sunday = 6. None means closed.
OPENING_HOURS: dict[int, OpeningHours | None] = {
    0: OpeningHours(time(9, 0), time(18, 0)),  # Montag
    1: OpeningHours(time(9, 0), time(18, 0)),  # Dienstag
    2: OpeningHours(time(9, 0), time(18, 0)),  # Mittwoch
    3: OpeningHours(time(9, 0), time(18, 0)),  # Donnerstag
    4: OpeningHours(time(9, 0), time(18, 0)),  # Freitag
    5: OpeningHours(time(9, 0), time(14, 0)),  # Samstag
    6: None,  # Sonntag - geschlossen
}

SERVICES: tuple[Service, ...] = (
    Service("haircut", "Haarschnitt", "Klassischer Herrenhaarschnitt"),
    Service("beard", "Bart trimmen", "Bart in Form bringen"),
    Service("beard-shave", "Rasur", "Nassrasur mit heißem Tuch"),
    Service("wash", "Haare waschen", "Waschen mit Massage"),
    Service("styling", "Styling", "Haare stylen mit Produkt"),
    Service("color", "Färben", "Haare oder Bart färben"),
    Service("eyebrows", "Augenbrauen", "Augenbrauen in Form"),
    Service("kids", "Kinderhaarschnitt", "Für Kinder bis 12 Jahre"),
)

_SERVICES_BY_ID = {s.id: s for s in SERVICES}


def service_names(service_ids: list[str]) -> list[str]:
    """Display names for service ids; unknown ids are returned unchanged."""
    return [_SERVICES_BY_ID[sid].name if sid in _SERVICES_BY_ID else sid for sid in service_ids]
