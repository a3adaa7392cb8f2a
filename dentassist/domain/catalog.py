import datetime as dt

from pydantic import BaseModel, ConfigDict


class AppointmentType(BaseModel):
    model_config = ConfigDict(frozen=True)

    type_id: str
    name: str
    duration: str
    price: str


APPOINTMENT_TYPES: tuple[AppointmentType, ...] = (
    AppointmentType(type_id="checkup", name="Regular Checkup", duration="60 min", price="$120"),
    AppointmentType(type_id="cleaning", name="Teeth Cleaning", duration="45 min", price="$90"),
    AppointmentType(type_id="consultation", name="Consultation", duration="30 min", price="$75"),
    AppointmentType(type_id="emergency", name="Emergency Visit", duration="30 min", price="$150"),
)

TIME_SLOTS: tuple[str, ...] = (
    "09:00",
    "09:30",
    "10:00",
    "10:30",
    "11:00",
    "11:30",
    "14:00",
    "14:30",
    "15:00",
    "15:30",
    "16:00",
    "16:30",
)

BOOKING_WINDOW_DAYS = 5


def find_appointment_type(type_id: str) -> AppointmentType | None:
    """Look up a catalog entry by id, ``None`` when unknown or empty."""
    return next((t for t in APPOINTMENT_TYPES if t.type_id == type_id), None)


def bookable_dates(today: dt.date, days: int = BOOKING_WINDOW_DAYS) -> list[str]:
    """Return the ISO dates patients can pick, starting tomorrow."""
    return [(today + dt.timedelta(days=offset)).isoformat() for offset in range(1, days + 1)]

