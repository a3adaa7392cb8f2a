import datetime as dt
from enum import Enum

from pydantic import BaseModel, ConfigDict, EmailStr, Field


class AppointmentStatus(str, Enum):
    """Possible states of an appointment."""

    CONFIRMED = "confirmed"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class Gender(str, Enum):
    MALE = "male"
    FEMALE = "female"


class UserRole(str, Enum):
    ADMIN = "admin"
    USER = "user"


class Doctor(BaseModel):
    """A dentist who can be booked through the clinic."""

    model_config = ConfigDict(frozen=True)

    doctor_id: str
    name: str
    email: str
    phone: str = ""
    specialty: str | None = None
    bio: str | None = None
    gender: Gender = Gender.MALE
    image_url: str = ""
    is_active: bool = True
    appointment_count: int = 0
    created_at: dt.datetime | None = None


class DoctorCreate(BaseModel):
    """Admin input for a new doctor."""

    name: str = Field(..., min_length=1, max_length=100)
    email: EmailStr
    phone: str = ""
    specialty: str | None = Field(None, max_length=100)
    bio: str | None = Field(None, max_length=1000)
    gender: Gender = Gender.MALE
    image_url: str = ""
    is_active: bool = True


class DoctorUpdate(DoctorCreate):
    """Admin input for updating a doctor. Name and email remain required."""


class AppointmentRequest(BaseModel):
    """A request to book a slot with a doctor."""

    model_config = ConfigDict(frozen=True)

    doctor_id: str
    date: dt.date
    time: str
    reason: str | None = None
    patient_email: str = ""


class Appointment(BaseModel):
    """A booked appointment as returned by the booking mutation."""

    model_config = ConfigDict(frozen=True)

    appointment_id: str
    doctor_id: str
    doctor_name: str
    doctor_image_url: str = ""
    patient_email: str
    date: dt.date
    time: str
    reason: str | None = None
    status: AppointmentStatus = AppointmentStatus.CONFIRMED
    created_at: dt.datetime | None = None


class UserProfile(BaseModel):
    """Profile fields supplied by the identity provider."""

    model_config = ConfigDict(frozen=True)

    external_id: str
    email: EmailStr
    first_name: str | None = None
    last_name: str | None = None
    phone: str | None = None


class User(UserProfile):
    """A patient or admin account mirrored from the identity provider."""

    user_id: str
    role: UserRole = UserRole.USER

    @property
    def is_admin(self) -> bool:
        return self.role is UserRole.ADMIN


class ClinicStats(BaseModel):
    model_config = ConfigDict(frozen=True)

    total_doctors: int
    active_doctors: int
    total_appointments: int
    completed_appointments: int


class BookingSelection(BaseModel):
    """The patient's in-progress, not yet submitted choices."""

    model_config = ConfigDict(frozen=True)

    doctor_id: str | None = None
    date: str = ""
    time: str = ""
    appointment_type_id: str = ""
    current_step: int = 1


class BookingState(BaseModel):
    """Everything the booking store holds."""

    model_config = ConfigDict(frozen=True)

    selection: BookingSelection = Field(default_factory=BookingSelection)
    booked_appointment: Appointment | None = None
    confirmation_modal_visible: bool = False
