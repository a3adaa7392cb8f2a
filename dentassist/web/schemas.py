import datetime as dt

from pydantic import BaseModel, Field

from dentassist.domain.models import AppointmentStatus, UserRole


class CurrentUser(BaseModel):
    """The caller as asserted by the identity headers, with the role resolved."""

    external_id: str
    email: str
    role: UserRole = UserRole.USER

    @property
    def is_admin(self) -> bool:
        return self.role is UserRole.ADMIN


class AppointmentCreate(BaseModel):
    doctor_id: str = Field(..., min_length=1)
    date: dt.date
    time: str = Field(..., min_length=1)
    reason: str | None = None


class BookedSlotsResponse(BaseModel):
    slots: list[str]


class SendEmailRequest(BaseModel):
    """Confirmation email fields. Blank required fields are rejected with 400."""

    user_email: str = ""
    doctor_name: str = ""
    appointment_date: str = ""
    appointment_time: str = ""
    appointment_type: str | None = None
    duration: str | None = None
    price: str | None = None

    def missing_required(self) -> bool:
        return not (
            self.user_email and self.doctor_name and self.appointment_date and self.appointment_time
        )


class SendEmailResponse(BaseModel):
    message: str
    email_id: str | None = None


class StatusUpdate(BaseModel):
    status: AppointmentStatus


class SyncUserRequest(BaseModel):
    first_name: str | None = None
    last_name: str | None = None
    phone: str | None = None


class MessageResponse(BaseModel):
    message: str


class HealthResponse(BaseModel):
    status: str
    database: bool
