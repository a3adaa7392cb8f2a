import datetime as dt

from dentassist.domain.exceptions import DoctorUnavailableError, SlotUnavailableError
from dentassist.domain.models import Appointment, AppointmentRequest, AppointmentStatus, Doctor
from dentassist.notifications.email import ConfirmationEmail


class FakeClinicClient:
    """In-memory test double for the ClinicClientProtocol protocol.

    Pre-load ``doctors`` and ``booked`` to control what the client returns.
    Set ``list_error``, ``slots_error``, ``create_error``, etc. to make the
    corresponding method raise on the next call.

    After calls, inspect ``created``, ``slot_queries`` and ``confirmations``
    to verify what was passed to the client.
    """

    def __init__(self) -> None:
        self.doctors: list[Doctor] = []
        self.booked: dict[tuple[str, dt.date], set[str]] = {}
        self.created: list[AppointmentRequest] = []
        self.appointments: list[Appointment] = []
        self.slot_queries: list[tuple[str, dt.date]] = []
        self.confirmations: list[ConfirmationEmail] = []
        self.patient_email: str = "patient@example.com"
        self.closed: bool = False

        self.list_error: Exception | None = None
        self.slots_error: Exception | None = None
        self.create_error: Exception | None = None
        self.confirmation_error: Exception | None = None

    async def list_doctors(self, *, active_only: bool = False) -> list[Doctor]:
        if self.list_error:
            raise self.list_error
        return [d for d in self.doctors if d.is_active or not active_only]

    async def list_booked_slots(self, doctor_id: str, date: dt.date) -> set[str]:
        if self.slots_error:
            raise self.slots_error
        self.slot_queries.append((doctor_id, date))
        return set(self.booked.get((doctor_id, date), set()))

    async def create_appointment(self, request: AppointmentRequest) -> Appointment:
        if self.create_error:
            raise self.create_error
        doctor = next((d for d in self.doctors if d.doctor_id == request.doctor_id), None)
        if doctor is None or not doctor.is_active:
            raise DoctorUnavailableError(request.doctor_id)
        taken = self.booked.setdefault((request.doctor_id, request.date), set())
        if request.time in taken:
            raise SlotUnavailableError(request.doctor_id, request.date.isoformat(), request.time)
        taken.add(request.time)
        self.created.append(request)
        appointment = Appointment(
            appointment_id=f"appt-{len(self.created)}",
            doctor_id=doctor.doctor_id,
            doctor_name=doctor.name,
            doctor_image_url=doctor.image_url,
            patient_email=request.patient_email or self.patient_email,
            date=request.date,
            time=request.time,
            reason=request.reason,
            status=AppointmentStatus.CONFIRMED,
        )
        self.appointments.append(appointment)
        return appointment

    async def list_appointments(self, patient_email: str | None = None) -> list[Appointment]:
        return [a for a in self.appointments if patient_email in (None, a.patient_email)]

    async def send_confirmation(self, email: ConfirmationEmail) -> None:
        if self.confirmation_error:
            raise self.confirmation_error
        self.confirmations.append(email)

    async def health_check(self) -> bool:
        return True

    async def close(self) -> None:
        self.closed = True
