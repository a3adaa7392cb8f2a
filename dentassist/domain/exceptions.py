class ClinicError(Exception):
    """Base exception for all clinic-related errors."""


class ClinicUnavailableError(ClinicError):
    """Raised when the clinic backend is unreachable or not responding."""


class BookingValidationError(ClinicError):
    """Raised when a booking request is missing fields or malformed."""


class DoctorUnavailableError(ClinicError):
    """Raised when the requested doctor does not exist or is inactive."""

    def __init__(self, doctor_id: str) -> None:
        self.doctor_id = doctor_id
        super().__init__("The selected doctor is not available for appointments")


class SlotUnavailableError(ClinicError):
    """Raised when the requested slot was reserved by someone else."""

    def __init__(self, doctor_id: str, date: str, time: str) -> None:
        self.doctor_id = doctor_id
        self.date = date
        self.time = time
        super().__init__(f"The {time} slot on {date} is no longer available")


class AppointmentCreationError(ClinicError):
    """Raised when an appointment cannot be created."""

    def __init__(self, reason: str, doctor_id: str | None = None) -> None:
        self.reason = reason
        self.doctor_id = doctor_id
        super().__init__(f"Failed to create appointment: {reason}")


class AppointmentNotFoundError(ClinicError):
    def __init__(self, appointment_id: str) -> None:
        self.appointment_id = appointment_id
        super().__init__(f"Appointment {appointment_id} not found")


class DoctorNotFoundError(ClinicError):
    def __init__(self, doctor_id: str) -> None:
        self.doctor_id = doctor_id
        super().__init__(f"Doctor {doctor_id} not found")


class DuplicateDoctorError(ClinicError):
    def __init__(self, email: str) -> None:
        self.email = email
        super().__init__("A doctor with this email already exists.")


class NotificationError(ClinicError):
    """Raised when a confirmation email cannot be sent."""


class StoreNotHydratedError(RuntimeError):
    """Raised when the booking store is mutated before hydration completed."""
