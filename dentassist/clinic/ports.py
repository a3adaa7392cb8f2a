import datetime as dt
from abc import ABC, abstractmethod
from typing import Protocol

from dentassist.domain.models import (
    Appointment,
    AppointmentRequest,
    AppointmentStatus,
    Doctor,
    DoctorCreate,
    DoctorUpdate,
    User,
    UserProfile,
    UserRole,
)


class AbstractClinicService(ABC):
    """Abstract base class for the availability queries and the booking mutation."""

    @abstractmethod
    async def list_available_doctors(self) -> list[Doctor]:
        """List the doctors patients can book.

        Returns:
            Active doctors sorted by name. Inactive doctors are never included.

        Raises:
            ClinicUnavailableError: If the clinic backend is unreachable.
        """

    @abstractmethod
    async def list_booked_slots(self, doctor_id: str | None, date: str) -> frozenset[str]:
        """List slot labels already reserved for a doctor on a date.

        Args:
            doctor_id: The doctor's ID, or None when no doctor is selected.
            date: ISO date (YYYY-MM-DD), or an empty string when unset.

        Returns:
            The reserved slot labels. Empty, without querying the backend,
            when either argument is empty.

        Raises:
            ClinicUnavailableError: If the clinic backend is unreachable.
        """

    @abstractmethod
    async def book_appointment(self, request: AppointmentRequest) -> Appointment:
        """Reserve a slot for the patient.

        Args:
            request: The doctor, date, slot and reason to book.

        Returns:
            The created appointment.

        Raises:
            BookingValidationError: If required fields are missing or malformed.
            DoctorUnavailableError: If the doctor is missing or inactive.
            SlotUnavailableError: If the slot is already reserved.
            AppointmentCreationError: If the appointment cannot be created.
            ClinicUnavailableError: If the clinic backend is unreachable.
        """

    @abstractmethod
    async def list_patient_appointments(self, patient_email: str) -> list[Appointment]:
        """List a patient's appointments, soonest first."""

    @abstractmethod
    async def health_check(self) -> bool:
        """Check if the clinic backend is reachable and responding.

        Returns:
            True if the backend is healthy, False otherwise.
        """

    @abstractmethod
    async def close(self) -> None:
        """Release resources held by this service."""


class ClinicClientProtocol(Protocol):
    """Low-level interface for clinic data access."""

    async def list_doctors(self, *, active_only: bool = False) -> list[Doctor]:
        """List doctors with their appointment counts."""
        ...

    async def list_booked_slots(self, doctor_id: str, date: dt.date) -> set[str]:
        """List reserved slot labels for a doctor on a date."""
        ...

    async def create_appointment(self, request: AppointmentRequest) -> Appointment:
        """Create an appointment, enforcing slot uniqueness."""
        ...

    async def list_appointments(self, patient_email: str | None = None) -> list[Appointment]:
        """List appointments, optionally for a single patient."""
        ...

    async def health_check(self) -> bool:
        """Check if the backend is reachable."""
        ...

    async def close(self) -> None:
        """Release resources."""
        ...


class ClinicAdminStoreProtocol(ClinicClientProtocol, Protocol):
    """Write access to doctors and appointments for clinic staff."""

    async def get_doctor(self, doctor_id: str) -> Doctor | None:
        ...

    async def create_doctor(self, data: DoctorCreate) -> Doctor:
        ...

    async def update_doctor(self, doctor_id: str, data: DoctorUpdate) -> Doctor:
        ...

    async def update_appointment_status(
        self, appointment_id: str, status: AppointmentStatus
    ) -> Appointment:
        ...


class UserStoreProtocol(Protocol):
    """Persistence for accounts mirrored from the identity provider."""

    async def upsert_user(self, profile: UserProfile) -> User:
        ...

    async def delete_user(self, external_id: str) -> bool:
        ...

    async def get_user(self, external_id: str) -> User | None:
        ...

    async def get_user_by_email(self, email: str) -> User | None:
        ...

    async def set_user_role(self, external_id: str, role: UserRole) -> User | None:
        ...
