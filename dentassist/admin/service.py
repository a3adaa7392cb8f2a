from loguru import logger

from dentassist.clinic.ports import ClinicAdminStoreProtocol
from dentassist.domain.exceptions import ClinicError, ClinicUnavailableError, DoctorNotFoundError
from dentassist.domain.models import (
    Appointment,
    AppointmentStatus,
    ClinicStats,
    Doctor,
    DoctorCreate,
    DoctorUpdate,
)


class AdminService:
    """Doctor and appointment management for clinic staff."""

    def __init__(self, store: ClinicAdminStoreProtocol) -> None:
        self._store = store

    async def list_doctors(self) -> list[Doctor]:
        """All doctors, active or not, newest first."""
        try:
            return await self._store.list_doctors()
        except ClinicError:
            raise
        except Exception as exc:
            raise ClinicUnavailableError(f"Doctor listing failed: {exc}") from exc

    async def get_doctor(self, doctor_id: str) -> Doctor:
        doctor = await self._store.get_doctor(doctor_id)
        if doctor is None:
            raise DoctorNotFoundError(doctor_id)
        return doctor

    async def create_doctor(self, data: DoctorCreate) -> Doctor:
        doctor = await self._store.create_doctor(data)
        logger.info("Admin created doctor {}", doctor.doctor_id)
        return doctor

    async def update_doctor(self, doctor_id: str, data: DoctorUpdate) -> Doctor:
        doctor = await self._store.update_doctor(doctor_id, data)
        logger.info("Admin updated doctor {}", doctor_id)
        return doctor

    async def list_appointments(self) -> list[Appointment]:
        """Every appointment in the clinic, newest first."""
        try:
            return await self._store.list_appointments()
        except ClinicError:
            raise
        except Exception as exc:
            raise ClinicUnavailableError(f"Appointment listing failed: {exc}") from exc

    async def update_appointment_status(
        self, appointment_id: str, status: AppointmentStatus
    ) -> Appointment:
        appointment = await self._store.update_appointment_status(appointment_id, status)
        logger.info("Admin set appointment {} to {}", appointment_id, status.value)
        return appointment

    async def stats(self) -> ClinicStats:
        doctors = await self.list_doctors()
        appointments = await self.list_appointments()
        return ClinicStats(
            total_doctors=len(doctors),
            active_doctors=sum(1 for d in doctors if d.is_active),
            total_appointments=len(appointments),
            completed_appointments=sum(
                1 for a in appointments if a.status is AppointmentStatus.COMPLETED
            ),
        )
