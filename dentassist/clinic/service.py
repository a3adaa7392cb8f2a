import datetime as dt

from loguru import logger

from dentassist.clinic.ports import AbstractClinicService, ClinicClientProtocol
from dentassist.domain.catalog import TIME_SLOTS
from dentassist.domain.datetime_helpers import clinic_today, parse_iso_date, resolve_timezone
from dentassist.domain.exceptions import (
    AppointmentCreationError,
    BookingValidationError,
    ClinicError,
    ClinicUnavailableError,
)
from dentassist.domain.models import Appointment, AppointmentRequest, Doctor


class ClinicService(AbstractClinicService):
    """Clinic service that delegates to a ClinicClientProtocol and adds business rules."""

    def __init__(
        self, client: ClinicClientProtocol, clinic_timezone: str = "Asia/Colombo"
    ) -> None:
        self._client = client
        self._clinic_tz = resolve_timezone(clinic_timezone)

    async def list_available_doctors(self) -> list[Doctor]:
        """Fetch active doctors, then drop anything inactive and sort by name."""
        logger.info("Listing available doctors")

        try:
            doctors = await self._client.list_doctors(active_only=True)
        except ClinicError:
            raise
        except Exception as exc:
            raise ClinicUnavailableError(f"Doctor listing failed: {exc}") from exc

        available = sorted((d for d in doctors if d.is_active), key=lambda d: d.name)
        logger.info("Found {} available doctor(s)", len(available))
        return available

    async def list_booked_slots(self, doctor_id: str | None, date: str) -> frozenset[str]:
        if not doctor_id or not date:
            return frozenset()

        day = parse_iso_date(date)
        if day is None:
            raise BookingValidationError(f"Invalid date '{date}'. Expected YYYY-MM-DD.")

        logger.debug("Listing booked slots: doctor={}, date={}", doctor_id, date)

        try:
            slots = await self._client.list_booked_slots(doctor_id, day)
        except ClinicError:
            raise
        except Exception as exc:
            raise ClinicUnavailableError(f"Booked slot lookup failed: {exc}") from exc

        return frozenset(slots)

    async def book_appointment(self, request: AppointmentRequest) -> Appointment:
        """Validate the request, then create the appointment via the underlying client."""
        self._validate(request)

        logger.info(
            "Creating appointment request: doctor={}, date={}, time={}",
            request.doctor_id,
            request.date,
            request.time,
        )

        try:
            appointment = await self._client.create_appointment(request)
        except ClinicError:
            raise
        except Exception as exc:
            raise AppointmentCreationError(reason=str(exc), doctor_id=request.doctor_id) from exc

        logger.info("Appointment created: id={}", appointment.appointment_id)
        return appointment

    async def list_patient_appointments(self, patient_email: str) -> list[Appointment]:
        if not patient_email:
            return []

        try:
            appointments = await self._client.list_appointments(patient_email)
        except ClinicError:
            raise
        except Exception as exc:
            raise ClinicUnavailableError(f"Appointment listing failed: {exc}") from exc

        return sorted(appointments, key=lambda a: (a.date, a.time))

    async def health_check(self) -> bool:
        return await self._client.health_check()

    async def close(self) -> None:
        await self._client.close()

    def _validate(self, request: AppointmentRequest) -> None:
        if not request.doctor_id or not request.time:
            raise BookingValidationError("'doctor_id', 'date', and 'time' are all required.")
        if request.time not in TIME_SLOTS:
            raise BookingValidationError(f"'{request.time}' is not a bookable time slot.")
        if request.date < clinic_today(self._clinic_tz):
            raise BookingValidationError(
                "Appointment date is in the past. Please choose a future date."
            )

    @property
    def today(self) -> dt.date:
        return clinic_today(self._clinic_tz)
