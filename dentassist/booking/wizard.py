import asyncio
from enum import IntEnum

from loguru import logger
from pydantic import BaseModel, ConfigDict

from dentassist.booking.store import BookingStore
from dentassist.clinic.ports import AbstractClinicService
from dentassist.domain.catalog import (
    TIME_SLOTS,
    AppointmentType,
    bookable_dates,
    find_appointment_type,
)
from dentassist.domain.datetime_helpers import clinic_today, parse_iso_date, resolve_timezone
from dentassist.domain.exceptions import ClinicError, NotificationError, SlotUnavailableError
from dentassist.domain.models import Appointment, AppointmentRequest, BookingSelection, Doctor
from dentassist.notifications.email import (
    ConfirmationEmail,
    ConfirmationNotifier,
    build_confirmation,
)


class WizardStep(IntEnum):
    SELECT_DOCTOR = 1
    SELECT_TIME = 2
    CONFIRM = 3


class WizardFeedback(BaseModel):
    """Outcome of a wizard action, ready to show to the patient."""

    model_config = ConfigDict(frozen=True)

    ok: bool
    message: str | None = None
    conflict: bool = False


class SlotOption(BaseModel):
    model_config = ConfigDict(frozen=True)

    time: str
    disabled: bool


_OK = WizardFeedback(ok=True)

SlotKey = tuple[str, str]


class BookingWizard:
    """Drives the three booking steps over a ``BookingStore``.

    Reads and writes the store, queries availability through the clinic
    service and submits the booking. Every action returns a
    ``WizardFeedback``; clinic errors never escape as exceptions.
    """

    def __init__(
        self,
        store: BookingStore,
        clinic: AbstractClinicService,
        notifier: ConfirmationNotifier | None = None,
        *,
        patient_email: str = "",
        clinic_timezone: str = "Asia/Colombo",
    ) -> None:
        self._store = store
        self._clinic = clinic
        self._notifier = notifier
        self._patient_email = patient_email
        self._clinic_tz = resolve_timezone(clinic_timezone)

        self.doctors: list[Doctor] = []
        self.appointments: list[Appointment] = []
        self.error: str | None = None
        self.is_loading_doctors = False
        self.is_booking = False

        self._booked: dict[SlotKey, frozenset[str]] = {}
        self._slot_requests = 0
        self._latest_slot_request: dict[SlotKey, int] = {}
        self._slots_in_flight: dict[int, SlotKey] = {}
        self._notifications: set[asyncio.Task[None]] = set()

    # Views

    @property
    def store(self) -> BookingStore:
        return self._store

    @property
    def selection(self) -> BookingSelection:
        return self._store.selection

    @property
    def active_step(self) -> WizardStep:
        """The step to render. Steps 2 and 3 fall back to 1 without a doctor."""
        step = self.selection.current_step
        if step in (WizardStep.SELECT_TIME, WizardStep.CONFIRM) and self.selection.doctor_id:
            return WizardStep(step)
        return WizardStep.SELECT_DOCTOR

    @property
    def selected_doctor(self) -> Doctor | None:
        doctor_id = self.selection.doctor_id
        return next((d for d in self.doctors if d.doctor_id == doctor_id), None)

    @property
    def selected_type(self) -> AppointmentType | None:
        return find_appointment_type(self.selection.appointment_type_id)

    @property
    def available_dates(self) -> list[str]:
        return bookable_dates(clinic_today(self._clinic_tz))

    @property
    def booked_slots(self) -> frozenset[str]:
        key = self._slot_key(self.selection)
        if key is None:
            return frozenset()
        return self._booked.get(key, frozenset())

    @property
    def is_loading_slots(self) -> bool:
        key = self._slot_key(self.selection)
        return key is not None and key in self._slots_in_flight.values()

    def slot_options(self) -> list[SlotOption]:
        booked = self.booked_slots
        return [SlotOption(time=t, disabled=t in booked) for t in TIME_SLOTS]

    @property
    def can_review(self) -> bool:
        s = self.selection
        return bool(s.doctor_id and s.appointment_type_id and s.date and s.time)

    # Step 1

    async def load_doctors(self) -> WizardFeedback:
        self.is_loading_doctors = True
        try:
            self.doctors = await self._clinic.list_available_doctors()
        except ClinicError as exc:
            return self._fail(f"Failed to load doctors: {exc}")
        finally:
            self.is_loading_doctors = False
        return _OK

    def choose_doctor(self, doctor_id: str) -> WizardFeedback:
        if not any(d.doctor_id == doctor_id for d in self.doctors):
            return self._fail("That doctor is not available for appointments.")
        self._store.select_doctor(doctor_id)
        return _OK

    def continue_to_time(self) -> WizardFeedback:
        if not self.selection.doctor_id:
            return self._fail("Please select a doctor to continue.")
        self._store.set_step(WizardStep.SELECT_TIME)
        return _OK

    # Step 2

    def choose_appointment_type(self, type_id: str) -> WizardFeedback:
        if find_appointment_type(type_id) is None:
            return self._fail(f"Unknown appointment type '{type_id}'.")
        self._store.set_appointment_type(type_id)
        return _OK

    def choose_date(self, date: str) -> WizardFeedback:
        if date not in self.available_dates:
            return self._fail(f"{date} is not open for booking.")
        self._store.set_date(date)
        return _OK

    async def load_booked_slots(self) -> WizardFeedback:
        """Fetch booked slots for the current doctor and date.

        Responses are keyed by (doctor, date); one that arrives after the
        selection moved on, or after a newer request for the same key, is
        dropped.
        """
        key = self._slot_key(self.selection)
        if key is None:
            return _OK

        self._slot_requests += 1
        request_id = self._slot_requests
        self._latest_slot_request[key] = request_id
        self._slots_in_flight[request_id] = key
        try:
            slots = await self._clinic.list_booked_slots(*key)
        except ClinicError as exc:
            if self._is_current(key, request_id):
                return self._fail(f"Failed to load available times: {exc}")
            return _OK
        finally:
            del self._slots_in_flight[request_id]

        if not self._is_current(key, request_id):
            logger.debug("Discarding stale booked-slot response for {}", key)
            return _OK

        self._booked[key] = slots
        return _OK

    def choose_time(self, time: str) -> WizardFeedback:
        if not self.selection.doctor_id or not self.selection.date:
            return self._fail("Please choose a date first.")
        if time not in TIME_SLOTS:
            return self._fail(f"{time} is not a bookable time.")
        if time in self.booked_slots:
            return self._fail(f"{time} is already booked. Please pick another time.")
        self._store.set_time(time)
        return _OK

    def review(self) -> WizardFeedback:
        if not self.can_review:
            return self._fail("Please choose an appointment type, date and time.")
        self._store.set_step(WizardStep.CONFIRM)
        return _OK

    def back(self) -> WizardFeedback:
        self._store.go_to_previous_step()
        return _OK

    # Step 3

    def modify(self) -> WizardFeedback:
        self._store.set_step(WizardStep.SELECT_TIME)
        return _OK

    async def confirm(self) -> WizardFeedback:
        """Submit the booking.

        On success the result is recorded, the confirmation email is fired
        without waiting, the modal is shown and the selection is reset, in
        that order. On failure nothing in the store changes.
        """
        if self.is_booking:
            return self._fail("Your booking is already being processed.")

        s = self.selection
        day = parse_iso_date(s.date)
        if not s.doctor_id or not s.time or day is None:
            return self._fail("Please fill in all required fields")

        appointment_type = find_appointment_type(s.appointment_type_id)
        request = AppointmentRequest(
            doctor_id=s.doctor_id,
            date=day,
            time=s.time,
            reason=appointment_type.name if appointment_type else None,
            patient_email=self._patient_email,
        )

        self.is_booking = True
        try:
            appointment = await self._clinic.book_appointment(request)
        except SlotUnavailableError as exc:
            # Cached availability is now known to be stale for this key.
            self._booked.pop((s.doctor_id, s.date), None)
            return self._fail(f"Failed to book appointment: {exc}", conflict=True)
        except ClinicError as exc:
            return self._fail(f"Failed to book appointment: {exc}")
        finally:
            self.is_booking = False

        key = (s.doctor_id, s.date)
        self._booked[key] = self._booked.get(key, frozenset()) | {s.time}
        self.error = None
        self._store.set_booked_appointment(appointment)
        self._fire_confirmation(appointment, appointment_type)
        self._store.set_confirmation_modal_visible(True)
        self._store.reset()
        logger.info("Booking complete: appointment={}", appointment.appointment_id)
        return WizardFeedback(ok=True, message="Appointment booked successfully.")

    def dismiss_confirmation(self) -> None:
        self._store.set_confirmation_modal_visible(False)

    async def load_appointments(self) -> WizardFeedback:
        try:
            self.appointments = await self._clinic.list_patient_appointments(self._patient_email)
        except ClinicError as exc:
            return self._fail(f"Failed to load your appointments: {exc}")
        return _OK

    async def drain_notifications(self) -> None:
        """Wait for confirmation emails still in flight."""
        if self._notifications:
            await asyncio.gather(*list(self._notifications))

    # Internals

    def _fire_confirmation(
        self, appointment: Appointment, appointment_type: AppointmentType | None
    ) -> None:
        if self._notifier is None:
            return
        email = build_confirmation(appointment, appointment_type)
        task = asyncio.create_task(self._send_confirmation(self._notifier, email))
        self._notifications.add(task)
        task.add_done_callback(self._notifications.discard)

    async def _send_confirmation(
        self, notifier: ConfirmationNotifier, email: ConfirmationEmail
    ) -> None:
        try:
            await notifier.send_confirmation(email)
        except NotificationError as exc:
            logger.warning("Confirmation email not sent: {}", exc)
        except Exception:
            logger.exception("Unexpected error sending confirmation email")

    def _slot_key(self, selection: BookingSelection) -> SlotKey | None:
        if not selection.doctor_id or not selection.date:
            return None
        return selection.doctor_id, selection.date

    def _is_current(self, key: SlotKey, request_id: int) -> bool:
        return (
            self._latest_slot_request.get(key) == request_id
            and self._slot_key(self.selection) == key
        )

    def _fail(self, message: str, *, conflict: bool = False) -> WizardFeedback:
        self.error = message
        logger.info("Booking wizard: {}", message)
        return WizardFeedback(ok=False, message=message, conflict=conflict)
