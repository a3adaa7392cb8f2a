from collections.abc import Callable
from typing import Any, TypeVar

from loguru import logger
from pydantic import BaseModel, ValidationError

from dentassist.booking.storage import StorageProtocol
from dentassist.domain.exceptions import StoreNotHydratedError
from dentassist.domain.models import Appointment, BookingSelection, BookingState

T = TypeVar("T")

STORAGE_NAME = "appointment-booking-storage"

FIRST_STEP = 1
LAST_STEP = 3


class _PersistedBooking(BaseModel):
    """What survives a reload: the selection only."""

    selection: BookingSelection


class _Subscription:
    def __init__(
        self, listener: Callable[[Any], None], selector: Callable[[BookingState], Any] | None
    ) -> None:
        self.listener = listener
        self.selector = selector
        self.last: Any = None


class BookingStore:
    """Single source of truth for the in-progress booking.

    Every mutation builds a new immutable ``BookingState`` and swaps it in
    with one assignment, so readers never observe a half-applied change. The
    selection is written to ``storage`` after each change that touches it; the
    booked appointment and the confirmation modal flag stay in memory.

    The store refuses mutations until ``hydrate()`` (or ``skip_hydration()``)
    has run, so a restored selection can never be overwritten by defaults.
    """

    def __init__(self, storage: StorageProtocol, *, name: str = STORAGE_NAME) -> None:
        self._storage = storage
        self._name = name
        self._state = BookingState()
        self._hydrated = False
        self._subscriptions: list[_Subscription] = []

    # Reading

    @property
    def hydrated(self) -> bool:
        return self._hydrated

    @property
    def state(self) -> BookingState:
        return self._state

    @property
    def selection(self) -> BookingSelection:
        return self._state.selection

    def select(self, selector: Callable[[BookingState], T]) -> T:
        return selector(self._state)

    def subscribe(
        self,
        listener: Callable[[Any], None],
        selector: Callable[[BookingState], Any] | None = None,
    ) -> Callable[[], None]:
        """Call ``listener`` after changes; with a selector, only when its value changes.

        Returns a function that removes the subscription.
        """
        subscription = _Subscription(listener, selector)
        if selector is not None:
            subscription.last = selector(self._state)
        self._subscriptions.append(subscription)

        def unsubscribe() -> None:
            if subscription in self._subscriptions:
                self._subscriptions.remove(subscription)

        return unsubscribe

    # Hydration

    def hydrate(self) -> BookingState:
        """Restore the persisted selection, falling back to defaults if unreadable."""
        raw = self._storage.get_item(self._name)
        state = BookingState()
        if raw:
            try:
                state = BookingState(selection=_PersistedBooking.model_validate_json(raw).selection)
            except ValidationError as exc:
                logger.warning("Ignoring unreadable booking storage '{}': {}", self._name, exc)
        self._hydrated = True
        self._swap(state)
        logger.debug("Booking store hydrated at step {}", state.selection.current_step)
        return state

    def skip_hydration(self) -> None:
        """Mark the store ready without reading storage."""
        self._hydrated = True

    # Selection

    def select_doctor(self, doctor_id: str | None) -> None:
        self._update_selection(doctor_id=doctor_id, date="", time="", appointment_type_id="")

    def set_date(self, date: str) -> None:
        self._update_selection(date=date, time="")

    def set_time(self, time: str) -> None:
        self._update_selection(time=time)

    def set_appointment_type(self, type_id: str) -> None:
        self._update_selection(appointment_type_id=type_id)

    def set_step(self, step: int) -> None:
        self._update_selection(current_step=step)

    def go_to_next_step(self) -> None:
        step = self.selection.current_step
        if step < LAST_STEP:
            self.set_step(step + 1)

    def go_to_previous_step(self) -> None:
        step = self.selection.current_step
        if step > FIRST_STEP:
            self.set_step(step - 1)

    def reset(self) -> None:
        """Clear the selection. The booked appointment and modal flag are kept."""
        self._commit(self._state.model_copy(update={"selection": BookingSelection()}))

    # Outcome

    def set_booked_appointment(self, appointment: Appointment | None) -> None:
        self._commit(self._state.model_copy(update={"booked_appointment": appointment}))

    def set_confirmation_modal_visible(self, visible: bool) -> None:
        self._commit(self._state.model_copy(update={"confirmation_modal_visible": visible}))

    # Internals

    def _update_selection(self, **changes: Any) -> None:
        selection = self._state.selection.model_copy(update=changes)
        self._commit(self._state.model_copy(update={"selection": selection}))

    def _commit(self, state: BookingState) -> None:
        if not self._hydrated:
            raise StoreNotHydratedError(
                "Booking store used before hydrate() or skip_hydration() was called"
            )
        selection_changed = state.selection != self._state.selection
        self._swap(state)
        if selection_changed:
            self._persist()

    def _swap(self, state: BookingState) -> None:
        self._state = state
        for subscription in list(self._subscriptions):
            self._notify(subscription)

    def _notify(self, subscription: _Subscription) -> None:
        if subscription.selector is None:
            value: Any = self._state
        else:
            value = subscription.selector(self._state)
            if value == subscription.last:
                return
            subscription.last = value
        try:
            subscription.listener(value)
        except Exception:
            logger.exception("Booking store listener failed")

    def _persist(self) -> None:
        payload = _PersistedBooking(selection=self._state.selection)
        try:
            self._storage.set_item(self._name, payload.model_dump_json())
        except OSError as exc:
            logger.warning("Could not persist booking selection '{}': {}", self._name, exc)
