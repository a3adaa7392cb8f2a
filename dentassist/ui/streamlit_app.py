"""Patient booking wizard on Streamlit.

Run with ``streamlit run dentassist/ui/streamlit_app.py``.
"""

import datetime as dt
from collections.abc import Coroutine
from typing import Any, TypeVar

import streamlit as st
from loguru import logger

from dentassist.booking.storage import JsonFileStorage, user_storage_dir
from dentassist.booking.store import BookingStore
from dentassist.booking.wizard import BookingWizard, WizardFeedback, WizardStep
from dentassist.clinic.factory import build_booking_backend
from dentassist.config import AppConfig
from dentassist.domain.catalog import APPOINTMENT_TYPES
from dentassist.domain.datetime_helpers import format_long_date
from dentassist.ui.background_loop import BackgroundLoop

T = TypeVar("T")

STEP_LABELS = {
    WizardStep.SELECT_DOCTOR: "Select Dentist",
    WizardStep.SELECT_TIME: "Choose Time",
    WizardStep.CONFIRM: "Confirm",
}


@st.cache_resource
def get_config() -> AppConfig:
    return AppConfig()


def run(coro: Coroutine[Any, Any, T]) -> T:
    """Run a coroutine on this session's background event loop.

    Clients hold connections bound to the loop they were opened on, so each
    session keeps one loop across reruns. The loop keeps running between
    reruns, so confirmation emails finish without holding up the page.
    """
    loop: BackgroundLoop = st.session_state.loop
    return loop.run(coro)


def current_identity(config: AppConfig) -> tuple[str, str]:
    headers = st.context.headers
    user_id = headers.get(config.identity.user_id_header, "")
    email = headers.get(config.identity.email_header, "")
    if user_id and email:
        return user_id, email

    with st.sidebar:
        st.subheader("Signed in as")
        user_id = st.text_input("User ID", value=st.session_state.get("user_id", ""))
        email = st.text_input("Email", value=st.session_state.get("user_email", ""))
    return user_id.strip(), email.strip()


def get_wizard(config: AppConfig, user_id: str, email: str) -> BookingWizard:
    wizard: BookingWizard | None = st.session_state.get("wizard")
    if wizard is not None and st.session_state.get("user_id") == user_id:
        return wizard

    if "loop" not in st.session_state:
        st.session_state.loop = BackgroundLoop()

    clinic, notifier = build_booking_backend(config, user_id=user_id, user_email=email)
    store = BookingStore(JsonFileStorage(user_storage_dir(config.storage_dir, user_id)))
    store.hydrate()
    wizard = BookingWizard(
        store,
        clinic,
        notifier,
        patient_email=email,
        clinic_timezone=config.clinic_timezone,
    )
    st.session_state.wizard = wizard
    st.session_state.user_id = user_id
    st.session_state.user_email = email
    logger.info("Booking wizard ready for session user {}", user_id)
    return wizard


def flash(feedback: WizardFeedback) -> None:
    if feedback.message:
        st.session_state.flash = feedback


def show_flash() -> None:
    feedback: WizardFeedback | None = st.session_state.pop("flash", None)
    if feedback is None:
        return
    if feedback.ok:
        st.success(feedback.message)
    else:
        st.error(feedback.message)
        if feedback.conflict:
            st.info("That time was just taken. Choose Modify to pick another slot.")


def render_progress(wizard: BookingWizard) -> None:
    active = wizard.active_step
    columns = st.columns(len(STEP_LABELS))
    for column, (step, label) in zip(columns, STEP_LABELS.items()):
        marker = "●" if step == active else ("✓" if step < active else "○")
        column.markdown(f"**{marker} {step.value}. {label}**")


def render_confirmation(wizard: BookingWizard) -> None:
    state = wizard.store.state
    appointment = state.booked_appointment
    if not state.confirmation_modal_visible or appointment is None:
        return

    with st.container(border=True):
        st.subheader("Appointment confirmed")
        st.write(f"**Doctor:** {appointment.doctor_name}")
        st.write(f"**Date:** {format_long_date(appointment.date)}")
        st.write(f"**Time:** {appointment.time}")
        if appointment.reason:
            st.write(f"**Type:** {appointment.reason}")
        st.caption(f"A confirmation email is on its way to {appointment.patient_email}.")
        if st.button("Done", key="dismiss-confirmation"):
            wizard.dismiss_confirmation()
            st.rerun()


def render_doctor_step(wizard: BookingWizard) -> None:
    if not wizard.doctors:
        with st.spinner("Loading dentists..."):
            flash(run(wizard.load_doctors()))
    if not wizard.doctors:
        st.info("No dentists are available right now.")
        return

    st.subheader("Choose your dentist")
    selected = wizard.selection.doctor_id
    for doctor in wizard.doctors:
        with st.container(border=True):
            left, right = st.columns([4, 1])
            left.markdown(f"**{doctor.name}**")
            left.caption(doctor.specialty or "General Dentistry")
            label = "Selected" if doctor.doctor_id == selected else "Select"
            if right.button(label, key=f"doctor-{doctor.doctor_id}"):
                flash(wizard.choose_doctor(doctor.doctor_id))
                st.rerun()

    if st.button("Continue", type="primary", disabled=not selected):
        flash(wizard.continue_to_time())
        st.rerun()


def render_time_step(wizard: BookingWizard) -> None:
    selection = wizard.selection
    doctor = wizard.selected_doctor
    if doctor is not None:
        st.caption(f"Booking with {doctor.name}")

    st.subheader("Appointment type")
    type_columns = st.columns(len(APPOINTMENT_TYPES))
    for column, appointment_type in zip(type_columns, APPOINTMENT_TYPES):
        chosen = appointment_type.type_id == selection.appointment_type_id
        text = f"{appointment_type.name}\n\n{appointment_type.duration} · {appointment_type.price}"
        if column.button(
            text,
            key=f"type-{appointment_type.type_id}",
            type="primary" if chosen else "secondary",
        ):
            flash(wizard.choose_appointment_type(appointment_type.type_id))
            st.rerun()

    st.subheader("Date")
    date_columns = st.columns(len(wizard.available_dates))
    for column, date in zip(date_columns, wizard.available_dates):
        day = dt.date.fromisoformat(date)
        if column.button(
            day.strftime("%a %d %b"),
            key=f"date-{date}",
            type="primary" if date == selection.date else "secondary",
        ):
            flash(wizard.choose_date(date))
            st.rerun()

    if selection.date:
        st.subheader("Time")
        with st.spinner("Checking availability..."):
            flash(run(wizard.load_booked_slots()))
        slot_columns = st.columns(4)
        for index, option in enumerate(wizard.slot_options()):
            column = slot_columns[index % len(slot_columns)]
            if column.button(
                option.time,
                key=f"time-{option.time}",
                disabled=option.disabled,
                type="primary" if option.time == selection.time else "secondary",
            ):
                flash(wizard.choose_time(option.time))
                st.rerun()

    back, review = st.columns(2)
    if back.button("Back"):
        flash(wizard.back())
        st.rerun()
    if review.button("Review Booking", type="primary", disabled=not wizard.can_review):
        flash(wizard.review())
        st.rerun()


def render_confirm_step(wizard: BookingWizard) -> None:
    selection = wizard.selection
    doctor = wizard.selected_doctor
    appointment_type = wizard.selected_type

    st.subheader("Confirm your appointment")
    with st.container(border=True):
        st.write(f"**Dentist:** {doctor.name if doctor else selection.doctor_id}")
        if selection.date:
            st.write(f"**Date:** {format_long_date(dt.date.fromisoformat(selection.date))}")
        st.write(f"**Time:** {selection.time}")
        if appointment_type is not None:
            st.write(f"**Type:** {appointment_type.name} ({appointment_type.duration})")
            st.write(f"**Cost:** {appointment_type.price}")

    modify, confirm = st.columns(2)
    if modify.button("Modify"):
        flash(wizard.modify())
        st.rerun()
    if confirm.button("Confirm Booking", type="primary", disabled=wizard.is_booking):
        with st.spinner("Booking your appointment..."):
            feedback = run(wizard.confirm())
        flash(feedback)
        st.rerun()


def render_my_appointments(wizard: BookingWizard) -> None:
    flash(run(wizard.load_appointments()))
    if not wizard.appointments:
        return
    st.subheader("Your upcoming appointments")
    for appointment in wizard.appointments:
        st.write(
            f"{format_long_date(appointment.date)} at {appointment.time} "
            f"with {appointment.doctor_name} ({appointment.status.value})"
        )


def main() -> None:
    st.set_page_config(page_title="DentAssist-LK", page_icon="🦷", layout="centered")
    st.title("Book an Appointment")

    config = get_config()
    user_id, email = current_identity(config)
    if not user_id or not email:
        st.warning("Sign in to book an appointment.")
        return

    wizard = get_wizard(config, user_id, email)
    render_confirmation(wizard)
    render_progress(wizard)
    show_flash()

    step = wizard.active_step
    if step is WizardStep.SELECT_DOCTOR:
        render_doctor_step(wizard)
    elif step is WizardStep.SELECT_TIME:
        render_time_step(wizard)
    else:
        render_confirm_step(wizard)

    render_my_appointments(wizard)


main()
