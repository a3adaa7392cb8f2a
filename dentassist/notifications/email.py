import asyncio
import html
from typing import Any, Protocol

import resend
from loguru import logger
from pydantic import BaseModel, ConfigDict

from dentassist.domain.catalog import AppointmentType
from dentassist.domain.datetime_helpers import format_long_date
from dentassist.domain.exceptions import NotificationError
from dentassist.domain.models import Appointment

CONFIRMATION_SUBJECT = "Appointment Confirmation - DentAssist-LK"


class ConfirmationEmail(BaseModel):
    """Everything the confirmation email needs to say."""

    model_config = ConfigDict(frozen=True)

    user_email: str
    doctor_name: str
    appointment_date: str
    appointment_time: str
    appointment_type: str | None = None
    duration: str | None = None
    price: str | None = None


class ConfirmationNotifier(Protocol):
    """Sends (or requests) the confirmation email for a booked appointment."""

    async def send_confirmation(self, email: ConfirmationEmail) -> None:
        ...


def build_confirmation(
    appointment: Appointment, appointment_type: AppointmentType | None
) -> ConfirmationEmail:
    return ConfirmationEmail(
        user_email=appointment.patient_email,
        doctor_name=appointment.doctor_name,
        appointment_date=format_long_date(appointment.date),
        appointment_time=appointment.time,
        appointment_type=appointment_type.name if appointment_type else appointment.reason,
        duration=appointment_type.duration if appointment_type else None,
        price=appointment_type.price if appointment_type else None,
    )


def render_confirmation_html(email: ConfirmationEmail, app_url: str) -> str:
    rows = [
        ("Doctor", email.doctor_name),
        ("Date", email.appointment_date),
        ("Time", email.appointment_time),
        ("Type", email.appointment_type),
        ("Duration", email.duration),
        ("Cost", email.price),
    ]
    details = "".join(
        f"<tr><td><strong>{label}</strong></td><td>{html.escape(value)}</td></tr>"
        for label, value in rows
        if value
    )
    link = html.escape(f"{app_url.rstrip('/')}/appointments")
    return (
        "<h1>Your appointment is confirmed</h1>"
        "<p>Thank you for booking with DentAssist-LK. Here are your appointment details:</p>"
        f"<table>{details}</table>"
        "<p>Please arrive 15 minutes early. If you need to reschedule, contact us at least "
        "24 hours in advance.</p>"
        f'<p><a href="{link}">View my appointments</a></p>'
    )


class ResendEmailSender:
    """Confirmation emails via Resend."""

    def __init__(self, api_key: str, from_address: str, app_url: str) -> None:
        self._api_key = api_key
        self._from_address = from_address
        self._app_url = app_url

    async def send(self, email: ConfirmationEmail) -> str | None:
        """Send the email and return Resend's message id."""
        if not self._api_key:
            raise NotificationError("Email service not configured - RESEND_API_KEY missing")

        params: dict[str, Any] = {
            "from": self._from_address,
            "to": [email.user_email],
            "subject": CONFIRMATION_SUBJECT,
            "html": render_confirmation_html(email, self._app_url),
        }

        logger.info("Sending appointment confirmation via Resend")
        try:
            response = await asyncio.to_thread(self._send, params)
        except Exception as exc:
            raise NotificationError(f"Failed to send email: {exc}") from exc

        email_id: str | None = response.get("id") if isinstance(response, dict) else None
        logger.info("Confirmation email sent: id={}", email_id)
        return email_id

    async def send_confirmation(self, email: ConfirmationEmail) -> None:
        await self.send(email)

    def _send(self, params: dict[str, Any]) -> Any:
        resend.api_key = self._api_key
        return resend.Emails.send(params)  # type: ignore[arg-type]
