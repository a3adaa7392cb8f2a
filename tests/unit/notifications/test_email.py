import datetime as dt
from typing import Any

import pytest
import resend

from dentassist.domain.catalog import find_appointment_type
from dentassist.domain.exceptions import NotificationError
from dentassist.domain.models import Appointment
from dentassist.notifications.email import (
    CONFIRMATION_SUBJECT,
    ConfirmationEmail,
    ResendEmailSender,
    build_confirmation,
    render_confirmation_html,
)


def _appointment(**overrides: Any) -> Appointment:
    fields: dict[str, Any] = {
        "appointment_id": "a-1",
        "doctor_id": "d-1",
        "doctor_name": "Dr. Perera",
        "patient_email": "patient@example.com",
        "date": dt.date(2025, 6, 10),
        "time": "10:00",
        "reason": "Teeth Cleaning",
    }
    fields.update(overrides)
    return Appointment(**fields)


def _email() -> ConfirmationEmail:
    return build_confirmation(_appointment(), find_appointment_type("cleaning"))


class TestBuildConfirmation:
    def test_uses_catalog_details(self) -> None:
        email = _email()

        assert email.user_email == "patient@example.com"
        assert email.appointment_date == "Tuesday, June 10, 2025"
        assert email.appointment_type == "Teeth Cleaning"
        assert email.duration == "45 min"
        assert email.price == "$90"

    def test_without_type_falls_back_to_reason(self) -> None:
        email = build_confirmation(_appointment(reason="Toothache"), None)

        assert email.appointment_type == "Toothache"
        assert email.duration is None
        assert email.price is None


class TestRenderConfirmationHtml:
    def test_includes_details_and_link(self) -> None:
        body = render_confirmation_html(_email(), "https://dentassist.test/")

        assert "Dr. Perera" in body
        assert "Tuesday, June 10, 2025" in body
        assert "$90" in body
        assert 'href="https://dentassist.test/appointments"' in body

    def test_escapes_values(self) -> None:
        email = ConfirmationEmail(
            user_email="patient@example.com",
            doctor_name="<script>alert(1)</script>",
            appointment_date="Tuesday, June 10, 2025",
            appointment_time="10:00",
        )

        body = render_confirmation_html(email, "https://dentassist.test")

        assert "<script>" not in body
        assert "&lt;script&gt;" in body

    def test_skips_empty_rows(self) -> None:
        email = ConfirmationEmail(
            user_email="patient@example.com",
            doctor_name="Dr. Perera",
            appointment_date="Tuesday, June 10, 2025",
            appointment_time="10:00",
        )

        body = render_confirmation_html(email, "https://dentassist.test")

        assert "Duration" not in body


class TestResendEmailSender:
    @pytest.mark.asyncio
    async def test_sends_via_resend(self, monkeypatch: pytest.MonkeyPatch) -> None:
        sent: list[dict[str, Any]] = []

        def fake_send(params: dict[str, Any]) -> dict[str, Any]:
            sent.append(params)
            return {"id": "em_123"}

        monkeypatch.setattr(resend.Emails, "send", fake_send)
        sender = ResendEmailSender(
            api_key="re_test",
            from_address="Clinic <no-reply@clinic.example.com>",
            app_url="http://x",
        )

        email_id = await sender.send(_email())

        assert email_id == "em_123"
        assert sent[0]["to"] == ["patient@example.com"]
        assert sent[0]["subject"] == CONFIRMATION_SUBJECT
        assert sent[0]["from"] == "Clinic <no-reply@clinic.example.com>"

    @pytest.mark.asyncio
    async def test_missing_api_key(self) -> None:
        sender = ResendEmailSender(
            api_key="", from_address="x@clinic.example.com", app_url="http://x"
        )

        with pytest.raises(NotificationError, match="RESEND_API_KEY"):
            await sender.send(_email())

    @pytest.mark.asyncio
    async def test_provider_failure_is_notification_error(
        self, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        def fake_send(params: dict[str, Any]) -> dict[str, Any]:
            raise RuntimeError("rate limited")

        monkeypatch.setattr(resend.Emails, "send", fake_send)
        sender = ResendEmailSender(
            api_key="re_test", from_address="x@clinic.example.com", app_url=""
        )

        with pytest.raises(NotificationError, match="rate limited"):
            await sender.send_confirmation(_email())
