"""Integration tests for the HTTP clinic adapter.

These tests run against a running DentAssist API and require:
  - DENTASSIST_API_URL set in .env (or env vars), e.g. ``http://localhost:8000``
  - At least one active doctor in the clinic database

The booking test writes a real appointment on a far-future date.

Run explicitly with::

    pytest -m integration
"""

import datetime as dt
import os
from collections.abc import AsyncGenerator

import pytest
import pytest_asyncio
from dotenv import load_dotenv

from dentassist.clinic.adapters.http import HttpClinicClient
from dentassist.domain.catalog import TIME_SLOTS
from dentassist.domain.exceptions import SlotUnavailableError
from dentassist.domain.models import AppointmentRequest, AppointmentStatus

load_dotenv(override=True)

_BASE_URL = os.environ.get("DENTASSIST_API_URL", "")
_USER_ID = os.environ.get("DENTASSIST_TEST_USER_ID", "user_integration")
_USER_EMAIL = os.environ.get("DENTASSIST_TEST_USER_EMAIL", "integration@example.com")

pytestmark = [
    pytest.mark.integration,
    pytest.mark.asyncio,
    pytest.mark.skipif(not _BASE_URL, reason="DENTASSIST_API_URL must be set"),
]


@pytest_asyncio.fixture
async def client() -> AsyncGenerator[HttpClinicClient]:
    c = HttpClinicClient(_BASE_URL, user_id=_USER_ID, user_email=_USER_EMAIL)
    yield c
    await c.close()


class TestHealthCheck:
    async def test_returns_true_when_healthy(self, client: HttpClinicClient) -> None:
        assert await client.health_check() is True


class TestAvailability:
    async def test_lists_active_doctors(self, client: HttpClinicClient) -> None:
        doctors = await client.list_doctors(active_only=True)

        assert len(doctors) >= 1
        assert all(d.is_active for d in doctors)

    async def test_booked_slots_are_known_labels(self, client: HttpClinicClient) -> None:
        doctors = await client.list_doctors(active_only=True)

        slots = await client.list_booked_slots(doctors[0].doctor_id, dt.date.today())

        assert slots <= set(TIME_SLOTS)


class TestBooking:
    async def test_book_then_conflict(self, client: HttpClinicClient) -> None:
        doctor = (await client.list_doctors(active_only=True))[0]
        day = dt.date.today() + dt.timedelta(days=3650)
        taken = await client.list_booked_slots(doctor.doctor_id, day)
        free = [slot for slot in TIME_SLOTS if slot not in taken]
        if not free:
            pytest.skip("No free slot left on the test date")

        request = AppointmentRequest(
            doctor_id=doctor.doctor_id,
            date=day,
            time=free[0],
            reason="Regular Checkup",
            patient_email=_USER_EMAIL,
        )
        appointment = await client.create_appointment(request)

        assert appointment.status is AppointmentStatus.CONFIRMED
        assert appointment.time == free[0]

        with pytest.raises(SlotUnavailableError):
            await client.create_appointment(request)

        mine = await client.list_appointments(_USER_EMAIL)
        assert appointment.appointment_id in {a.appointment_id for a in mine}
