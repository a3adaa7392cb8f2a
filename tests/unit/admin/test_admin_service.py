import datetime as dt

import pytest

from dentassist.admin.service import AdminService
from dentassist.clinic.adapters.sql import SqlClinicClient
from dentassist.domain.exceptions import DoctorNotFoundError
from dentassist.domain.models import (
    AppointmentRequest,
    AppointmentStatus,
    ClinicStats,
    DoctorCreate,
)


@pytest.fixture
def admin(sql_client: SqlClinicClient) -> AdminService:
    return AdminService(sql_client)


def _booking(doctor_id: str, time: str) -> AppointmentRequest:
    return AppointmentRequest(
        doctor_id=doctor_id,
        date=dt.date(2030, 1, 2),
        time=time,
        patient_email="patient@example.com",
    )


class TestDoctors:
    @pytest.mark.asyncio
    async def test_create_and_get(self, admin: AdminService) -> None:
        created = await admin.create_doctor(
            DoctorCreate(name="Dr. Perera", email="perera@clinic.example.com")
        )

        fetched = await admin.get_doctor(created.doctor_id)

        assert fetched.name == "Dr. Perera"
        assert fetched.appointment_count == 0

    @pytest.mark.asyncio
    async def test_get_missing(self, admin: AdminService) -> None:
        with pytest.raises(DoctorNotFoundError):
            await admin.get_doctor("missing")


class TestStats:
    @pytest.mark.asyncio
    async def test_counts_doctors_and_appointments(
        self, admin: AdminService, sql_client: SqlClinicClient
    ) -> None:
        perera = await admin.create_doctor(
            DoctorCreate(name="Dr. Perera", email="perera@clinic.example.com")
        )
        await admin.create_doctor(
            DoctorCreate(name="Dr. Silva", email="silva@clinic.example.com", is_active=False)
        )
        done = await sql_client.create_appointment(_booking(perera.doctor_id, "09:00"))
        await sql_client.create_appointment(_booking(perera.doctor_id, "09:30"))
        await admin.update_appointment_status(done.appointment_id, AppointmentStatus.COMPLETED)

        stats = await admin.stats()

        assert stats == ClinicStats(
            total_doctors=2,
            active_doctors=1,
            total_appointments=2,
            completed_appointments=1,
        )

    @pytest.mark.asyncio
    async def test_appointments_newest_first(
        self, admin: AdminService, sql_client: SqlClinicClient
    ) -> None:
        perera = await admin.create_doctor(
            DoctorCreate(name="Dr. Perera", email="perera@clinic.example.com")
        )
        await sql_client.create_appointment(_booking(perera.doctor_id, "14:00"))
        await sql_client.create_appointment(_booking(perera.doctor_id, "09:00"))

        appointments = await admin.list_appointments()

        assert [a.time for a in appointments] == ["09:00", "14:00"]
