from collections.abc import AsyncGenerator
from pathlib import Path

import pytest
import pytest_asyncio

from dentassist.booking.storage import MemoryStorage
from dentassist.booking.store import BookingStore
from dentassist.clinic.adapters.fake import FakeClinicClient
from dentassist.clinic.adapters.sql import SqlClinicClient
from dentassist.clinic.service import ClinicService
from dentassist.domain.models import Doctor


def make_doctor(doctor_id: str, name: str, *, is_active: bool = True) -> Doctor:
    return Doctor(
        doctor_id=doctor_id,
        name=name,
        email=f"{doctor_id}@clinic.example.com",
        specialty="General Dentistry",
        is_active=is_active,
    )


@pytest.fixture
def fake_client() -> FakeClinicClient:
    client = FakeClinicClient()
    client.doctors = [
        make_doctor("d-2", "Dr. Silva"),
        make_doctor("d-1", "Dr. Perera"),
        make_doctor("d-3", "Dr. Fernando", is_active=False),
    ]
    return client


@pytest.fixture
def service(fake_client: FakeClinicClient) -> ClinicService:
    return ClinicService(client=fake_client)


@pytest.fixture
def storage() -> MemoryStorage:
    return MemoryStorage()


@pytest.fixture
def store(storage: MemoryStorage) -> BookingStore:
    booking_store = BookingStore(storage)
    booking_store.hydrate()
    return booking_store


@pytest_asyncio.fixture
async def sql_client(tmp_path: Path) -> AsyncGenerator[SqlClinicClient]:
    """A SQL client over a throwaway SQLite file, schema created."""
    client = SqlClinicClient(f"sqlite+aiosqlite:///{tmp_path / 'clinic.db'}")
    await client.create_schema()
    yield client
    await client.close()
