import asyncio

import pytest

from dentassist.accounts.service import AccountService, IdentityEvent, profile_from_event
from dentassist.clinic.adapters.sql import SqlClinicClient
from dentassist.domain.exceptions import BookingValidationError
from dentassist.domain.models import UserProfile, UserRole


def _payload(**overrides: object) -> dict[str, object]:
    data: dict[str, object] = {
        "id": "user_1",
        "email_addresses": [{"email_address": "ann@example.com"}],
        "first_name": "Ann",
        "last_name": "Silva",
        "phone_numbers": [{"phone_number": "+94 77 123 4567"}],
    }
    data.update(overrides)
    return data


@pytest.fixture
def accounts(sql_client: SqlClinicClient) -> AccountService:
    return AccountService(sql_client, admin_email="Admin@Clinic.example.com")


class TestProfileFromEvent:
    def test_reads_first_email_and_phone(self) -> None:
        profile = profile_from_event(_payload())

        assert profile.external_id == "user_1"
        assert profile.email == "ann@example.com"
        assert profile.phone == "+94 77 123 4567"

    def test_missing_email_rejected(self) -> None:
        with pytest.raises(BookingValidationError):
            profile_from_event(_payload(email_addresses=[]))

    def test_malformed_email_rejected(self) -> None:
        with pytest.raises(BookingValidationError, match="Invalid user profile"):
            profile_from_event(_payload(email_addresses=[{"email_address": "bogus"}]))

    def test_blank_names_become_none(self) -> None:
        profile = profile_from_event(_payload(first_name="", phone_numbers=[]))

        assert profile.first_name is None
        assert profile.phone is None


class TestHandleIdentityEvent:
    @pytest.mark.asyncio
    async def test_created_then_updated_then_deleted(self, accounts: AccountService) -> None:
        created = await accounts.handle_identity_event(
            IdentityEvent(type="user.created", data=_payload())
        )
        updated = await accounts.handle_identity_event(
            IdentityEvent(type="user.updated", data=_payload(first_name="Anne"))
        )

        assert created is not None and updated is not None
        assert created.user_id == updated.user_id
        assert updated.first_name == "Anne"

        deleted = await accounts.handle_identity_event(
            IdentityEvent(type="user.deleted", data={"id": "user_1"})
        )

        assert deleted is None
        assert await accounts.get_user("user_1") is None

    @pytest.mark.asyncio
    async def test_unknown_event_is_ignored(self, accounts: AccountService) -> None:
        result = await accounts.handle_identity_event(
            IdentityEvent(type="session.created", data={"id": "sess_1"})
        )

        assert result is None


class TestResolveRole:
    @pytest.mark.asyncio
    async def test_plain_user(self, accounts: AccountService) -> None:
        await accounts.sync_user(UserProfile(external_id="user_1", email="ann@example.com"))

        assert await accounts.resolve_role("user_1", "ann@example.com") is UserRole.USER

    @pytest.mark.asyncio
    async def test_stored_admin_role(
        self, accounts: AccountService, sql_client: SqlClinicClient
    ) -> None:
        await accounts.sync_user(UserProfile(external_id="user_1", email="ann@example.com"))
        await sql_client.set_user_role("user_1", UserRole.ADMIN)

        assert await accounts.resolve_role("user_1", "ann@example.com") is UserRole.ADMIN

    @pytest.mark.asyncio
    async def test_admin_email_matches_case_insensitively(
        self, accounts: AccountService, sql_client: SqlClinicClient
    ) -> None:
        await accounts.sync_user(
            UserProfile(external_id="user_9", email="admin@clinic.example.com")
        )

        role = await accounts.resolve_role("user_9", "ADMIN@clinic.EXAMPLE.com")

        assert role is UserRole.ADMIN
        stored = await sql_client.get_user("user_9")
        assert stored is not None and stored.is_admin

    @pytest.mark.asyncio
    async def test_admin_email_without_account(self, accounts: AccountService) -> None:
        assert await accounts.resolve_role("user_9", "admin@clinic.example.com") is UserRole.ADMIN


class TestWaitForUser:
    @pytest.mark.asyncio
    async def test_returns_once_user_appears(self, accounts: AccountService) -> None:
        async def create_later() -> None:
            await asyncio.sleep(0.05)
            await accounts.sync_user(UserProfile(external_id="user_1", email="ann@example.com"))

        creator = asyncio.create_task(create_later())
        user = await accounts.wait_for_user("user_1", timeout=2.0, interval=0.01)
        await creator

        assert user is not None
        assert user.email == "ann@example.com"

    @pytest.mark.asyncio
    async def test_times_out_with_none(self, accounts: AccountService) -> None:
        user = await accounts.wait_for_user("ghost", timeout=0.05, interval=0.01)

        assert user is None
