import asyncio
from typing import Any

from loguru import logger
from pydantic import BaseModel, Field, ValidationError

from dentassist.clinic.ports import UserStoreProtocol
from dentassist.domain.exceptions import BookingValidationError
from dentassist.domain.models import User, UserProfile, UserRole


class IdentityEvent(BaseModel):
    """A user lifecycle event pushed by the identity provider."""

    type: str
    data: dict[str, Any] = Field(default_factory=dict)


def _first(items: Any, key: str) -> str | None:
    if isinstance(items, list) and items and isinstance(items[0], dict):
        return items[0].get(key) or None
    return None


def build_profile(**fields: Any) -> UserProfile:
    """Build a ``UserProfile``, reporting malformed identity data as a validation error."""
    try:
        return UserProfile(**fields)
    except ValidationError as exc:
        problems = "; ".join(error["msg"] for error in exc.errors())
        raise BookingValidationError(f"Invalid user profile: {problems}") from exc


def profile_from_event(data: dict[str, Any]) -> UserProfile:
    """Build a profile from an identity provider user payload."""
    external_id = data.get("id")
    email = _first(data.get("email_addresses"), "email_address")
    if not external_id or not email:
        raise BookingValidationError("Identity payload is missing the user id or email")
    return build_profile(
        external_id=external_id,
        email=email,
        first_name=data.get("first_name") or None,
        last_name=data.get("last_name") or None,
        phone=_first(data.get("phone_numbers"), "phone_number"),
    )


class AccountService:
    """Keeps local accounts in step with the identity provider and resolves roles."""

    def __init__(self, store: UserStoreProtocol, *, admin_email: str = "") -> None:
        self._store = store
        self._admin_email = admin_email.strip().lower()

    async def handle_identity_event(self, event: IdentityEvent) -> User | None:
        """Apply a ``user.created``, ``user.updated`` or ``user.deleted`` event.

        Returns:
            The stored user for create and update events, None otherwise.
        """
        if event.type in ("user.created", "user.updated"):
            user = await self._store.upsert_user(profile_from_event(event.data))
            logger.info("Identity event {} applied for user {}", event.type, user.external_id)
            return user

        if event.type == "user.deleted":
            external_id = event.data.get("id")
            if not external_id:
                raise BookingValidationError("Identity payload is missing the user id")
            deleted = await self._store.delete_user(external_id)
            logger.info("Identity event user.deleted for {}: removed={}", external_id, deleted)
            return None

        logger.debug("Ignoring identity event {}", event.type)
        return None

    async def sync_user(self, profile: UserProfile) -> User:
        user = await self._store.upsert_user(profile)
        logger.info("User synced: {}", user.external_id)
        return user

    async def get_user(self, external_id: str) -> User | None:
        return await self._store.get_user(external_id)

    async def resolve_role(self, external_id: str, email: str) -> UserRole:
        """Admin when the stored role says so or the email is the configured admin email."""
        user = await self._store.get_user(external_id) if external_id else None
        if user is not None and user.is_admin:
            return UserRole.ADMIN
        if self._admin_email and email.strip().lower() == self._admin_email:
            if user is not None:
                await self._store.set_user_role(external_id, UserRole.ADMIN)
            return UserRole.ADMIN
        return UserRole.USER

    async def wait_for_user(
        self, external_id: str, *, timeout: float = 5.0, interval: float = 0.1
    ) -> User | None:
        """Poll until the user created by the identity webhook shows up.

        Returns:
            The user, or None if it did not appear within ``timeout`` seconds.
        """
        loop = asyncio.get_running_loop()
        deadline = loop.time() + timeout
        while True:
            user = await self._store.get_user(external_id)
            if user is not None:
                return user
            if loop.time() >= deadline:
                logger.warning("Timed out after {}s waiting for user {}", timeout, external_id)
                return None
            await asyncio.sleep(interval)
