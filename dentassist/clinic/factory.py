from typing import Callable

from loguru import logger

from dentassist.clinic.adapters.http import HttpClinicClient
from dentassist.clinic.adapters.sql import SqlClinicClient
from dentassist.clinic.ports import ClinicClientProtocol
from dentassist.clinic.service import ClinicService
from dentassist.config import AppConfig, ClinicBackend
from dentassist.notifications.email import ConfirmationNotifier, ResendEmailSender


def build_sql_client(config: AppConfig) -> SqlClinicClient:
    return SqlClinicClient(config.database.url, echo=config.database.echo)


def build_http_client(
    config: AppConfig, *, user_id: str = "", user_email: str = ""
) -> HttpClinicClient:
    return HttpClinicClient(
        config.api.base_url,
        user_id=user_id,
        user_email=user_email,
        timeout=config.api.timeout,
        user_id_header=config.identity.user_id_header,
        email_header=config.identity.email_header,
    )


_BUILDERS: dict[ClinicBackend, Callable[..., ClinicClientProtocol]] = {
    ClinicBackend.SQL: lambda config, **_: build_sql_client(config),
    ClinicBackend.HTTP: build_http_client,
}


def build_clinic_service(
    config: AppConfig, *, user_id: str = "", user_email: str = ""
) -> ClinicService:
    """Build the clinic service on top of the configured backend."""
    backend = config.clinic_backend
    logger.info("Building clinic service with backend: {}", backend.value)
    client = _BUILDERS[backend](config, user_id=user_id, user_email=user_email)
    return ClinicService(client, clinic_timezone=config.clinic_timezone)


def build_booking_backend(
    config: AppConfig, *, user_id: str = "", user_email: str = ""
) -> tuple[ClinicService, ConfirmationNotifier]:
    """Build the clinic service plus the notifier the booking wizard fires after a booking.

    Over HTTP the API sends the email, so the same client requests it. Talking
    to the database directly, the wizard sends it through Resend itself.
    """
    if config.clinic_backend is ClinicBackend.HTTP:
        client = build_http_client(config, user_id=user_id, user_email=user_email)
        return ClinicService(client, clinic_timezone=config.clinic_timezone), client

    service = build_clinic_service(config)
    notifier = ResendEmailSender(
        api_key=config.resend.api_key,
        from_address=config.resend.from_address,
        app_url=config.app_url,
    )
    return service, notifier
