from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse
from loguru import logger

from dentassist.accounts.service import AccountService
from dentassist.admin.service import AdminService
from dentassist.clinic.adapters.sql import SqlClinicClient
from dentassist.clinic.factory import build_sql_client
from dentassist.clinic.service import ClinicService
from dentassist.config import AppConfig
from dentassist.domain.exceptions import (
    AppointmentCreationError,
    AppointmentNotFoundError,
    BookingValidationError,
    ClinicError,
    ClinicUnavailableError,
    DoctorNotFoundError,
    DoctorUnavailableError,
    DuplicateDoctorError,
    NotificationError,
    SlotUnavailableError,
)
from dentassist.notifications.email import ResendEmailSender
from dentassist.web.routes import accounts, admin, booking
from dentassist.web.schemas import HealthResponse

# Most specific first.
_STATUS_BY_ERROR: list[tuple[type[ClinicError], int]] = [
    (BookingValidationError, status.HTTP_422_UNPROCESSABLE_ENTITY),
    (DoctorUnavailableError, status.HTTP_404_NOT_FOUND),
    (DoctorNotFoundError, status.HTTP_404_NOT_FOUND),
    (AppointmentNotFoundError, status.HTTP_404_NOT_FOUND),
    (SlotUnavailableError, status.HTTP_409_CONFLICT),
    (DuplicateDoctorError, status.HTTP_409_CONFLICT),
    (ClinicUnavailableError, status.HTTP_503_SERVICE_UNAVAILABLE),
    (NotificationError, status.HTTP_500_INTERNAL_SERVER_ERROR),
    (AppointmentCreationError, status.HTTP_500_INTERNAL_SERVER_ERROR),
]


def status_for(exc: ClinicError) -> int:
    for error_type, code in _STATUS_BY_ERROR:
        if isinstance(exc, error_type):
            return code
    return status.HTTP_400_BAD_REQUEST


async def clinic_error_handler(request: Request, exc: ClinicError) -> JSONResponse:
    code = status_for(exc)
    if code >= 500:
        logger.error("{} {} failed: {}", request.method, request.url.path, exc)
    else:
        logger.info("{} {} rejected ({}): {}", request.method, request.url.path, code, exc)
    return JSONResponse(status_code=code, content={"detail": str(exc)})


def create_app(
    config: AppConfig | None = None,
    *,
    client: SqlClinicClient | None = None,
    email_sender: ResendEmailSender | None = None,
) -> FastAPI:
    """Assemble the DentAssist API over a SQL clinic client."""
    config = config or AppConfig()
    client = client or build_sql_client(config)
    email_sender = email_sender or ResendEmailSender(
        api_key=config.resend.api_key,
        from_address=config.resend.from_address,
        app_url=config.app_url,
    )

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info("DentAssist API starting up")
        await client.create_schema()
        yield
        await client.close()
        logger.info("DentAssist API shut down")

    app = FastAPI(title="DentAssist API", version="0.1.0", lifespan=lifespan)
    app.state.config = config
    app.state.clinic_service = ClinicService(client, clinic_timezone=config.clinic_timezone)
    app.state.admin_service = AdminService(client)
    app.state.account_service = AccountService(client, admin_email=config.admin_email)
    app.state.email_sender = email_sender

    app.add_exception_handler(ClinicError, clinic_error_handler)  # type: ignore[arg-type]

    @app.get("/health", response_model=HealthResponse)
    async def health():
        healthy = await app.state.clinic_service.health_check()
        body = HealthResponse(status="ok" if healthy else "degraded", database=healthy)
        code = status.HTTP_200_OK if healthy else status.HTTP_503_SERVICE_UNAVAILABLE
        return JSONResponse(status_code=code, content=body.model_dump())

    app.include_router(booking.router)
    app.include_router(accounts.router)
    app.include_router(admin.router)
    return app
