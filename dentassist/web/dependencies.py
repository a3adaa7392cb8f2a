from fastapi import Depends, HTTPException, Request, status

from dentassist.accounts.service import AccountService
from dentassist.admin.service import AdminService
from dentassist.clinic.service import ClinicService
from dentassist.config import AppConfig
from dentassist.domain.models import UserRole
from dentassist.notifications.email import ResendEmailSender
from dentassist.web.schemas import CurrentUser


def get_config(request: Request) -> AppConfig:
    return request.app.state.config


def get_clinic_service(request: Request) -> ClinicService:
    return request.app.state.clinic_service


def get_admin_service(request: Request) -> AdminService:
    return request.app.state.admin_service


def get_account_service(request: Request) -> AccountService:
    return request.app.state.account_service


def get_email_sender(request: Request) -> ResendEmailSender:
    return request.app.state.email_sender


async def get_current_user(
    request: Request,
    config: AppConfig = Depends(get_config),
    accounts: AccountService = Depends(get_account_service),
) -> CurrentUser:
    """Identify the caller from the identity provider's headers and resolve the role once."""
    external_id = request.headers.get(config.identity.user_id_header, "").strip()
    email = request.headers.get(config.identity.email_header, "").strip()
    if not external_id or not email:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Unauthorized")

    role = await accounts.resolve_role(external_id, email)
    return CurrentUser(external_id=external_id, email=email, role=role)


async def require_admin(user: CurrentUser = Depends(get_current_user)) -> CurrentUser:
    if user.role is not UserRole.ADMIN:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Admin access required")
    return user
