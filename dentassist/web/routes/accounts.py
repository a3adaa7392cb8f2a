from fastapi import APIRouter, Depends, HTTPException, Query, status

from dentassist.accounts.service import AccountService, IdentityEvent, build_profile
from dentassist.domain.models import User
from dentassist.web.dependencies import get_account_service, get_current_user
from dentassist.web.schemas import CurrentUser, MessageResponse, SyncUserRequest

router = APIRouter(prefix="/api", tags=["Accounts"])


@router.post("/webhooks/identity", response_model=MessageResponse)
async def identity_webhook(
    event: IdentityEvent,
    accounts: AccountService = Depends(get_account_service),
):
    """Mirror identity provider user events into the local user table."""
    await accounts.handle_identity_event(event)
    return MessageResponse(message="Webhook received")


@router.post("/users/sync", response_model=User)
async def sync_user(
    data: SyncUserRequest | None = None,
    user: CurrentUser = Depends(get_current_user),
    accounts: AccountService = Depends(get_account_service),
):
    """Create or refresh the caller's account without waiting for the webhook."""
    data = data or SyncUserRequest()
    profile = build_profile(
        external_id=user.external_id,
        email=user.email,
        first_name=data.first_name,
        last_name=data.last_name,
        phone=data.phone,
    )
    return await accounts.sync_user(profile)


@router.get("/users/me", response_model=User)
async def get_me(
    wait: float = Query(0.0, ge=0.0, le=10.0),
    user: CurrentUser = Depends(get_current_user),
    accounts: AccountService = Depends(get_account_service),
):
    """The caller's account. With ``wait``, poll up to that many seconds for it to appear."""
    if wait:
        account = await accounts.wait_for_user(user.external_id, timeout=wait)
    else:
        account = await accounts.get_user(user.external_id)
    if account is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")
    return account
