# wlboard/routers/admin.py
from fastapi import APIRouter, Depends

from wlboard.core.auth import require_admin
from wlboard.dependencies import get_auth_service
from wlboard.models.user import Identity
from wlboard.schemas.user import AllowedEmailCreate
from wlboard.services.auth_service import AuthService

router = APIRouter(prefix="/admin", tags=["Admin"])


@router.get("/users", dependencies=[Depends(require_admin)])
def list_users(service: AuthService = Depends(get_auth_service)):
    """List every account, without credentials (admin only)."""
    users = [u.public() for u in service.list_users()]
    return {"success": True, "users": users, "count": len(users)}


@router.get("/allowed-emails", dependencies=[Depends(require_admin)])
def list_allowed_emails(service: AuthService = Depends(get_auth_service)):
    """List the registration allowlist (admin only)."""
    entries = [e.model_dump() for e in service.list_allowed()]
    return {"success": True, "allowedEmails": entries, "count": len(entries)}


@router.post("/allowed-emails")
async def add_allowed_email(
    payload: AllowedEmailCreate,
    admin: Identity = Depends(require_admin),
    service: AuthService = Depends(get_auth_service),
):
    """Allow a new email to register (admin only). 409 if already present."""
    entry = service.add_allowed(payload, admin)
    return {
        "success": True,
        "message": "Email added to the allowlist",
        "allowedEmail": entry.model_dump(),
    }


@router.delete("/allowed-emails/{email}")
async def remove_allowed_email(
    email: str,
    admin: Identity = Depends(require_admin),
    service: AuthService = Depends(get_auth_service),
):
    """
    Remove an email from the allowlist (admin only).

    - The matching account, if any, is deactivated.
    - Admins cannot remove their own email.
    """
    removed = service.remove_allowed(email, admin)
    return {
        "success": True,
        "message": "Email removed from the allowlist",
        "removedEmail": removed.model_dump(),
    }
