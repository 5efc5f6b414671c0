# wlboard/routers/auth.py
from fastapi import APIRouter, Depends

from wlboard.core.auth import require_auth
from wlboard.dependencies import get_auth_service, login_rate_limit
from wlboard.models.user import Identity
from wlboard.schemas.user import LoginRequest, RegisterRequest
from wlboard.services.auth_service import AuthService

router = APIRouter(prefix="/auth", tags=["Auth"])


@router.post("/register")
async def register(
    payload: RegisterRequest,
    service: AuthService = Depends(get_auth_service),
):
    """
    Self-registration for allowlisted emails.
    The new account gets the role of its allowlist entry.
    """
    user = await service.register(payload)
    return {
        "success": True,
        "message": "User created successfully",
        "user": user.public(),
    }


@router.post("/login", dependencies=[Depends(login_rate_limit)])
async def login(
    payload: LoginRequest,
    service: AuthService = Depends(get_auth_service),
):
    """
    Exchange email + password for a session token (valid for 7 days).
    Rate-limited separately from the rest of the API.
    """
    token, user = await service.login(payload)
    return {
        "success": True,
        "message": "Login successful",
        "token": token,
        "user": user.public(),
    }


@router.get("/verify")
def verify(identity: Identity = Depends(require_auth)):
    """Return the claims carried by the presented token."""
    return {"success": True, "user": identity.model_dump()}
