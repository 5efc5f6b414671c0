# wlboard/core/auth.py
from datetime import datetime, timedelta, timezone
from typing import Any

import bcrypt
from fastapi import Depends, Request
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from jose import jwt, JWTError

from wlboard.core.config import Settings
from wlboard.core.errors import Forbidden, Unauthorized
from wlboard.models.user import Identity, User

ANONYMOUS_NAME = "Anonymous User"

# HTTP Bearer scheme:
# - auto_error=False => missing Authorization header will NOT raise immediately
#   so we can answer with our own {success, message} body, and so the open
#   board (AUTH_ENABLED=false) works without any header at all.
bearer_scheme = HTTPBearer(auto_error=False)


# ----- Passwords -----


# bcrypt only reads the first 72 bytes of a password.
BCRYPT_MAX_BYTES = 72


def _password_bytes(password: str) -> bytes:
    return password.encode("utf-8")[:BCRYPT_MAX_BYTES]


def hash_password(password: str, rounds: int = 12) -> str:
    """Hash a password using bcrypt"""
    salt = bcrypt.gensalt(rounds=rounds)
    return bcrypt.hashpw(_password_bytes(password), salt).decode("utf-8")


def verify_password(password: str, password_hash: str) -> bool:
    """Verify a password against its hash"""
    try:
        return bcrypt.checkpw(_password_bytes(password), password_hash.encode("utf-8"))
    except ValueError:
        return False


# ----- Session tokens -----


def create_access_token(user: User, settings: Settings) -> str:
    """
    Issue a signed session token for `user`.

    Claims: id, email, name, role, exp (now + ACCESS_TOKEN_EXPIRE_DAYS).
    """
    expires = datetime.now(timezone.utc) + timedelta(
        days=settings.ACCESS_TOKEN_EXPIRE_DAYS
    )
    claims = {
        "id": user.id,
        "email": user.email,
        "name": user.name,
        "role": user.role,
        "exp": expires,
    }
    return jwt.encode(claims, settings.JWT_SECRET, algorithm=settings.JWT_ALG)


def decode_access_token(token: str, settings: Settings) -> Identity:
    """
    Decode and verify a session token.

    Verification:
      - signature (JWT_ALG using JWT_SECRET)
      - expiration time (exp)
      - presence of id/email/name/role claims

    This is a pure function of the token and the secret; it does not
    look at the user collection.

    Raises:
        Unauthorized: if token is invalid/expired/malformed.
    """
    try:
        payload: dict[str, Any] = jwt.decode(
            token,
            settings.JWT_SECRET,
            algorithms=[settings.JWT_ALG],
        )
    except JWTError:
        raise Unauthorized("Invalid or expired token")

    if not all(payload.get(k) for k in ("id", "email", "name", "role")):
        raise Unauthorized("Invalid or expired token")

    if payload["role"] not in ("user", "admin"):
        raise Unauthorized("Invalid or expired token")

    return Identity(
        id=payload["id"],
        email=payload["email"],
        name=payload["name"],
        role=payload["role"],
    )


def resolve_token(token: str | None, request_state: Any) -> Identity:
    """
    Verify a raw token against the app state (HTTP and WebSocket share this).

    With REVOKE_TOKENS_ON_DEACTIVATION, a token whose account has been
    deactivated (or no longer exists) is rejected even before expiry.

    Raises:
        Unauthorized: missing, invalid, expired or revoked token.
    """
    settings: Settings = request_state.settings
    if not token:
        raise Unauthorized("Access token required")

    identity = decode_access_token(token, settings)

    if settings.REVOKE_TOKENS_ON_DEACTIVATION:
        if not request_state.auth.is_active(identity.id):
            raise Unauthorized("Invalid or expired token")

    return identity


# ----- FastAPI dependencies -----


def get_current_identity(
    request: Request,
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
) -> Identity | None:
    """
    Resolve the acting identity from the Authorization header.

    Flow:
      1. Open board (AUTH_ENABLED=false) => None, nobody is verified.
      2. No header => Unauthorized.
      3. Decode token => Identity.

    Raises:
        Unauthorized: missing/invalid/expired token on the authenticated board.
    """
    state = request.app.state
    if not state.settings.AUTH_ENABLED:
        return None
    token = credentials.credentials if credentials else None
    return resolve_token(token, state)


def require_auth(
    identity: Identity | None = Depends(get_current_identity),
) -> Identity:
    """
    Enforce authentication.

    Only meaningful on the authenticated board; routes that must work on
    both boards use `get_current_identity` + `actor_for` instead.
    """
    if identity is None:
        raise Unauthorized("Access token required")
    return identity


def require_admin(identity: Identity = Depends(require_auth)) -> Identity:
    """
    Enforce admin role.

    Raises:
        Forbidden: if role is not admin.
    """
    if not identity.is_admin:
        raise Forbidden("Access denied. Administrators only.")
    return identity


def require_admin_if_auth(
    request: Request,
    identity: Identity | None = Depends(get_current_identity),
) -> Identity | None:
    """
    Admin gate that only applies on the authenticated board.
    The open board lets anyone through (there are no roles).
    """
    if request.app.state.settings.AUTH_ENABLED:
        return require_admin(require_auth(identity))
    return identity


def actor_for(identity: Identity | None, user_name: str | None = None) -> Identity:
    """
    Who gets the credit for a mutation.

    Authenticated board: the token identity. Open board: the client-supplied
    display name (untrusted), or ANONYMOUS_NAME.
    """
    if identity is not None:
        return identity
    name = (user_name or "").strip()
    return Identity(name=name or ANONYMOUS_NAME)
