# wlboard/dependencies.py
"""
FastAPI dependencies that hand the app-owned components to routes.

Everything is built once per app in the lifespan handler and lives on
`app.state`; nothing here creates state of its own.
"""

from fastapi import Request

from wlboard.core.errors import TooManyRequests
from wlboard.core.rate_limit import client_key
from wlboard.realtime.presence import PresenceRegistry
from wlboard.services.auth_service import AuthService
from wlboard.services.partnership_service import PartnershipService


def get_partnership_service(request: Request) -> PartnershipService:
    return request.app.state.partnerships


def get_auth_service(request: Request) -> AuthService:
    return request.app.state.auth


def get_presence(request: Request) -> PresenceRegistry:
    return request.app.state.presence


def login_rate_limit(request: Request) -> None:
    """
    Separate, stricter limit for login attempts.

    Raises:
        TooManyRequests: if this client exceeded LOGIN_RATE_LIMIT.
    """
    if not request.app.state.login_limiter.hit(client_key(request)):
        raise TooManyRequests("Too many login attempts. Try again in 15 minutes.")
