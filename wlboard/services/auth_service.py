# wlboard/services/auth_service.py
import asyncio
import logging

from wlboard.core.auth import create_access_token, hash_password, verify_password
from wlboard.core.config import Settings
from wlboard.core.errors import BadRequest, Conflict, Forbidden, NotFound, Unauthorized
from wlboard.core.timeutils import utc_now_iso
from wlboard.database import ALLOWED_EMAILS, USERS, PersistenceGateway
from wlboard.models.user import AllowedEmail, Identity, User
from wlboard.repositories.user_repo import AllowedEmailRepository, UserRepository
from wlboard.schemas.user import AllowedEmailCreate, LoginRequest, RegisterRequest

logger = logging.getLogger(__name__)

# One message for unknown email, inactive account and wrong password,
# so a login attempt never reveals which one it was.
INVALID_CREDENTIALS = "Invalid email or password"


class AuthService:
    """
    Access control for the authenticated board.

    Responsibilities:
      - self-registration gated by the email allowlist
      - login (credential check + session token)
      - admin management of the allowlist
      - account deactivation when an email leaves the allowlist

    Owns the User and AllowedEmail collections. Password hashing runs
    in a worker thread, so register/login are coroutines.
    """

    def __init__(
        self,
        users: UserRepository,
        allowed: AllowedEmailRepository,
        gateway: PersistenceGateway,
        settings: Settings,
    ):
        self.users = users
        self.allowed = allowed
        self.gateway = gateway
        self.settings = settings
        self._dummy_hash: str | None = None

    def _persist_users(self) -> None:
        self.gateway.schedule_save(USERS, self.users.to_documents())

    def _persist_allowed(self) -> None:
        self.gateway.schedule_save(ALLOWED_EMAILS, self.allowed.to_documents())

    # ----- Registration / login -----

    async def register(self, payload: RegisterRequest) -> User:
        """
        Create an account for an allowlisted email.

        Raises:
            BadRequest: missing email/password/name.
            Forbidden: email is not on the allowlist.
            Conflict: an account already exists for this email.
        """
        if not payload.email or not payload.password or not payload.name:
            raise BadRequest("Email, password and name are required")

        email = payload.email.lower()
        entry = self.allowed.get(email)
        if entry is None:
            raise Forbidden("Email not authorized. Contact the administrator.")
        if self.users.get_by_email(email) is not None:
            raise Conflict("A user with this email already exists")

        password_hash = await asyncio.to_thread(
            hash_password, payload.password, self.settings.BCRYPT_ROUNDS
        )

        # Another registration for the same email may have finished
        # while we were hashing.
        if self.users.get_by_email(email) is not None:
            raise Conflict("A user with this email already exists")

        user = self.users.add(
            User(
                email=email,
                name=payload.name,
                passwordHash=password_hash,
                role=entry.role,
            )
        )
        self._persist_users()
        logger.info("👤 Registered %s (%s)", user.email, user.role)
        return user

    async def login(self, payload: LoginRequest) -> tuple[str, User]:
        """
        Check credentials and issue a session token.

        Raises:
            BadRequest: missing email/password.
            Unauthorized: unknown email, inactive account or wrong password
                (same message for all three).
        """
        if not payload.email or not payload.password:
            raise BadRequest("Email and password are required")

        user = self.users.get_by_email(payload.email)
        if user is not None:
            password_hash = user.passwordHash
        else:
            # Unknown email still pays for one bcrypt check.
            password_hash = await self._get_dummy_hash()
        valid = await asyncio.to_thread(verify_password, payload.password, password_hash)

        if user is None or not user.isActive or not valid:
            raise Unauthorized(INVALID_CREDENTIALS)

        user.lastLogin = utc_now_iso()
        self._persist_users()
        return create_access_token(user, self.settings), user

    async def _get_dummy_hash(self) -> str:
        if self._dummy_hash is None:
            self._dummy_hash = await asyncio.to_thread(
                hash_password, "not-a-real-password", self.settings.BCRYPT_ROUNDS
            )
        return self._dummy_hash

    def is_active(self, user_id: str | None) -> bool:
        """True if `user_id` names an existing, active account."""
        if user_id is None:
            return False
        user = self.users.get_by_id(user_id)
        return user is not None and user.isActive

    # ----- Admin -----

    def list_users(self) -> list[User]:
        return self.users.list()

    def list_allowed(self) -> list[AllowedEmail]:
        return self.allowed.list()

    def add_allowed(self, payload: AllowedEmailCreate, admin: Identity) -> AllowedEmail:
        """
        Raises:
            BadRequest: email missing.
            Conflict: email already allowlisted.
        """
        if not payload.email:
            raise BadRequest("Email is required")

        email = payload.email.lower()
        if self.allowed.get(email) is not None:
            raise Conflict("Email is already on the allowlist")

        entry = self.allowed.add(
            AllowedEmail(email=email, role=payload.role, addedBy=admin.email or "system")
        )
        self._persist_allowed()
        logger.info("📧 %s allowlisted by %s", entry.email, entry.addedBy)
        return entry

    def remove_allowed(self, email: str, admin: Identity) -> AllowedEmail:
        """
        Remove an allowlist entry and deactivate the matching account.

        Raises:
            BadRequest: an admin trying to remove their own email.
            NotFound: email not on the allowlist.
        """
        key = email.strip().lower()
        if admin.email and key == admin.email.lower():
            raise BadRequest("You cannot remove your own email")

        removed = self.allowed.remove(key)
        if removed is None:
            raise NotFound("Email not found on the allowlist")
        self._persist_allowed()

        user = self.users.get_by_email(key)
        if user is not None and user.isActive:
            user.isActive = False
            self._persist_users()
            logger.info("🚫 Deactivated %s", user.email)

        return removed
