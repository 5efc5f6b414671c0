# wlboard/models/user.py
import uuid
from typing import Any, Literal

from pydantic import ConfigDict, model_validator
from sqlmodel import SQLModel, Field

from wlboard.core.timeutils import utc_now_iso

# App-level roles.
Role = Literal["user", "admin"]


class User(SQLModel):
    """
    Registered account (authenticated board only).

    Identity:
      - id: uuid4 string, carried in the session token
      - email: lower-cased, unique

    A user whose email is later removed from the allowlist is
    deactivated (is_active=False), never deleted.
    """

    model_config = ConfigDict(extra="ignore")

    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    email: str
    name: str = Field(max_length=100)

    # bcrypt hash; never serialized outward (see `public()`)
    passwordHash: str

    role: Role = "user"
    createdAt: str = Field(default_factory=utc_now_iso)
    lastLogin: str | None = None
    isActive: bool = True

    @model_validator(mode="before")
    @classmethod
    def legacy_password_key(cls, data: Any) -> Any:
        # Older users.json files keep the hash under "password".
        if isinstance(data, dict) and "passwordHash" not in data and "password" in data:
            data = dict(data)
            data["passwordHash"] = data.pop("password")
        return data

    def public(self) -> dict:
        """Dict representation without the credential."""
        return self.model_dump(exclude={"passwordHash"})


class AllowedEmail(SQLModel):
    """
    Allowlist entry: who may self-register, and with which role.
    `email` is the case-insensitive key (stored lower-cased).
    """

    model_config = ConfigDict(extra="ignore")

    email: str
    role: Role = "user"
    addedAt: str = Field(default_factory=utc_now_iso)
    addedBy: str = "system"


class Identity(SQLModel):
    """
    The acting identity for a request or connection.

    Authenticated board: decoded from the session token claims.
    Open board: only `name` is known (client-supplied display name).
    """

    id: str | None = None
    email: str | None = None
    name: str
    role: Role | None = None

    @property
    def is_admin(self) -> bool:
        return self.role == "admin"
