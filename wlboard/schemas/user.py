# wlboard/schemas/user.py
from pydantic import EmailStr, ConfigDict, field_validator
from sqlmodel import SQLModel, Field

from wlboard.models.user import Role


class RegisterRequest(SQLModel):
    """
    Self-registration payload.

    Fields are optional at the schema level so a missing one produces the
    stable "required" message from the service instead of a schema error.
    """

    model_config = ConfigDict(extra="ignore")

    email: EmailStr | None = None
    password: str | None = None
    name: str | None = Field(default=None, max_length=100)

    @field_validator("name")
    @classmethod
    def normalize_name(cls, v: str | None) -> str | None:
        if v is None:
            return v
        return v.strip() or None


class LoginRequest(SQLModel):
    """Email + password. Email is a plain string: any mismatch is a generic 401."""

    model_config = ConfigDict(extra="ignore")

    email: str | None = None
    password: str | None = None


class AllowedEmailCreate(SQLModel):
    """Admin-only allowlist addition."""

    model_config = ConfigDict(extra="ignore")

    email: EmailStr | None = None
    role: Role = "user"
