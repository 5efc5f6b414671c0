# wlboard/models/partnership.py
import re
import uuid
from typing import Any

from pydantic import ConfigDict, field_validator, model_validator
from sqlmodel import SQLModel, Field

from wlboard.core.timeutils import utc_now_iso

_LEADING_INT = re.compile(r"^\s*([+-]?\d+)")


def coerce_wl_count(value: Any) -> int:
    """
    Coerce a user-supplied WL count into an integer.

    Leading-integer semantics:
      - "50"       -> 50
      - "50 spots" -> 50
      - 12.9       -> 12
      - "abc", "", None, True -> 0
    """
    if isinstance(value, bool) or value is None:
        return 0
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value) if value == value and abs(value) != float("inf") else 0
    match = _LEADING_INT.match(str(value))
    return int(match.group(1)) if match else 0


def new_record_id() -> str:
    """Opaque, never-reused record id."""
    return uuid.uuid4().hex


class Partnership(SQLModel):
    """
    One partnership row on the shared board.

    Field names are the camelCase names used on the wire and on disk,
    so a record round-trips through JSON unchanged.

    Attribution (createdBy*, lastModifiedBy*) is captured from the acting
    identity at mutation time and never recomputed. Email variants are
    None on the open (unauthenticated) board.
    """

    model_config = ConfigDict(extra="ignore")

    id: str = Field(default_factory=new_record_id)

    projectName: str = ""
    numberOfWLs: int = 0
    templateDescription: str = ""
    collectedWallets: str = Field(
        default="",
        description="Newline-delimited wallet addresses",
    )

    createdAt: str = Field(default_factory=utc_now_iso)
    updatedAt: str = Field(default_factory=utc_now_iso)

    createdBy: str = ""
    createdByEmail: str | None = None
    lastModifiedBy: str = ""
    lastModifiedByEmail: str | None = None

    @field_validator("numberOfWLs", mode="before")
    @classmethod
    def coerce_count(cls, v: Any) -> int:
        return coerce_wl_count(v)

    @field_validator(
        "projectName", "templateDescription", "collectedWallets", mode="before"
    )
    @classmethod
    def none_to_empty(cls, v: Any) -> Any:
        return "" if v is None else v

    @model_validator(mode="before")
    @classmethod
    def updated_defaults_to_created(cls, data: Any) -> Any:
        # Older files may carry createdAt only.
        if isinstance(data, dict) and data.get("createdAt") and not data.get("updatedAt"):
            data = {**data, "updatedAt": data["createdAt"]}
        return data
