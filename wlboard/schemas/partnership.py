# wlboard/schemas/partnership.py
from pydantic import ConfigDict
from sqlmodel import SQLModel, Field

WLCount = int | float | str | None


class PartnershipCreate(SQLModel):
    """
    Payload for creating a partnership.

    Every field is optional; missing text fields default to "" and
    `numberOfWLs` is coerced to an int (non-numeric => 0).
    `userName` is only used for attribution on the open board.
    """

    model_config = ConfigDict(extra="ignore")

    projectName: str | None = None
    numberOfWLs: WLCount = None
    templateDescription: str | None = None
    collectedWallets: str | None = None

    userName: str | None = Field(default=None, max_length=100)


class PartnershipUpdate(SQLModel):
    """
    Partial update payload. Only fields that are sent are merged.

    `field` names the edited column for the broadcast (defaults to
    "multiple"); `userName` is attribution on the open board.
    """

    model_config = ConfigDict(extra="ignore")

    projectName: str | None = None
    numberOfWLs: WLCount = None
    templateDescription: str | None = None
    collectedWallets: str | None = None

    field: str | None = None
    userName: str | None = Field(default=None, max_length=100)

    def changes(self) -> dict:
        """Record fields that were explicitly sent."""
        return self.model_dump(exclude_unset=True, exclude={"field", "userName"})
