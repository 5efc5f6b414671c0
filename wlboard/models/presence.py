# wlboard/models/presence.py
from sqlmodel import SQLModel


class PresenceEntry(SQLModel):
    """
    Ephemeral metadata for one live real-time connection.

    Keyed by connection id, not by person: one user with two tabs
    yields two entries. Never persisted.
    """

    id: str
    userId: str | None = None
    name: str
    email: str | None = None
    role: str | None = None
    joinedAt: str
    lastActivity: str
