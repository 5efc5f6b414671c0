# wlboard/repositories/user_repo.py
from typing import Any, Iterable

from wlboard.database import ALLOWED_EMAILS, USERS, validate_documents
from wlboard.models.user import AllowedEmail, User


class UserRepository:
    """
    In-memory collection of User accounts.

    Responsibilities:
      - Pure collection operations (lookup + insert)
      - No FastAPI, no persistence, no business logic
    """

    def __init__(self, users: Iterable[User] = ()):
        self._users: list[User] = list(users)

    @classmethod
    def from_documents(cls, docs: Iterable[dict[str, Any]]) -> "UserRepository":
        return cls(validate_documents(User, docs, USERS))

    def to_documents(self) -> list[dict[str, Any]]:
        return [u.model_dump() for u in self._users]

    def __len__(self) -> int:
        return len(self._users)

    def list(self) -> list[User]:
        return list(self._users)

    def get_by_id(self, user_id: str) -> User | None:
        """Return a User by id, or None if not found."""
        for user in self._users:
            if user.id == user_id:
                return user
        return None

    def get_by_email(self, email: str) -> User | None:
        """Case-insensitive lookup by email."""
        key = email.strip().lower()
        for user in self._users:
            if user.email.lower() == key:
                return user
        return None

    def add(self, user: User) -> User:
        self._users.append(user)
        return user


class AllowedEmailRepository:
    """
    In-memory allowlist, keyed case-insensitively by email.
    Insertion order is kept.
    """

    def __init__(self, entries: Iterable[AllowedEmail] = ()):
        self._entries: list[AllowedEmail] = list(entries)

    @classmethod
    def from_documents(
        cls, docs: Iterable[dict[str, Any]]
    ) -> "AllowedEmailRepository":
        return cls(validate_documents(AllowedEmail, docs, ALLOWED_EMAILS))

    def to_documents(self) -> list[dict[str, Any]]:
        return [e.model_dump() for e in self._entries]

    def __len__(self) -> int:
        return len(self._entries)

    def list(self) -> list[AllowedEmail]:
        return list(self._entries)

    def get(self, email: str) -> AllowedEmail | None:
        key = email.strip().lower()
        for entry in self._entries:
            if entry.email.lower() == key:
                return entry
        return None

    def add(self, entry: AllowedEmail) -> AllowedEmail:
        self._entries.append(entry)
        return entry

    def remove(self, email: str) -> AllowedEmail | None:
        """Remove and return the entry for `email`, or None if absent."""
        entry = self.get(email)
        if entry is not None:
            self._entries.remove(entry)
        return entry
