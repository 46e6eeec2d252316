"""Pydantic models for database entities."""

from datetime import datetime, timezone
from enum import Enum
from uuid import UUID, uuid4

from pydantic import BaseModel, Field


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class User(BaseModel):
    """
    Local identity record.

    A user is linked to at most one subject per vendor. Password users carry a
    bcrypt hash; vendor users leave it empty.
    """

    id: UUID = Field(default_factory=uuid4)
    email: str | None = None
    apple_subject: str | None = None
    google_subject: str | None = None
    active: bool = True
    password_hash: str | None = None
    display_name: str | None = Field(None, max_length=255)
    created_at: datetime = Field(default_factory=_utcnow)


class Token(BaseModel):
    """Opaque bearer credential owned by exactly one user."""

    id: UUID = Field(default_factory=uuid4)
    value: str
    user_id: UUID
    issued_at: datetime = Field(default_factory=_utcnow)


class UserColumn(str, Enum):
    """User columns that can be used to look a user up."""

    ID = "id"
    EMAIL = "email"
    APPLE_SUBJECT = "apple_subject"
    GOOGLE_SUBJECT = "google_subject"


class UserFilter(BaseModel):
    """
    A single ``column == value`` condition on the users table.

    Example:
        >>> UserFilter.by_email("a@x.com")
        UserFilter(column=<UserColumn.EMAIL: 'email'>, value='a@x.com')
    """

    column: UserColumn
    value: str

    @classmethod
    def by_id(cls, user_id: UUID | str) -> "UserFilter":
        return cls(column=UserColumn.ID, value=str(user_id))

    @classmethod
    def by_email(cls, email: str) -> "UserFilter":
        return cls(column=UserColumn.EMAIL, value=email)

    def matches(self, user: User) -> bool:
        """Evaluate the condition against an in-memory user."""
        candidates = {
            UserColumn.ID: str(user.id),
            UserColumn.EMAIL: user.email,
            UserColumn.APPLE_SUBJECT: user.apple_subject,
            UserColumn.GOOGLE_SUBJECT: user.google_subject,
        }
        return candidates[self.column] == self.value
