"""Pluggable hooks the embedding application uses to shape users and tokens."""

import logging
import secrets
from typing import Any, Protocol

from fastapi import Request
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from src.signin.services.auth.exceptions import RegistrationRejected
from src.signin.services.database.models import Token, User

logger = logging.getLogger(__name__)


class HasVendorSubjects(Protocol):
    """User fields holding vendor subjects."""

    apple_subject: str | None
    google_subject: str | None


class HasActiveFlag(Protocol):
    """User field gating token issuance."""

    active: bool


class Provisionable(Protocol):
    """Builds the user record to persist for a new third-party identity."""

    async def register_user(
        self,
        request: Request,
        payload: Any,
        email: str,
        apple_subject: str | None,
        google_subject: str | None,
    ) -> User:
        """Return the user to create, or raise to refuse registration."""
        ...


class TokenIssuer(Protocol):
    """Generates the bearer token stored for a user."""

    async def generate_token(self, request: Request | None, user: User) -> Token: ...


class PayloadDecoder(Protocol):
    """Decodes the application-specific registration payload of a request."""

    def decode(self, raw: dict[str, Any] | None) -> Any: ...


class RegistrationPayload(BaseModel):
    """Default registration payload sent alongside an identity token."""

    model_config = ConfigDict(extra="forbid")

    display_name: str | None = Field(None, max_length=255, description="Name shown in the app")


class DefaultPayloadDecoder:
    """Validates the registration payload into ``RegistrationPayload``."""

    def decode(self, raw: dict[str, Any] | None) -> RegistrationPayload:
        try:
            return RegistrationPayload.model_validate(raw or {})
        except ValidationError as e:
            logger.warning(f"Invalid registration payload: {e}")
            raise RegistrationRejected("Invalid registration payload") from e


class DefaultRegistrar:
    """Creates a plain active user from the verified identity."""

    async def register_user(
        self,
        request: Request,
        payload: RegistrationPayload,
        email: str,
        apple_subject: str | None,
        google_subject: str | None,
    ) -> User:
        return User(
            email=email,
            apple_subject=apple_subject,
            google_subject=google_subject,
            display_name=payload.display_name,
        )


class OpaqueTokenIssuer:
    """Issues random URL-safe bearer tokens."""

    def __init__(self, nbytes: int = 32) -> None:
        self.nbytes = nbytes

    async def generate_token(self, request: Request | None, user: User) -> Token:
        return Token(value=secrets.token_urlsafe(self.nbytes), user_id=user.id)
