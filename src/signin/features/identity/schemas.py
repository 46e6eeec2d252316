"""Pydantic models for identity token sign-in endpoints."""

from typing import Any

from pydantic import BaseModel, Field


class IdentityTokenRequest(BaseModel):
    """Identity token posted by the client after Sign in with Apple/Google."""

    identity_token: str = Field(min_length=1, description="JWT identity token issued by the vendor")
    registration: dict[str, Any] | None = Field(
        None, description="Application-specific registration data"
    )

    class Config:
        """Pydantic config."""

        json_schema_extra = {
            "example": {
                "identity_token": "eyJraWQiOiJXNldjT0tCIiwiYWxnIjoiUlMyNTYifQ...",
                "registration": {"display_name": "Jane"},
            }
        }


class NonceResponse(BaseModel):
    """Nonce the client must pass to the vendor's sign-in request."""

    nonce: str


class TokenResponse(BaseModel):
    """API bearer token for subsequent calls."""

    token: str
    token_type: str = "bearer"


class UserResponse(BaseModel):
    """Public view of the authenticated user."""

    id: str
    email: str | None = None
    display_name: str | None = None
    apple_linked: bool
    google_linked: bool
