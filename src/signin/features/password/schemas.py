"""Pydantic models for email/password endpoints."""

from pydantic import BaseModel, EmailStr, Field, field_validator

# bcrypt only accepts passwords up to 72 bytes
MAX_PASSWORD_BYTES = 72


class PasswordRegisterRequest(BaseModel):
    """Request model for email/password registration."""

    email: EmailStr
    password: str = Field(min_length=8, description="At most 72 bytes once UTF-8 encoded")
    display_name: str | None = Field(None, max_length=255)

    @field_validator("password")
    @classmethod
    def password_fits_bcrypt(cls, v: str) -> str:
        if len(v.encode("utf-8")) > MAX_PASSWORD_BYTES:
            raise ValueError(f"Password must be at most {MAX_PASSWORD_BYTES} bytes")
        return v


class PasswordLoginRequest(BaseModel):
    """Request model for email/password login."""

    email: EmailStr
    password: str
