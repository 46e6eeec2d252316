"""Data models for authentication."""

from enum import Enum

from pydantic import BaseModel


class Vendor(str, Enum):
    """Third-party identity providers accepted for sign-in."""

    APPLE = "apple"
    GOOGLE = "google"


class VerifiedIdentity(BaseModel):
    """
    Identity extracted from a verified third-party token.

    Lives only for the duration of one register/login call.

    Attributes:
        vendor: Provider that signed the token
        subject: Provider-specific stable user identifier ('sub' claim)
        email: Email claim, if the provider shared one
        issuer: Verified 'iss' claim
        audience: Client identifier the token was issued for
        nonce: Nonce echoed by the provider, equal to the session nonce

    Example:
        >>> identity = VerifiedIdentity(
        ...     vendor=Vendor.APPLE,
        ...     subject="001234.abcd",
        ...     email="a@x.com",
        ...     issuer="https://appleid.apple.com",
        ...     audience="com.yourapp.bundleid",
        ...     nonce="abc",
        ... )
    """

    vendor: Vendor
    subject: str
    email: str | None = None
    issuer: str
    audience: str
    nonce: str
