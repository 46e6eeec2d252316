"""Verification of Apple and Google identity tokens against the vendor's JWKS."""

import logging
from typing import Any

import httpx
from jose import ExpiredSignatureError, JWTError, jwt

from src.signin.services.auth.exceptions import (
    InvalidAudience,
    InvalidIssuer,
    InvalidNonce,
    InvalidSignature,
    KeySetUnavailable,
    TokenExpired,
)
from src.signin.services.auth.jwks import JWKSCache
from src.signin.services.auth.models import Vendor, VerifiedIdentity

logger = logging.getLogger(__name__)


class IdentityTokenVerifier:
    """
    Verifies identity tokens issued by one vendor.

    Checks, in order: signature (against the cached JWKS), time claims,
    issuer, audience, and the nonce bound to the caller's session. Each
    failure raises a distinct ``VerificationError`` subtype. Verification has
    no side effects apart from filling the key cache, so it is safe to retry.

    Attributes:
        vendor: Identity provider whose tokens this verifier accepts
        jwks_cache: JWKS cache for the vendor's signing keys
        issuer: Expected 'iss' claim, compared by exact string equality
        audience: This application's client identifier at the vendor
        leeway: Clock skew tolerance in seconds (default: 10)

    Example:
        >>> verifier = IdentityTokenVerifier(
        ...     Vendor.APPLE, apple_keys, "https://appleid.apple.com", "com.yourapp.bundleid"
        ... )
        >>> identity = await verifier.verify(identity_token, session_nonce="abc")
    """

    algorithms = ["RS256", "ES256"]

    def __init__(
        self,
        vendor: Vendor,
        jwks_cache: JWKSCache,
        issuer: str,
        audience: str,
        leeway: int = 10,
    ):
        self.vendor = vendor
        self.jwks_cache = jwks_cache
        self.issuer = issuer
        self.audience = audience
        self.leeway = leeway

    async def verify(
        self,
        raw_token: str,
        session_nonce: str | None,
        expected_issuer: str | None = None,
        expected_audience: str | None = None,
    ) -> VerifiedIdentity:
        """
        Verify an identity token and return the identity it asserts.

        Args:
            raw_token: Identity token as posted by the client
            session_nonce: Nonce stored in the caller's session, if any
            expected_issuer: Overrides the configured issuer
            expected_audience: Overrides the configured audience

        Returns:
            VerifiedIdentity with the token's subject and email claims

        Raises:
            InvalidSignature: Malformed token, unknown key, or bad signature
            TokenExpired: Token 'exp' is in the past
            InvalidIssuer: 'iss' differs from the expected issuer
            InvalidAudience: 'aud' is not the expected client identifier
            InvalidNonce: No session nonce, or 'nonce' claim does not match it
            KeySetUnavailable: The vendor's JWKS could not be fetched
        """
        issuer = expected_issuer or self.issuer
        audience = expected_audience or self.audience

        claims = await self._verified_claims(raw_token)

        if claims.get("iss") != issuer:
            self._reject("invalid_issuer", claims)
            raise InvalidIssuer(f"Invalid issuer: expected {issuer}")

        if not _audience_matches(claims.get("aud"), audience):
            self._reject("invalid_audience", claims)
            raise InvalidAudience()

        if not session_nonce or claims.get("nonce") != session_nonce:
            self._reject("invalid_nonce", claims)
            raise InvalidNonce()

        subject = claims.get("sub")
        if not subject:
            self._reject("missing_sub_claim", claims)
            raise InvalidSignature("Identity token missing 'sub' claim")

        logger.debug(
            "Identity token verified",
            extra={"vendor": self.vendor.value, "sub": subject},
        )

        return VerifiedIdentity(
            vendor=self.vendor,
            subject=subject,
            email=claims.get("email"),
            issuer=issuer,
            audience=audience,
            nonce=session_nonce,
        )

    async def _verified_claims(self, raw_token: str) -> dict[str, Any]:
        """Check the signature and time claims, returning the decoded payload."""
        try:
            kid = jwt.get_unverified_header(raw_token).get("kid")
        except JWTError as e:
            logger.warning(f"Malformed identity token: {e}", extra={"vendor": self.vendor.value})
            raise InvalidSignature("Malformed identity token") from e

        if not kid:
            raise InvalidSignature("Identity token header missing 'kid' (key ID)")

        try:
            signing_key = await self.jwks_cache.get_signing_key(kid)
        except httpx.HTTPError as e:
            raise KeySetUnavailable() from e
        except ValueError as e:
            logger.warning(str(e), extra={"vendor": self.vendor.value, "kid": kid})
            raise InvalidSignature("Identity token signed with an unknown key") from e

        try:
            # Issuer and audience are checked separately so each gets its own error.
            return jwt.decode(
                raw_token,
                signing_key,
                algorithms=self.algorithms,
                options={
                    "verify_signature": True,
                    "verify_exp": True,
                    "verify_nbf": True,
                    "verify_iat": True,
                    "verify_aud": False,
                    "verify_iss": False,
                    "verify_at_hash": False,
                    "require_exp": True,
                    "require_iat": True,
                    "leeway": self.leeway,
                },
            )
        except ExpiredSignatureError as e:
            logger.warning(
                "Identity token expired",
                extra={"error_type": "token_expired", "vendor": self.vendor.value},
            )
            raise TokenExpired() from e
        except JWTError as e:
            logger.warning(
                f"Identity token verification failed: {e}",
                extra={"error_type": "invalid_signature", "vendor": self.vendor.value},
            )
            raise InvalidSignature() from e

    def _reject(self, error_type: str, claims: dict[str, Any]) -> None:
        logger.warning(
            f"Identity token rejected: {error_type}",
            extra={
                "error_type": error_type,
                "vendor": self.vendor.value,
                "iss": claims.get("iss"),
                "aud": claims.get("aud"),
            },
        )


def _audience_matches(aud: Any, expected: str) -> bool:
    if isinstance(aud, str):
        return aud == expected
    if isinstance(aud, list):
        return expected in aud
    return False
