"""FastAPI dependencies wiring the sign-in services together."""

import logging
from functools import lru_cache

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from src.signin.config import settings
from src.signin.services.analytics.posthog import PostHogService
from src.signin.services.auth.exceptions import Unauthorized
from src.signin.services.auth.flow import ThirdPartyAuthService
from src.signin.services.auth.hooks import (
    DefaultPayloadDecoder,
    DefaultRegistrar,
    OpaqueTokenIssuer,
    PayloadDecoder,
    Provisionable,
    TokenIssuer,
)
from src.signin.services.auth.models import Vendor
from src.signin.services.auth.provisioning import UserProvisioningService
from src.signin.services.auth.tokens import TokenIssuanceService
from src.signin.services.auth.verifier import IdentityTokenVerifier
from src.signin.services.database.models import User
from src.signin.services.database.store import IdentityStore, SupabaseIdentityStore

security = HTTPBearer(auto_error=False)
logger = logging.getLogger(__name__)

# Identity verifiers per vendor (initialized in main.py startup)
_identity_verifiers: dict[Vendor, IdentityTokenVerifier] = {}

# Hooks supplied by the embedding application
_registrar: Provisionable = DefaultRegistrar()
_token_issuer: TokenIssuer = OpaqueTokenIssuer(settings.api_token_bytes)
_payload_decoder: PayloadDecoder = DefaultPayloadDecoder()


def set_identity_verifiers(verifiers: dict[Vendor, IdentityTokenVerifier]) -> None:
    """
    Set the identity token verifiers, one per vendor.

    Called during application startup.
    """
    global _identity_verifiers
    _identity_verifiers = dict(verifiers)


def get_identity_verifiers() -> dict[Vendor, IdentityTokenVerifier]:
    """
    Get the identity token verifiers.

    Raises:
        RuntimeError: If verifiers were not initialized
    """
    if not _identity_verifiers:
        raise RuntimeError(
            "Identity verifiers not initialized. "
            "Ensure application startup calls set_identity_verifiers()."
        )
    return _identity_verifiers


def set_registration_hooks(
    registrar: Provisionable | None = None,
    token_issuer: TokenIssuer | None = None,
    payload_decoder: PayloadDecoder | None = None,
) -> None:
    """
    Replace the hooks used to build users, tokens and registration payloads.

    Hooks left as None keep their current value.

    Example:
        >>> set_registration_hooks(registrar=MyAppRegistrar())
    """
    global _registrar, _token_issuer, _payload_decoder
    if registrar is not None:
        _registrar = registrar
    if token_issuer is not None:
        _token_issuer = token_issuer
    if payload_decoder is not None:
        _payload_decoder = payload_decoder


def get_payload_decoder() -> PayloadDecoder:
    return _payload_decoder


@lru_cache(maxsize=1)
def get_identity_store() -> IdentityStore:
    return SupabaseIdentityStore()


def get_token_service(store: IdentityStore = Depends(get_identity_store)) -> TokenIssuanceService:
    return TokenIssuanceService(store, _token_issuer)


def get_third_party_auth_service(
    store: IdentityStore = Depends(get_identity_store),
    tokens: TokenIssuanceService = Depends(get_token_service),
) -> ThirdPartyAuthService:
    return ThirdPartyAuthService(UserProvisioningService(store, _registrar), tokens)


async def get_current_user(
    credentials: HTTPAuthorizationCredentials | None = Depends(security),
    tokens: TokenIssuanceService = Depends(get_token_service),
) -> User:
    """
    Resolve the API bearer token of the request to its active owner.

    Args:
        credentials: Bearer token from Authorization header
        tokens: Token issuance service

    Returns:
        The authenticated user

    Raises:
        HTTPException: 401 if the token is missing, unknown, or its user is inactive

    Example:
        @router.get("/me")
        async def me(current_user: User = Depends(get_current_user)):
            return {"user_id": current_user.id}
    """
    if credentials is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"},
        )

    try:
        user = await tokens.user_for_token(credentials.credentials)
    except Unauthorized as e:
        logger.warning("Auth failed: unknown token or inactive user")
        PostHogService().capture(
            distinct_id="anonymous",
            event="authentication_failed",
            properties={"error": "invalid_api_token"},
        )
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=e.detail,
            headers={"WWW-Authenticate": "Bearer"},
        ) from e

    logger.info(f"User authenticated: {user.id}")
    return user
