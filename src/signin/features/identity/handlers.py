"""API handlers for Sign in with Apple / Google."""

import logging
import secrets

from fastapi import APIRouter, Depends, Request, status

from src.signin.features.identity.schemas import (
    IdentityTokenRequest,
    NonceResponse,
    TokenResponse,
    UserResponse,
)
from src.signin.services import PostHogService
from src.signin.services.auth.dependencies import (
    get_current_user,
    get_identity_verifiers,
    get_payload_decoder,
    get_third_party_auth_service,
)
from src.signin.services.auth.exceptions import VerificationError
from src.signin.services.auth.flow import ThirdPartyAuthService
from src.signin.services.auth.hooks import PayloadDecoder
from src.signin.services.auth.models import Vendor, VerifiedIdentity
from src.signin.services.auth.resolver import subject_filter
from src.signin.services.auth.verifier import IdentityTokenVerifier
from src.signin.services.database.models import User

logger = logging.getLogger(__name__)

NONCE_SESSION_KEY = "nonce"

router = APIRouter(prefix="/auth", tags=["auth"])


async def _verify(
    request: Request,
    vendor: Vendor,
    identity_token: str,
    verifiers: dict[Vendor, IdentityTokenVerifier],
) -> VerifiedIdentity:
    try:
        return await verifiers[vendor].verify(
            identity_token, request.session.get(NONCE_SESSION_KEY)
        )
    except VerificationError as e:
        PostHogService().capture(
            distinct_id="anonymous",
            event="authentication_failed",
            properties={"vendor": vendor.value, "error": type(e).__name__},
        )
        raise


@router.get("/nonce", response_model=NonceResponse)
async def issue_nonce(request: Request) -> NonceResponse:
    """
    Create a nonce and bind it to the caller's session.

    The client passes this value to the vendor's sign-in request; the vendor
    echoes it in the identity token's 'nonce' claim.
    """
    nonce = secrets.token_urlsafe(16)
    request.session[NONCE_SESSION_KEY] = nonce
    return NonceResponse(nonce=nonce)


@router.post(
    "/{vendor}/register", response_model=TokenResponse, status_code=status.HTTP_201_CREATED
)
async def register_with_identity_token(
    vendor: Vendor,
    body: IdentityTokenRequest,
    request: Request,
    verifiers: dict[Vendor, IdentityTokenVerifier] = Depends(get_identity_verifiers),
    decoder: PayloadDecoder = Depends(get_payload_decoder),
    service: ThirdPartyAuthService = Depends(get_third_party_auth_service),
) -> TokenResponse:
    """
    Register a new user from a vendor identity token.

    Raises:
        400: Invalid token, missing email, already registered, or rejected payload
        503: Vendor keys could not be fetched
    """
    logger.debug(f"{vendor.value} registration attempt")
    identity = await _verify(request, vendor, body.identity_token, verifiers)
    payload = decoder.decode(body.registration)

    token = await service.create_user_and_token(
        request, identity.email, identity.vendor, identity.subject, payload
    )
    request.session.pop(NONCE_SESSION_KEY, None)

    PostHogService().capture(
        distinct_id=f"{vendor.value}:{identity.subject}",
        event="user_registered",
        properties={"vendor": vendor.value},
    )
    return TokenResponse(token=token)


@router.post("/{vendor}/login", response_model=TokenResponse)
async def login_with_identity_token(
    vendor: Vendor,
    body: IdentityTokenRequest,
    request: Request,
    verifiers: dict[Vendor, IdentityTokenVerifier] = Depends(get_identity_verifiers),
    service: ThirdPartyAuthService = Depends(get_third_party_auth_service),
) -> TokenResponse:
    """
    Return the API token of a user already registered with this vendor.

    Raises:
        400: Invalid identity token
        401: No active user linked to the vendor subject
    """
    logger.debug(f"{vendor.value} login attempt")
    identity = await _verify(request, vendor, body.identity_token, verifiers)

    token = await service.api_token_for_user(subject_filter(identity.vendor, identity.subject))
    request.session.pop(NONCE_SESSION_KEY, None)

    PostHogService().capture(
        distinct_id=f"{vendor.value}:{identity.subject}",
        event="user_authenticated",
        properties={"vendor": vendor.value},
    )
    return TokenResponse(token=token)


@router.get("/me", response_model=UserResponse)
async def get_me(current_user: User = Depends(get_current_user)) -> UserResponse:
    """Get current authenticated user."""
    return UserResponse(
        id=str(current_user.id),
        email=current_user.email,
        display_name=current_user.display_name,
        apple_linked=current_user.apple_subject is not None,
        google_linked=current_user.google_subject is not None,
    )
