"""API handlers for email/password registration and login."""

import logging

from fastapi import APIRouter, Depends, Request, status

from src.signin.config import settings
from src.signin.features.identity.schemas import TokenResponse
from src.signin.features.password.schemas import PasswordLoginRequest, PasswordRegisterRequest
from src.signin.features.password.service import PasswordAuthService
from src.signin.services import PostHogService
from src.signin.services.auth.dependencies import get_identity_store, get_token_service
from src.signin.services.auth.tokens import TokenIssuanceService
from src.signin.services.database.store import IdentityStore

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["auth"])


def get_password_service(
    store: IdentityStore = Depends(get_identity_store),
    tokens: TokenIssuanceService = Depends(get_token_service),
) -> PasswordAuthService:
    return PasswordAuthService(store, tokens, bcrypt_rounds=settings.bcrypt_rounds)


@router.post("/register", response_model=TokenResponse, status_code=status.HTTP_201_CREATED)
async def register(
    body: PasswordRegisterRequest,
    request: Request,
    service: PasswordAuthService = Depends(get_password_service),
) -> TokenResponse:
    """Register a new email/password user."""
    logger.debug(f"Registering user: {body.email}")
    token = await service.register(request, body.email, body.password, body.display_name)
    PostHogService().capture(
        distinct_id=body.email, event="user_registered", properties={"vendor": "password"}
    )
    return TokenResponse(token=token)


@router.post("/login", response_model=TokenResponse)
async def login(
    body: PasswordLoginRequest,
    request: Request,
    service: PasswordAuthService = Depends(get_password_service),
) -> TokenResponse:
    """Authenticate an email/password user and return their API token."""
    logger.debug(f"Login attempt: {body.email}")
    token = await service.login(request, body.email, body.password)
    PostHogService().capture(
        distinct_id=body.email, event="user_authenticated", properties={"vendor": "password"}
    )
    return TokenResponse(token=token)
