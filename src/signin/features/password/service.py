"""Email/password registration and login."""

import logging

from fastapi import Request
from starlette.concurrency import run_in_threadpool

from src.signin.features.password.security import hash_password, verify_password
from src.signin.services.auth.exceptions import AlreadyRegistered, Unauthorized
from src.signin.services.auth.tokens import TokenIssuanceService, is_active
from src.signin.services.database.models import User, UserFilter
from src.signin.services.database.store import DuplicateRecordError, IdentityStore

logger = logging.getLogger(__name__)


class PasswordAuthService:
    """Service for the email/password path; shares token issuance with vendor sign-in."""

    def __init__(
        self, store: IdentityStore, tokens: TokenIssuanceService, bcrypt_rounds: int = 12
    ) -> None:
        self.store = store
        self.tokens = tokens
        self.bcrypt_rounds = bcrypt_rounds

    async def register(
        self,
        request: Request | None,
        email: str,
        password: str,
        display_name: str | None = None,
    ) -> str:
        """
        Create a password user and return its first API token.

        Raises:
            AlreadyRegistered: If the email is already in use
        """
        if await self.store.find_user(UserFilter.by_email(email)) is not None:
            raise AlreadyRegistered("Email already registered")

        password_hash = await run_in_threadpool(hash_password, password, self.bcrypt_rounds)
        user = User(email=email, password_hash=password_hash, display_name=display_name)

        try:
            user = await self.store.insert_user(user)
        except DuplicateRecordError as e:
            raise AlreadyRegistered("Email already registered") from e

        logger.info(f"Created password user: {user.email}", extra={"user_id": str(user.id)})
        token = await self.tokens.issue_for_new_user(request, user)
        return token.value

    async def login(self, request: Request | None, email: str, password: str) -> str:
        """
        Check credentials and return the user's current API token.

        A user without any token (e.g. registration was interrupted before the
        token was written) gets a new one.

        Raises:
            Unauthorized: Unknown email, wrong password, or disabled account
        """
        user = await self.store.find_user(UserFilter.by_email(email))

        if (
            user is None
            or not user.password_hash
            or not await run_in_threadpool(verify_password, password, user.password_hash)
        ):
            raise Unauthorized("Incorrect email or password")

        if not is_active(user):
            raise Unauthorized("User account is disabled")

        try:
            return await self.tokens.find_active_token(UserFilter.by_id(user.id))
        except Unauthorized:
            logger.warning(
                f"User {user.id} has no API token, issuing one",
                extra={"user_id": str(user.id)},
            )
            token = await self.tokens.issue_for_new_user(request, user)
            return token.value
