"""Issuance and lookup of API bearer tokens."""

import logging

from fastapi import Request

from src.signin.services.auth.exceptions import Unauthorized
from src.signin.services.auth.hooks import HasActiveFlag, TokenIssuer
from src.signin.services.database.models import Token, User, UserFilter
from src.signin.services.database.store import IdentityStore

logger = logging.getLogger(__name__)


def is_active(user: HasActiveFlag) -> bool:
    return user.active is True


class TokenIssuanceService:
    """
    Creates API tokens for users and finds the token a user should present.

    When a user holds several tokens, the most recently issued one is used.

    Example:
        >>> tokens = TokenIssuanceService(store, OpaqueTokenIssuer())
        >>> token = await tokens.issue_for_new_user(request, user)
        >>> await tokens.find_active_token(UserFilter.by_email("a@x.com"))
    """

    def __init__(self, store: IdentityStore, token_issuer: TokenIssuer) -> None:
        self.store = store
        self.token_issuer = token_issuer

    async def issue_for_new_user(self, request: Request | None, user: User) -> Token:
        """
        Generate a token for ``user`` through the token hook and persist it.

        Safe to call again for the same user id: every call adds one token.

        Raises:
            ValueError: If the hook returns a token owned by another user
        """
        token = await self.token_issuer.generate_token(request, user)
        if token.user_id != user.id:
            raise ValueError(f"Token hook issued a token for {token.user_id}, expected {user.id}")

        saved = await self.store.insert_token(token)
        logger.info(f"Issued API token for user {user.id}", extra={"user_id": str(user.id)})
        return saved

    async def find_active_token(self, user_filter: UserFilter) -> str:
        """
        Return the newest token value of the active user matching ``user_filter``.

        Raises:
            Unauthorized: If no active user with a token matches
        """
        token = await self.store.find_latest_token(user_filter)
        if token is None:
            logger.info(
                "No active token for user lookup",
                extra={"column": user_filter.column.value},
            )
            raise Unauthorized()
        return token.value

    async def user_for_token(self, value: str) -> User:
        """
        Resolve a presented bearer token to its owner.

        Raises:
            Unauthorized: If the token is unknown or its owner is inactive
        """
        user = await self.store.find_token_owner(value)
        if user is None or not is_active(user):
            raise Unauthorized("Invalid authentication credentials")
        return user
