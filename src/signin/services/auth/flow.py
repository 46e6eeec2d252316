"""Entry points of the third-party sign-in flow."""

import logging
from typing import Any

from fastapi import Request

from src.signin.services.auth.models import Vendor
from src.signin.services.auth.provisioning import UserProvisioningService
from src.signin.services.auth.tokens import TokenIssuanceService
from src.signin.services.database.models import UserFilter

logger = logging.getLogger(__name__)


class ThirdPartyAuthService:
    """Registers vendor identities and hands out their API tokens."""

    def __init__(
        self, provisioning: UserProvisioningService, tokens: TokenIssuanceService
    ) -> None:
        self.provisioning = provisioning
        self.tokens = tokens

    async def create_user_and_token(
        self,
        request: Request,
        email: str | None,
        vendor: Vendor,
        subject: str,
        payload: Any,
    ) -> str:
        """
        Provision a user for the identity and issue its first API token.

        User and token are written separately. If token issuance fails the
        user stays without a token; the failure is logged with the user id
        and re-raised.

        Returns:
            The new bearer token value
        """
        user, _ = await self.provisioning.provision(request, email, vendor, subject, payload)

        try:
            token = await self.tokens.issue_for_new_user(request, user)
        except Exception:
            logger.error(
                f"User {user.id} was created without an API token",
                exc_info=True,
                extra={"error_type": "orphan_user", "user_id": str(user.id)},
            )
            raise

        return token.value

    async def api_token_for_user(self, user_filter: UserFilter) -> str:
        """Return the token an already registered user should use."""
        return await self.tokens.find_active_token(user_filter)
