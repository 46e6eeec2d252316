"""Creation of local users for verified third-party identities."""

import logging
from typing import Any

from fastapi import Request

from src.signin.services.auth.exceptions import (
    AlreadyRegistered,
    MissingEmail,
    RegistrationRejected,
)
from src.signin.services.auth.hooks import Provisionable
from src.signin.services.auth.models import Vendor
from src.signin.services.auth.resolver import subject_fields, subject_filter, subject_for
from src.signin.services.database.models import User
from src.signin.services.database.store import DuplicateRecordError, IdentityStore

logger = logging.getLogger(__name__)


class UserProvisioningService:
    """
    Registers a new user for a vendor subject.

    This is registration only: a subject that is already linked is rejected
    and must go through the token lookup path instead.
    """

    def __init__(self, store: IdentityStore, registrar: Provisionable) -> None:
        self.store = store
        self.registrar = registrar

    async def provision(
        self,
        request: Request,
        email: str | None,
        vendor: Vendor,
        subject: str,
        payload: Any,
    ) -> tuple[User, bool]:
        """
        Create and persist the user for ``(vendor, subject)``.

        Args:
            request: Current request, handed to the registration hook
            email: Email claim of the identity token
            vendor: Vendor that verified the identity
            subject: Vendor subject of the identity
            payload: Decoded application registration payload

        Returns:
            The persisted user and True (the user was created)

        Raises:
            MissingEmail: If ``email`` is None
            AlreadyRegistered: If the subject or email is already linked to a user
            RegistrationRejected: If the hook returns a user not linked to the subject
        """
        if email is None:
            raise MissingEmail()

        user_filter = subject_filter(vendor, subject)
        vendor = Vendor(vendor)

        if await self.store.find_user(user_filter) is not None:
            logger.info(
                f"{vendor.value} subject already registered",
                extra={"vendor": vendor.value},
            )
            raise AlreadyRegistered()

        apple_subject, google_subject = subject_fields(vendor, subject)
        user = await self.registrar.register_user(
            request, payload, email, apple_subject, google_subject
        )

        if subject_for(user, vendor) != subject:
            raise RegistrationRejected(
                f"Registration hook did not link the {vendor.value} subject"
            )

        try:
            saved = await self.store.insert_user(user)
        except DuplicateRecordError as e:
            # Lost a race with a concurrent registration, or the email is taken.
            raise AlreadyRegistered() from e

        logger.info(
            f"Provisioned user {saved.id} via {vendor.value}",
            extra={"user_id": str(saved.id), "vendor": vendor.value},
        )
        return saved, True
