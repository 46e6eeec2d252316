"""Persistence of users and API tokens."""

import logging
from typing import Any, Protocol

from postgrest.exceptions import APIError
from starlette.concurrency import run_in_threadpool

from src.signin.config import settings
from src.signin.services.database.models import Token, User, UserFilter
from src.signin.services.database.utils import SupabaseQueryBuilder, get_query_builder

logger = logging.getLogger(__name__)

# PostgreSQL unique_violation
UNIQUE_VIOLATION = "23505"


class DuplicateRecordError(Exception):
    """Raised when an insert violates a unique constraint."""

    pass


class IdentityStore(Protocol):
    """Storage operations the sign-in flows depend on."""

    async def find_user(self, user_filter: UserFilter) -> User | None: ...

    async def insert_user(self, user: User) -> User: ...

    async def insert_token(self, token: Token) -> Token: ...

    async def find_latest_token(self, user_filter: UserFilter) -> Token | None:
        """Newest token of the active user matching ``user_filter``."""
        ...

    async def find_token_owner(self, value: str) -> User | None: ...


class SupabaseIdentityStore:
    """
    IdentityStore backed by Supabase tables.

    The synchronous Supabase client runs in the threadpool so that request
    tasks do not block the event loop. Uniqueness of vendor subjects, emails
    and token values is enforced by the table constraints; violations surface
    as ``DuplicateRecordError``.

    Example:
        >>> store = SupabaseIdentityStore()
        >>> user = await store.find_user(UserFilter.by_email("a@x.com"))
    """

    def __init__(
        self,
        db: SupabaseQueryBuilder | None = None,
        users_table: str | None = None,
        tokens_table: str | None = None,
    ) -> None:
        self._db = db
        self.users_table = users_table or settings.users_table
        self.tokens_table = tokens_table or settings.tokens_table

    @property
    def db(self) -> SupabaseQueryBuilder:
        if self._db is None:
            self._db = get_query_builder()
        return self._db

    async def find_user(self, user_filter: UserFilter) -> User | None:
        row = await run_in_threadpool(
            self.db.get_by_field, self.users_table, user_filter.column.value, user_filter.value
        )
        return User.model_validate(row) if row else None

    async def insert_user(self, user: User) -> User:
        row = await run_in_threadpool(
            self._insert, self.users_table, user.model_dump(mode="json")
        )
        return User.model_validate(row) if row else user

    async def insert_token(self, token: Token) -> Token:
        row = await run_in_threadpool(
            self._insert, self.tokens_table, token.model_dump(mode="json")
        )
        return Token.model_validate(row) if row else token

    async def find_latest_token(self, user_filter: UserFilter) -> Token | None:
        row = await run_in_threadpool(
            self.db.get_first_joined,
            self.tokens_table,
            self.users_table,
            {user_filter.column.value: user_filter.value, "active": True},
            "issued_at",
        )
        return Token.model_validate(row) if row else None

    async def find_token_owner(self, value: str) -> User | None:
        row = await run_in_threadpool(
            self.db.get_by_field,
            self.tokens_table,
            "value",
            value,
            f"user_id, owner:{self.users_table}(*)",
        )
        if not row or not row.get("owner"):
            return None
        return User.model_validate(row["owner"])

    def _insert(self, table: str, data: dict[str, Any]) -> dict[str, Any] | None:
        try:
            return self.db.insert_record(table, data)
        except APIError as e:
            if e.code == UNIQUE_VIOLATION:
                logger.info(
                    f"Unique constraint violated on {table}",
                    extra={"table": table, "details": e.details},
                )
                raise DuplicateRecordError(e.message or f"Duplicate record in {table}") from e
            logger.error(f"Failed to insert record in {table}: {e}")
            raise
