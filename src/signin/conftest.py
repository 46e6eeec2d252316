"""Pytest configuration and shared fixtures."""

import pytest
from fastapi.testclient import TestClient

from src.signin.main import app
from src.signin.services.database.models import Token, User, UserFilter
from src.signin.services.database.store import DuplicateRecordError


class InMemoryIdentityStore:
    """IdentityStore keeping users and tokens in lists, with the table's unique constraints."""

    def __init__(self) -> None:
        self.users: list[User] = []
        self.tokens: list[Token] = []
        self.find_user_calls = 0

    async def find_user(self, user_filter: UserFilter) -> User | None:
        self.find_user_calls += 1
        return next((user for user in self.users if user_filter.matches(user)), None)

    async def insert_user(self, user: User) -> User:
        for existing in self.users:
            for field in ("email", "apple_subject", "google_subject"):
                value = getattr(user, field)
                if value is not None and getattr(existing, field) == value:
                    raise DuplicateRecordError(f"duplicate key value violates users_{field}_key")
        self.users.append(user)
        return user

    async def insert_token(self, token: Token) -> Token:
        if any(existing.value == token.value for existing in self.tokens):
            raise DuplicateRecordError("duplicate key value violates api_tokens_value_key")
        self.tokens.append(token)
        return token

    async def find_latest_token(self, user_filter: UserFilter) -> Token | None:
        owners = {user.id for user in self.users if user.active and user_filter.matches(user)}
        candidates = [token for token in self.tokens if token.user_id in owners]
        return max(candidates, key=lambda token: token.issued_at, default=None)

    async def find_token_owner(self, value: str) -> User | None:
        token = next((token for token in self.tokens if token.value == value), None)
        if token is None:
            return None
        return next((user for user in self.users if user.id == token.user_id), None)


@pytest.fixture
def client() -> TestClient:
    """
    Provide FastAPI test client for API testing.

    Returns:
        TestClient instance for making API requests

    Example:
        >>> def test_health(client):
        >>>     response = client.get("/health")
        >>>     assert response.status_code == 200
    """
    return TestClient(app)


@pytest.fixture
def memory_store() -> InMemoryIdentityStore:
    """Empty in-memory identity store."""
    return InMemoryIdentityStore()
