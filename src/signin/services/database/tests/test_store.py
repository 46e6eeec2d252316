"""Tests for the Supabase-backed identity store."""

from datetime import datetime, timezone
from unittest.mock import MagicMock
from uuid import uuid4

import pytest
from postgrest.exceptions import APIError

from src.signin.services.database.models import Token, User, UserColumn, UserFilter
from src.signin.services.database.store import DuplicateRecordError, SupabaseIdentityStore


@pytest.fixture
def db() -> MagicMock:
    """Mock query builder."""
    return MagicMock()


@pytest.fixture
def store(db: MagicMock) -> SupabaseIdentityStore:
    return SupabaseIdentityStore(db=db, users_table="users", tokens_table="api_tokens")


def _user_row(**overrides) -> dict:
    row = {
        "id": str(uuid4()),
        "email": "a@x.com",
        "apple_subject": "u1",
        "google_subject": None,
        "active": True,
        "password_hash": None,
        "display_name": None,
        "created_at": datetime.now(timezone.utc).isoformat(),
    }
    row.update(overrides)
    return row


@pytest.mark.asyncio
class TestSupabaseIdentityStore:
    """Tests for SupabaseIdentityStore."""

    async def test_find_user_by_vendor_subject(self, store, db):
        row = _user_row()
        db.get_by_field.return_value = row

        user = await store.find_user(UserFilter(column=UserColumn.APPLE_SUBJECT, value="u1"))

        assert user is not None
        assert str(user.id) == row["id"]
        db.get_by_field.assert_called_once_with("users", "apple_subject", "u1")

    async def test_find_user_not_found(self, store, db):
        db.get_by_field.return_value = None

        assert await store.find_user(UserFilter.by_email("nobody@x.com")) is None

    async def test_insert_user_returns_stored_row(self, store, db):
        user = User(email="a@x.com", google_subject="g-1")
        db.insert_record.return_value = _user_row(
            id=str(user.id), apple_subject=None, google_subject="g-1"
        )

        stored = await store.insert_user(user)

        assert stored.id == user.id
        table, data = db.insert_record.call_args.args
        assert table == "users"
        assert data["google_subject"] == "g-1"
        assert data["id"] == str(user.id)

    async def test_unique_violation_becomes_duplicate_error(self, store, db):
        db.insert_record.side_effect = APIError(
            {
                "message": 'duplicate key value violates unique constraint "users_email_key"',
                "code": "23505",
                "hint": None,
                "details": "Key (email)=(a@x.com) already exists.",
            }
        )

        with pytest.raises(DuplicateRecordError):
            await store.insert_user(User(email="a@x.com"))

    async def test_other_api_errors_propagate(self, store, db):
        db.insert_record.side_effect = APIError(
            {"message": "permission denied", "code": "42501", "hint": None, "details": None}
        )

        with pytest.raises(APIError):
            await store.insert_token(Token(value="t", user_id=uuid4()))

    async def test_find_latest_token_filters_active_owner(self, store, db):
        user_id = uuid4()
        db.get_first_joined.return_value = {
            "id": str(uuid4()),
            "value": "t",
            "user_id": str(user_id),
            "issued_at": datetime.now(timezone.utc).isoformat(),
        }

        token = await store.find_latest_token(UserFilter.by_email("a@x.com"))

        assert token is not None
        assert token.user_id == user_id
        db.get_first_joined.assert_called_once_with(
            "api_tokens", "users", {"email": "a@x.com", "active": True}, "issued_at"
        )

    async def test_find_latest_token_none(self, store, db):
        db.get_first_joined.return_value = None

        assert await store.find_latest_token(UserFilter.by_email("a@x.com")) is None

    async def test_find_token_owner(self, store, db):
        row = _user_row()
        db.get_by_field.return_value = {"user_id": row["id"], "owner": row}

        owner = await store.find_token_owner("t")

        assert owner is not None
        assert owner.email == "a@x.com"
        db.get_by_field.assert_called_once_with(
            "api_tokens", "value", "t", "user_id, owner:users(*)"
        )

    async def test_find_token_owner_unknown_token(self, store, db):
        db.get_by_field.return_value = None

        assert await store.find_token_owner("forged") is None
