"""Database connection, models and identity storage."""

from src.signin.services.database.connection import get_supabase_client
from src.signin.services.database.store import (
    DuplicateRecordError,
    IdentityStore,
    SupabaseIdentityStore,
)
from src.signin.services.database.utils import SupabaseQueryBuilder, get_query_builder

__all__ = [
    "get_supabase_client",
    "SupabaseQueryBuilder",
    "get_query_builder",
    "IdentityStore",
    "SupabaseIdentityStore",
    "DuplicateRecordError",
]
