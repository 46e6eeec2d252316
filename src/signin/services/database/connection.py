"""Supabase database connection management."""

from functools import lru_cache

from supabase import Client, create_client

from src.signin.config import settings


@lru_cache(maxsize=1)
def get_supabase_client() -> Client:
    """
    Get Supabase client instance with anon key (singleton pattern).

    Use this for operations that should respect RLS policies.

    Returns:
        Configured Supabase client with anon key
    """
    return create_client(settings.supabase_url, settings.supabase_anon_key)


@lru_cache(maxsize=1)
def get_supabase_admin_client() -> Client:
    """
    Get Supabase admin client with service role key (singleton pattern).

    The users and api_tokens tables are only reachable server-side, so the
    identity store uses this client.

    ⚠️ WARNING: This client has full database access. Only use for trusted server-side operations.

    Returns:
        Configured Supabase client with service role key (bypasses RLS)
    """
    return create_client(settings.supabase_url, settings.supabase_service_role_key)
