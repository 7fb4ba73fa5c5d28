"""Supabase database connection management."""

from functools import lru_cache

from supabase import Client, create_client

from src.signin.config import settings


@lru_cache(maxsize=1)
def get_supabase_admin_client() -> Client:
    """
    Get Supabase admin client with service role key (singleton pattern).

    Account, link and session tables are only written by this service, which
    performs its own authentication, so the service role bypasses RLS.

    Returns:
        Configured Supabase client with service role key

    Example:
        >>> client = get_supabase_admin_client()
        >>> response = client.table("accounts").select("*").eq("username", "alice").execute()
    """
    return create_client(settings.supabase_url, settings.supabase_service_role_key)
