"""Database connection and query helpers."""

from src.signin.services.database.connection import get_supabase_admin_client
from src.signin.services.database.utils import SupabaseQueryBuilder, get_query_builder

__all__ = [
    "get_supabase_admin_client",
    "SupabaseQueryBuilder",
    "get_query_builder",
]
