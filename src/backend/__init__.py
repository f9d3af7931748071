"""Hosted Supabase backend access."""

from .client import QueryResult, SupabaseClient, TableQuery, encode_value
from .errors import ConnectivityError, MissingTableError

__all__ = [
    "SupabaseClient",
    "TableQuery",
    "QueryResult",
    "encode_value",
    "ConnectivityError",
    "MissingTableError",
]
