# alignment/core/supabase_client.py

from functools import lru_cache

from supabase import create_client, Client

from alignment.core.config import supabase_credentials


def create_service_client() -> Client:
    """
    New client with the Service Role key (workers and cron need to see every
    user's rows, RLS would hide them).
    """
    url, key = supabase_credentials()
    return create_client(url, key)


@lru_cache(maxsize=1)
def get_service_supabase() -> Client:
    """Process-wide service client for the API."""
    return create_service_client()
