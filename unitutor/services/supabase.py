import logging
import os
from functools import lru_cache

from supabase import Client, create_client

logger = logging.getLogger(__name__)


class SupabaseConfigError(RuntimeError):
    pass


def new_supabase_client() -> Client:
    supabase_url = os.getenv("SUPABASE_URL")
    supabase_key = os.getenv("SUPABASE_KEY")

    if not supabase_url or not supabase_key:
        logger.error("Supabase URL or Key not found in environment variables")
        raise SupabaseConfigError("Missing Supabase configuration")

    return create_client(supabase_url, supabase_key)


@lru_cache(maxsize=1)
def get_public_client() -> Client:
    """Shared anon client for reads RLS exposes to everyone (directory, availability)."""
    logger.info("Creating shared Supabase client")
    return new_supabase_client()
