"""Supabase client singleton for the billing tables."""

from functools import lru_cache
from typing import Any

from supabase import Client, create_client

from src.core.config import get_settings

# Probed by the readiness check
HEALTH_CHECK_TABLE = "orders"


@lru_cache
def get_supabase_client() -> Client:
    """Return the process-wide Supabase client.

    Built with the secret key, so PostgREST row level security is bypassed.
    Only this service writes the billing tables.
    """
    settings = get_settings()
    return create_client(settings.supabase_url, settings.supabase_secret_key)


async def check_database_connection() -> dict[str, Any]:
    """Probe the orders table with a one-row select.

    Returns:
        dict: ``{"healthy": True}`` or ``{"healthy": False, "error": ...}``.
    """
    try:
        get_supabase_client().table(HEALTH_CHECK_TABLE).select("order_id").limit(1).execute()
    except Exception as e:
        return {"healthy": False, "error": str(e)}
    return {"healthy": True}
