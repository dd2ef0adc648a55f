"""
Database connection management.

Provides the Supabase client singleton. Orders and their stage commands
live behind Supabase RPCs; calendar settings live in the settings table.
"""

from supabase import create_client, Client
from functools import lru_cache
import structlog

from config.settings import settings

logger = structlog.get_logger(__name__)


class ClientConnectionError(Exception):
    """Supabase client could not be created."""
    pass


@lru_cache()
def get_supabase_client() -> Client:
    """
    Get cached Supabase client instance.

    Uses lru_cache to ensure only one client is created.
    Call get_supabase_client.cache_clear() to reconnect.

    Returns:
        Client: Supabase client

    Raises:
        ClientConnectionError: If the client cannot be created
    """
    try:
        logger.info(
            "connecting_to_supabase",
            url=settings.supabase_url[:30] + "..."  # Log partial URL only
        )

        client = create_client(
            settings.supabase_url,
            settings.supabase_key
        )

        logger.info("supabase_connected", status="success")

        return client

    except Exception as e:
        logger.error(
            "supabase_connection_failed",
            error=str(e),
            error_type=type(e).__name__
        )
        raise ClientConnectionError(f"Failed to connect to Supabase: {e}") from e


# ===================
# HELPER FUNCTIONS
# ===================

def check_connection() -> dict:
    """
    Check database connection health.

    Returns:
        dict: Connection status with details
    """
    try:
        client = get_supabase_client()

        settings_count = client.table("settings").select("key", count="exact").execute()

        return {
            "status": "healthy",
            "settings_count": settings_count.count
        }

    except Exception as e:
        return {
            "status": "unhealthy",
            "error": str(e)
        }
