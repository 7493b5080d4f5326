"""
Supabase client for the needs hub.

Services take the shared client from get_supabase_client(). The seed script
prefers the service-role client so it can write past row level security.
"""

from supabase import create_client, Client
from functools import lru_cache
from typing import Optional
import structlog

from config.settings import settings
from exceptions import ExternalServiceError

logger = structlog.get_logger(__name__)

# Tables counted by the health check
HEALTH_TABLES = ("needs", "users")


@lru_cache()
def get_supabase_client() -> Client:
    """
    Shared Supabase client, created on first use.

    A one-row read from users confirms the credentials before the client is
    cached; a failed attempt is not cached, so the next call retries.

    Raises:
        ExternalServiceError: If Supabase cannot be reached (503)
    """
    logger.info("connecting_to_supabase", url=settings.supabase_url[:30] + "...")

    try:
        client = create_client(settings.supabase_url, settings.supabase_key)
        client.table("users").select("id").limit(1).execute()
    except Exception as e:
        logger.error(
            "supabase_connection_failed",
            error=str(e),
            error_type=type(e).__name__
        )
        raise ExternalServiceError("supabase", f"Failed to connect to Supabase: {e}") from e

    logger.info("supabase_connected")
    return client


def get_admin_client() -> Optional[Client]:
    """Service-role client for seeding, or None when SUPABASE_SERVICE_KEY is unset."""
    if not settings.supabase_service_key:
        logger.warning("admin_client_not_configured")
        return None

    try:
        return create_client(settings.supabase_url, settings.supabase_service_key)
    except Exception as e:
        logger.error("admin_client_failed", error=str(e))
        return None


def check_connection() -> dict:
    """
    Health summary for /health and startup.

    Returns:
        {"status": "healthy", "needs_count": .., "users_count": ..} or
        {"status": "unhealthy", "error": ..}
    """
    try:
        client = get_supabase_client()
        counts = {
            f"{table}_count": client.table(table).select("id", count="exact").execute().count
            for table in HEALTH_TABLES
        }
    except Exception as e:
        logger.warning("health_check_failed", error=str(e))
        return {"status": "unhealthy", "error": str(e)}

    return {"status": "healthy", **counts}
