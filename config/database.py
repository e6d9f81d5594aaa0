"""
Database connection management.

Provides the Supabase client singleton used by every service.
Import routes write to the canonical catalog, so the service role key
is preferred when it is configured.
"""

from supabase import create_client, Client
from functools import lru_cache
import structlog

from config.settings import settings
from exceptions import DatabaseConnectionError

logger = structlog.get_logger(__name__)

# Postgres SQLSTATE for unique_violation, surfaced by PostgREST as error.code
UNIQUE_VIOLATION = "23505"


@lru_cache()
def get_supabase_client() -> Client:
    """
    Get cached Supabase client instance.

    Uses lru_cache to ensure only one client is created.
    Call get_supabase_client.cache_clear() to reconnect.

    Returns:
        Client: Supabase client

    Raises:
        DatabaseConnectionError: If connection fails
    """
    try:
        logger.info(
            "connecting_to_supabase",
            url=settings.supabase_url[:30] + "...",  # Log partial URL only
            admin=settings.admin_configured
        )

        client = create_client(
            settings.supabase_url,
            settings.supabase_service_key or settings.supabase_key
        )

        client.table("core_brands").select("brand_id").limit(1).execute()

        logger.info(
            "supabase_connected",
            status="success"
        )

        return client

    except Exception as e:
        logger.error(
            "supabase_connection_failed",
            error=str(e),
            error_type=type(e).__name__
        )
        raise DatabaseConnectionError(f"Failed to connect to Supabase: {e}") from e


# ===================
# HELPER FUNCTIONS
# ===================

def is_unique_violation(error: Exception) -> bool:
    """
    True if a store error is a duplicate-key failure.

    PostgREST's APIError exposes the Postgres SQLSTATE as `code`.
    """
    return str(getattr(error, "code", "") or "") == UNIQUE_VIOLATION


def check_connection() -> dict:
    """
    Check database connection health.

    Returns:
        dict: Connection status with catalog sizes
    """
    try:
        client = get_supabase_client()

        brands = client.table("core_brands").select("brand_id", count="exact").limit(1).execute()
        suppliers = client.table("core_suppliers").select("supplier_id", count="exact").limit(1).execute()

        return {
            "status": "healthy",
            "brands_count": brands.count,
            "suppliers_count": suppliers.count
        }

    except Exception as e:
        return {
            "status": "unhealthy",
            "error": str(e)
        }


def reset_connection():
    """
    Reset the cached database connection.

    Call this if connection becomes stale or after config changes.
    """
    get_supabase_client.cache_clear()
    logger.info("database_connection_reset")
