import logging
import threading
from typing import Optional

from inventory_insight.core.config import get_settings

logger = logging.getLogger(__name__)

# Global Supabase client cache for connection reuse
_supabase_client = None
_supabase_client_lock = threading.Lock()


class SupabaseClientFactory:
    @staticmethod
    def get_client():
        """
        Returns a cached Supabase client built from environment settings.
        Prefers the service-role key (bypasses row level security) and falls
        back to the anon key. Returns None when Supabase is not configured.
        """
        global _supabase_client

        # Fast path: return cached client
        if _supabase_client is not None:
            return _supabase_client

        with _supabase_client_lock:
            if _supabase_client is not None:
                return _supabase_client

            settings = get_settings()
            if not settings.supabase_configured:
                logger.warning("[SUPABASE] ⚠ SUPABASE_URL / SUPABASE_KEY not set")
                return None

            _supabase_client = SupabaseClientFactory._create_client(
                settings.supabase_url,
                settings.supabase_service_role_key or settings.supabase_key,
            )
            mode = "service role" if settings.supabase_service_role_key else "anonymous"
            logger.info(f"[SUPABASE] ✓ Connected to {settings.supabase_url} ({mode} key)")
            return _supabase_client

    @staticmethod
    def _create_client(url: str, key: str):
        from supabase import create_client

        return create_client(url, key)

    @staticmethod
    def reset_client():
        """Reset the cached client (useful for testing or reconnection)."""
        global _supabase_client
        with _supabase_client_lock:
            _supabase_client = None


def get_supabase_client() -> Optional[object]:
    return SupabaseClientFactory.get_client()
