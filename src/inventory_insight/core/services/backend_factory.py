import logging
import threading
from typing import Optional

from inventory_insight.core.config import Settings, get_settings
from inventory_insight.core.database.session import get_engine, metadata
from inventory_insight.core.errors import BackendError
from inventory_insight.core.infra.supabase_factory import get_supabase_client
from inventory_insight.core.services.inventory_backend import (
    InventoryBackend, MemoryInventoryBackend, SqlInventoryBackend, SupabaseInventoryBackend,
)
from inventory_insight.inventory.sample_data import generate_sample_inventory
from inventory_insight.inventory.schema import build_inventory_table

logger = logging.getLogger(__name__)

_backend: Optional[InventoryBackend] = None
_backend_lock = threading.Lock()


def create_inventory_backend(settings: Settings) -> InventoryBackend:
    kind = settings.inventory_backend

    if kind == "supabase":
        client = get_supabase_client()
        if client is None:
            raise BackendError("INVENTORY_BACKEND=supabase but SUPABASE_URL / SUPABASE_KEY are not set")
        logger.info(f"[BACKEND] ✓ Using Supabase table '{settings.inventory_table}'")
        return SupabaseInventoryBackend(client, table_name=settings.inventory_table)

    if kind == "sql":
        table = build_inventory_table(metadata, settings.inventory_table)
        logger.info(f"[BACKEND] ✓ Using SQL table '{settings.inventory_table}'")
        return SqlInventoryBackend(get_engine(), table)

    if kind != "memory":
        logger.warning(f"[BACKEND] ⚠ Unknown INVENTORY_BACKEND '{kind}', falling back to sample data")

    rows = generate_sample_inventory(settings.sample_rows)
    logger.info(f"[BACKEND] 📊 Using {len(rows)} in-memory sample rows")
    return MemoryInventoryBackend(rows, table_name=settings.inventory_table)


def get_inventory_backend() -> InventoryBackend:
    global _backend
    if _backend is not None:
        return _backend
    with _backend_lock:
        if _backend is None:
            _backend = create_inventory_backend(get_settings())
        return _backend
