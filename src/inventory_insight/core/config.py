import logging
import os
from dataclasses import dataclass
from typing import Optional
from dotenv import load_dotenv

load_dotenv()

logger = logging.getLogger(__name__)


def _int_env(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError:
        logger.warning(f"[CONFIG] ⚠ {name}={raw!r} is not an integer, using {default}")
        return default


@dataclass
class Settings:
    gemini_api_key: Optional[str] = None
    gemini_model: str = "gemini-2.5-flash-lite"

    # supabase | sql | memory
    inventory_backend: str = "memory"
    inventory_table: str = "Inventory"
    supabase_url: Optional[str] = None
    supabase_key: Optional[str] = None
    supabase_service_role_key: Optional[str] = None
    database_url: str = "sqlite:///./inventory.db"
    sample_rows: int = 370

    chart_sample_size: int = 50
    insight_row_limit: int = 100
    voice_intent_mode: str = "keywords"
    log_level: str = "INFO"

    @classmethod
    def from_env(cls) -> "Settings":
        return cls(
            gemini_api_key=os.getenv("GEMINI_API_KEY"),
            gemini_model=os.getenv("GEMINI_MODEL", "gemini-2.5-flash-lite"),
            inventory_backend=os.getenv("INVENTORY_BACKEND", "memory").lower(),
            inventory_table=os.getenv("INVENTORY_TABLE", "Inventory"),
            supabase_url=os.getenv("SUPABASE_URL"),
            supabase_key=os.getenv("SUPABASE_KEY"),
            supabase_service_role_key=os.getenv("SUPABASE_SERVICE_ROLE_KEY"),
            database_url=os.getenv("DATABASE_URL", "sqlite:///./inventory.db"),
            sample_rows=_int_env("SAMPLE_ROWS", 370),
            chart_sample_size=_int_env("CHART_SAMPLE_SIZE", 50),
            insight_row_limit=_int_env("INSIGHT_ROW_LIMIT", 100),
            voice_intent_mode=os.getenv("VOICE_INTENT_MODE", "keywords").lower(),
            log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
        )

    @property
    def supabase_configured(self) -> bool:
        return bool(self.supabase_url and (self.supabase_service_role_key or self.supabase_key))


_settings: Optional[Settings] = None


def get_settings() -> Settings:
    global _settings
    if _settings is None:
        _settings = Settings.from_env()
    return _settings


def reset_settings():
    """Drop the cached settings so the next call re-reads the environment."""
    global _settings
    _settings = None
