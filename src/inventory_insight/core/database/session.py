import logging
from sqlalchemy import create_engine, MetaData
from sqlalchemy.engine import Engine

from inventory_insight.core.config import get_settings

logger = logging.getLogger(__name__)

_engine = None


def mask_database_url(url: str) -> str:
    masked_url = url
    if "@" in url:
        prefix, _, suffix = url.partition("@")
        if ":" in prefix:
            main_prefix, _, _ = prefix.rpartition(":")
            masked_url = f"{main_prefix}:****@{suffix}"
    return masked_url


def build_engine(database_url: str) -> Engine:
    logger.info(f"DATABASE_URL being used: {mask_database_url(database_url)}")

    if database_url.startswith("sqlite"):
        return create_engine(database_url, connect_args={"check_same_thread": False})

    return create_engine(
        database_url,
        pool_size=10,
        max_overflow=20,
        pool_pre_ping=True,     # Verify connections before use
        pool_recycle=3600,      # Recycle connections after 1 hour
    )


def get_engine() -> Engine:
    global _engine
    if _engine is None:
        _engine = build_engine(get_settings().database_url)
    return _engine


metadata = MetaData()
