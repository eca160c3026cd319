"""
Create the Inventory table and fill it with sample rows.

    inventory-insight-seed --rows 370
    inventory-insight-seed --target supabase

The SQL target uses DATABASE_URL; the Supabase target inserts in batches
into INVENTORY_TABLE and expects the table to exist already.
"""

import argparse
import logging
import sys

from sqlalchemy import MetaData, insert
from sqlalchemy.exc import SQLAlchemyError

from inventory_insight.core.config import get_settings
from inventory_insight.core.database.session import build_engine
from inventory_insight.core.infra.supabase_factory import get_supabase_client
from inventory_insight.inventory.sample_data import generate_sample_inventory
from inventory_insight.inventory.schema import build_inventory_table

logger = logging.getLogger(__name__)

BATCH_SIZE = 100


def seed_sql(database_url: str, table_name: str, rows, reset: bool = True) -> int:
    engine = build_engine(database_url)
    metadata = MetaData()
    table = build_inventory_table(metadata, table_name)

    print(f"Creating table '{table_name}'...")
    if reset:
        metadata.drop_all(engine, tables=[table])  # Clean slate
    metadata.create_all(engine, tables=[table])

    print(f"Seeding {len(rows)} items...")
    with engine.begin() as conn:
        for start in range(0, len(rows), BATCH_SIZE):
            conn.execute(insert(table), rows[start:start + BATCH_SIZE])
    return len(rows)


def seed_supabase(table_name: str, rows) -> int:
    client = get_supabase_client()
    if client is None:
        raise RuntimeError("SUPABASE_URL / SUPABASE_KEY are not set")

    print(f"Seeding {len(rows)} items into Supabase table '{table_name}'...")
    for start in range(0, len(rows), BATCH_SIZE):
        # the hosted table assigns its own ids
        batch = [{k: v for k, v in row.items() if k != "item_id"} for row in rows[start:start + BATCH_SIZE]]
        client.table(table_name).insert(batch).execute()
    return len(rows)


def main(argv=None):
    settings = get_settings()
    parser = argparse.ArgumentParser(description="Seed the Inventory table with sample data")
    parser.add_argument("--rows", type=int, default=settings.sample_rows)
    parser.add_argument("--seed", type=int, default=42)
    parser.add_argument("--target", choices=["sql", "supabase"], default="sql")
    parser.add_argument("--database-url", default=settings.database_url)
    parser.add_argument("--table", default=settings.inventory_table)
    parser.add_argument("--keep", action="store_true", help="do not drop an existing SQL table first")
    args = parser.parse_args(argv)

    logging.basicConfig(level=logging.INFO, format='%(asctime)s - %(name)s - %(levelname)s - %(message)s')
    rows = generate_sample_inventory(args.rows, seed=args.seed)

    try:
        if args.target == "supabase":
            count = seed_supabase(args.table, rows)
        else:
            count = seed_sql(args.database_url, args.table, rows, reset=not args.keep)
    except (SQLAlchemyError, RuntimeError) as e:
        print(f"✗ Seeding failed: {e}")
        return 1

    print(f"✓ Seeded {count} items into '{args.table}'")
    return 0


if __name__ == "__main__":
    sys.exit(main())
