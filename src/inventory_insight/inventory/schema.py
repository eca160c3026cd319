"""
Static description of the single queryable entity, the Inventory table.

The column list is the one source of truth for: the schema text sent to the
language model, the column-name checks in the SQL pattern matcher, the SQL
table definition used by the SQLAlchemy backend and the sample-data
generator.

Rows are plain dicts. No field is guaranteed present, so readers go through
`to_number` / `to_text` instead of indexing.
"""

from dataclasses import dataclass
from typing import Any, List, Optional, Tuple

from sqlalchemy import Boolean, Column, Float, Integer, MetaData, String, Table


@dataclass(frozen=True)
class ColumnSpec:
    name: str
    description: str
    kind: str  # int | float | str | bool | date


INVENTORY_TABLE = "Inventory"

INVENTORY_COLUMNS: Tuple[ColumnSpec, ...] = (
    # identity
    ColumnSpec("item_id", "Unique identifier for each item", "int"),
    ColumnSpec("sku", "Stock Keeping Unit code", "str"),
    ColumnSpec("item_name", "Name of the product", "str"),
    ColumnSpec("brand", "Brand name", "str"),
    ColumnSpec("description", "Product description", "str"),
    ColumnSpec("barcode", "Product barcode", "str"),
    # classification
    ColumnSpec("category", "Main product category", "str"),
    ColumnSpec("subcategory", "Product subcategory", "str"),
    ColumnSpec("tags", "Product tags for search", "str"),
    ColumnSpec("status", "Item status (active, discontinued, etc.)", "str"),
    # stock
    ColumnSpec("quantity", "Current stock quantity", "int"),
    ColumnSpec("threshold", "Minimum stock level before reorder", "int"),
    ColumnSpec("initial_quantity", "Starting stock quantity", "int"),
    ColumnSpec("sold_today", "Items sold today", "int"),
    ColumnSpec("sales_velocity", "Rate of sales", "float"),
    ColumnSpec("stock_health", "Overall stock condition", "str"),
    ColumnSpec("days_out_of_stock", "Days item has been out of stock", "int"),
    ColumnSpec("stock_turnover_rate", "How quickly stock turns over", "float"),
    ColumnSpec("storage_type", "Type of storage required", "str"),
    ColumnSpec("location_in_store", "Physical location in store", "str"),
    # commercial
    ColumnSpec("unit_cost", "Cost per unit", "float"),
    ColumnSpec("selling_price", "Price sold to customers", "float"),
    ColumnSpec("margin_percent", "Profit margin percentage", "float"),
    ColumnSpec("markup_percent", "Markup percentage", "float"),
    ColumnSpec("potential_revenue", "Potential revenue from current stock", "float"),
    ColumnSpec("total_stock_value", "Total value of stock on hand", "float"),
    ColumnSpec("discount_active", "Whether discount is currently active", "bool"),
    ColumnSpec("discount_percent", "Discount percentage if active", "float"),
    ColumnSpec("loyalty_points", "Points earned per purchase", "int"),
    # supplier
    ColumnSpec("supplier_name", "Name of supplier", "str"),
    ColumnSpec("supplier_contact", "Supplier contact number", "str"),
    ColumnSpec("supplier_email", "Supplier email address", "str"),
    ColumnSpec("supplier_address", "Supplier address", "str"),
    ColumnSpec("supplier_rating", "Rating of supplier", "float"),
    ColumnSpec("restock_lead_days", "Days needed for restocking", "int"),
    ColumnSpec("last_restock_date", "Date of last restock", "date"),
    ColumnSpec("next_expected_restock", "Expected next restock date", "date"),
    ColumnSpec("last_restock_qty", "Quantity of last restock", "int"),
    ColumnSpec("auto_reorder_enabled", "Whether auto-reorder is enabled", "bool"),
    # demand and expiry
    ColumnSpec("predicted_demand_next_7d", "Predicted demand for next 7 days", "int"),
    ColumnSpec("days_until_stockout", "Predicted days until stock runs out", "int"),
    ColumnSpec("expiry_days", "Days until expiry", "int"),
    ColumnSpec("expiry_date", "Expiration date", "date"),
    ColumnSpec("days_until_expiry", "Days until item expires", "int"),
    ColumnSpec("expired", "Whether item is expired", "bool"),
    ColumnSpec("sales_history", "Historical sales data", "str"),
    ColumnSpec("weekly_sales_volume", "Weekly sales volume", "int"),
    ColumnSpec("sales_trend", "Current sales trend", "str"),
    ColumnSpec("country_of_origin", "Country where item originates", "str"),
    ColumnSpec("organic", "Whether item is organic", "bool"),
    ColumnSpec("rating", "Customer rating", "float"),
    # temporal
    ColumnSpec("created_at", "When item was created", "date"),
    ColumnSpec("last_updated", "When item was last updated", "date"),
)

COLUMN_NAMES = frozenset(c.name for c in INVENTORY_COLUMNS)


def is_column(name: Optional[str]) -> bool:
    return bool(name) and name.lower() in COLUMN_NAMES


def describe_schema(table_name: str = INVENTORY_TABLE) -> str:
    lines = [f"Database Table: {table_name}", "", "Columns and their descriptions:"]
    lines.extend(f"- {c.name}: {c.description}" for c in INVENTORY_COLUMNS)
    return "\n".join(lines)


def to_number(value: Any, default: float = 0.0) -> float:
    """Numeric view of a field; anything unparseable becomes `default`."""
    if value is None:
        return default
    if isinstance(value, bool):
        return 1.0 if value else 0.0
    if isinstance(value, (int, float)):
        return float(value)
    try:
        return float(str(value).strip())
    except (TypeError, ValueError):
        return default


def to_text(value: Any, default: str = "") -> str:
    if value is None:
        return default
    return str(value)


_SQL_TYPES = {
    "int": Integer,
    "float": Float,
    "str": String,
    "bool": Boolean,
    # dates travel as ISO strings, the same way the hosted backend returns them
    "date": String,
}


def build_inventory_table(metadata: MetaData, table_name: str = INVENTORY_TABLE) -> Table:
    if table_name in metadata.tables:
        return metadata.tables[table_name]

    columns: List[Column] = []
    for spec in INVENTORY_COLUMNS:
        if spec.name == "item_id":
            columns.append(Column("item_id", Integer, primary_key=True, autoincrement=True))
        else:
            columns.append(Column(spec.name, _SQL_TYPES[spec.kind], nullable=True))
    return Table(table_name, metadata, *columns)
