"""
Canned dashboard queries over the inventory backend.

These skip the language model entirely: each one is a fixed backend call
plus local post-processing for what the row store cannot express
(`quantity < threshold`, supplier roll-ups).
"""

import logging
from typing import Any, Dict, List, Optional

from inventory_insight.core.errors import BackendError
from inventory_insight.core.services.inventory_backend import ColumnFilter, InventoryBackend, RowQuery
from inventory_insight.inventory.schema import to_number, to_text
from inventory_insight.nl_query.aggregator import aggregate, compare_columns

logger = logging.getLogger(__name__)

STATIC_SUGGESTIONS = [
    "Show me my inventory summary",
    "What items are running low?",
    "Which products sell the best?",
]


def _is_true(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in ("true", "t", "1", "yes")
    return bool(value)


class InventoryQueries:

    def __init__(self, backend: InventoryBackend):
        self.backend = backend

    def low_stock_items(self, limit: int = 10) -> List[Dict[str, Any]]:
        rows = self.backend.fetch(RowQuery(columns=["item_name", "quantity", "threshold", "brand", "category"]))
        low_stock = aggregate(
            rows,
            predicate=compare_columns("quantity", "lt", "threshold"),
            sort_by="quantity",
            limit=limit,
        )
        logger.info(f"[INVENTORY] Found {len(low_stock)} low stock items from {len(rows)} total items")
        return low_stock

    def inventory_summary(self) -> Dict[str, Any]:
        rows = self.backend.fetch(RowQuery(columns=["quantity", "threshold", "total_stock_value", "status", "expired"]))
        is_low = compare_columns("quantity", "lt", "threshold")

        summary = {
            "totalItems": len(rows),
            "totalValue": round(sum(to_number(r.get("total_stock_value")) for r in rows), 2),
            "lowStockCount": sum(1 for r in rows if is_low(r)),
            "outOfStockCount": sum(1 for r in rows if r.get("quantity") is not None and to_number(r.get("quantity")) == 0),
            "expiredCount": sum(1 for r in rows if _is_true(r.get("expired"))),
            "activeCount": sum(1 for r in rows if r.get("status") == "active"),
        }
        logger.info(f"[INVENTORY] Summary computed over {len(rows)} items")
        return summary

    def top_selling_items(self, limit: int = 5) -> List[Dict[str, Any]]:
        return self.backend.fetch(RowQuery(
            columns=["item_name", "brand", "sales_velocity", "sold_today", "weekly_sales_volume"],
            order_by="sales_velocity",
            descending=True,
            limit=limit,
        ))

    def expensive_items(self, limit: int = 5) -> List[Dict[str, Any]]:
        return self.backend.fetch(RowQuery(
            columns=["item_name", "brand", "selling_price", "margin_percent", "category"],
            order_by="selling_price",
            descending=True,
            limit=limit,
        ))

    def out_of_stock_items(self, limit: int = 10) -> List[Dict[str, Any]]:
        return self.backend.fetch(RowQuery(
            columns=["item_name", "brand", "category", "days_out_of_stock"],
            filters=[ColumnFilter("quantity", "eq", 0)],
            order_by="days_out_of_stock",
            descending=True,
            limit=limit,
        ))

    def items_by_category(self, category: Optional[str] = None, limit: int = 10) -> List[Dict[str, Any]]:
        filters = [ColumnFilter("category", "eq", category)] if category else []
        return self.backend.fetch(RowQuery(
            columns=["item_name", "brand", "category", "quantity", "selling_price"],
            filters=filters,
            order_by="item_name",
            limit=limit,
        ))

    def suppliers(self) -> List[Dict[str, Any]]:
        rows = self.backend.fetch(RowQuery(
            columns=["supplier_name", "supplier_rating", "supplier_contact"],
            filters=[ColumnFilter("supplier_name", "not_null")],
        ))

        grouped: Dict[str, Dict[str, Any]] = {}
        for row in rows:
            name = to_text(row.get("supplier_name"))
            entry = grouped.setdefault(name, {"name": name, "contact": row.get("supplier_contact"), "ratings": []})
            if row.get("supplier_rating"):
                entry["ratings"].append(to_number(row.get("supplier_rating")))

        return [
            {
                "name": entry["name"],
                "contact": entry["contact"],
                "avgRating": f"{sum(entry['ratings']) / len(entry['ratings']):.1f}" if entry["ratings"] else "N/A",
            }
            for entry in grouped.values()
        ]

    def suggestions(self) -> List[str]:
        try:
            summary = self.inventory_summary()
        except BackendError as e:
            logger.warning(f"[INVENTORY] ⚠ Using static suggestions: {e}")
            return list(STATIC_SUGGESTIONS)

        suggestions = []
        if summary["lowStockCount"] > 0:
            suggestions.append(f"You have {summary['lowStockCount']} items running low - want to see which ones?")
        if summary["outOfStockCount"] > 0:
            suggestions.append(f"{summary['outOfStockCount']} items are completely out of stock")
        suggestions.append("View your top selling products")
        suggestions.append("Show me my most expensive inventory")
        suggestions.append("What's my total inventory value?")
        return suggestions
