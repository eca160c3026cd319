import json
import random
from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional

CATEGORIES = ["Electronics", "Clothing", "Food", "Books", "Home & Garden"]
BRANDS = ["Apple", "Samsung", "Nike", "Adidas", "Sony", "Dell", "HP"]
SUPPLIERS = ["TechCorp", "FashionHub", "FoodDist", "BookWorld", "GardenPlus"]
COUNTRIES = ["USA", "China", "Germany", "Japan", "Italy"]


def generate_sample_inventory(count: int = 370, seed: Optional[int] = 42,
                              now: Optional[datetime] = None) -> List[Dict[str, Any]]:
    """
    Realistic-looking inventory rows for local development and demos.

    Deterministic for a given seed so dashboards and tests see stable data.
    """
    rng = random.Random(seed)
    now = now or datetime(2025, 1, 1)
    day = timedelta(days=1)
    items = []

    for i in range(1, count + 1):
        category = rng.choice(CATEGORIES)
        brand = rng.choice(BRANDS)
        supplier = rng.choice(SUPPLIERS)
        discount_active = rng.random() > 0.7

        items.append({
            "item_id": i,
            "sku": f"SKU-{i:04d}",
            "item_name": f"{brand} Product {i}",
            "brand": brand,
            "description": f"High quality {category.lower()} product",
            "category": category,
            "subcategory": f"{category} Sub",
            "tags": f"{brand.lower()},{category.lower()}",
            "status": "active" if rng.random() > 0.1 else "low_stock",
            # roughly one in twenty items sold out
            "quantity": 0 if rng.random() < 0.05 else rng.randint(1, 100),
            "threshold": rng.randint(5, 24),
            "initial_quantity": rng.randint(50, 249),
            "sold_today": rng.randint(0, 9),
            "sales_velocity": round(rng.random() * 5, 2),
            "stock_health": "good" if rng.random() > 0.3 else "critical",
            "days_out_of_stock": rng.randint(0, 4),
            "stock_turnover_rate": round(rng.random() * 10, 2),
            "storage_type": "ambient" if rng.random() > 0.5 else "refrigerated",
            "location_in_store": f"Aisle {rng.randint(1, 10)}",
            "unit_cost": round(rng.random() * 50 + 10, 2),
            "selling_price": round(rng.random() * 100 + 20, 2),
            "margin_percent": round(rng.random() * 40 + 10, 2),
            "markup_percent": round(rng.random() * 60 + 20, 2),
            "potential_revenue": round(rng.random() * 1000 + 100, 2),
            "total_stock_value": round(rng.random() * 5000 + 500, 2),
            "discount_active": discount_active,
            "discount_percent": round(rng.random() * 20 + 5) if discount_active else 0,
            "loyalty_points": rng.randint(10, 109),
            "supplier_name": supplier,
            "supplier_contact": f"+1-555-{rng.randint(1000, 9999)}",
            "supplier_email": f"contact@{supplier.lower()}.com",
            "supplier_address": f"{rng.randint(1, 999)} Business St",
            "supplier_rating": round(rng.random() * 2 + 3, 1),
            "restock_lead_days": rng.randint(1, 14),
            "last_restock_date": (now - day * rng.randint(0, 30)).date().isoformat(),
            "next_expected_restock": (now + day * rng.randint(0, 30)).date().isoformat(),
            "last_restock_qty": rng.randint(20, 119),
            "auto_reorder_enabled": rng.random() > 0.5,
            "predicted_demand_next_7d": rng.randint(5, 54),
            "days_until_stockout": rng.randint(1, 30),
            "expiry_days": rng.randint(30, 394),
            "expiry_date": (now + day * rng.randint(30, 394)).date().isoformat(),
            "days_until_expiry": rng.randint(30, 394),
            "expired": rng.random() > 0.95,
            "sales_history": json.dumps([rng.randint(0, 19) for _ in range(3)]),
            "weekly_sales_volume": rng.randint(10, 109),
            "sales_trend": "increasing" if rng.random() > 0.5 else "decreasing",
            "country_of_origin": rng.choice(COUNTRIES),
            "organic": rng.random() > 0.7,
            "rating": round(rng.random() * 2 + 3, 1),
            "barcode": str(rng.randint(100000000000, 999999999999)),
            "created_at": (now - day * rng.randint(0, 365)).isoformat(),
            "last_updated": (now - day * rng.randint(0, 7)).isoformat(),
        })

    return items
