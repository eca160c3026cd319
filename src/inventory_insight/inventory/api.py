import logging
from typing import Any, Optional

from fastapi import APIRouter, Depends, HTTPException, Query

from inventory_insight.core.errors import BackendError
from inventory_insight.core.services.backend_factory import get_inventory_backend
from inventory_insight.inventory.queries import InventoryQueries

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/dashboard",
    tags=["dashboard"],
    responses={404: {"description": "Not found"}},
)


def get_inventory_queries() -> InventoryQueries:
    return InventoryQueries(get_inventory_backend())


def _run(name: str, call):
    try:
        return call()
    except BackendError as e:
        logger.error(f"[DASHBOARD] ✗ {name} failed: {e}")
        raise HTTPException(status_code=502, detail=str(e))


@router.get("/summary", response_model=Any)
def inventory_summary(queries: InventoryQueries = Depends(get_inventory_queries)):
    return _run("summary", queries.inventory_summary)


@router.get("/low-stock", response_model=Any)
def low_stock(limit: int = Query(10, ge=1, le=500), queries: InventoryQueries = Depends(get_inventory_queries)):
    return _run("low-stock", lambda: queries.low_stock_items(limit))


@router.get("/top-selling", response_model=Any)
def top_selling(limit: int = Query(5, ge=1, le=500), queries: InventoryQueries = Depends(get_inventory_queries)):
    return _run("top-selling", lambda: queries.top_selling_items(limit))


@router.get("/expensive", response_model=Any)
def expensive(limit: int = Query(5, ge=1, le=500), queries: InventoryQueries = Depends(get_inventory_queries)):
    return _run("expensive", lambda: queries.expensive_items(limit))


@router.get("/out-of-stock", response_model=Any)
def out_of_stock(limit: int = Query(10, ge=1, le=500), queries: InventoryQueries = Depends(get_inventory_queries)):
    return _run("out-of-stock", lambda: queries.out_of_stock_items(limit))


@router.get("/categories", response_model=Any)
def items_by_category(category: Optional[str] = None, limit: int = Query(10, ge=1, le=500),
                      queries: InventoryQueries = Depends(get_inventory_queries)):
    return _run("categories", lambda: queries.items_by_category(category, limit))


@router.get("/suppliers", response_model=Any)
def suppliers(queries: InventoryQueries = Depends(get_inventory_queries)):
    return _run("suppliers", queries.suppliers)


@router.get("/suggestions", response_model=Any)
def suggestions(queries: InventoryQueries = Depends(get_inventory_queries)):
    return {"suggestions": queries.suggestions()}
