# avtools/routers/products.py
from __future__ import annotations

from fastapi import APIRouter, Depends, Query
from typing import Any, Dict, List, Union

from avtools.config import Settings, get_settings
from avtools.directory import get_product, list_products, load_product_records
from avtools.logging_utils import setup_logger
from avtools.store import RecordStoreClient, get_store

router = APIRouter(prefix="/api/products", tags=["products"])
log = setup_logger("api")


# -------------------------------
# List (catalog)
# -------------------------------
@router.get("")
def products_index(
    debug: str = Query("", description="'1' returns counts and raw samples instead"),
    store: RecordStoreClient = Depends(get_store),
    settings: Settings = Depends(get_settings),
) -> Union[List[Dict[str, Any]], Dict[str, Any]]:
    """
    All products, normalized. Upstream failures degrade to [] so the catalog
    page still renders; with ?debug=1 the raw upstream error is returned.
    """
    if debug == "1":
        try:
            records, lookup = load_product_records(store, settings)
        except Exception as e:
            log.exception("products debug failed")
            return {"ok": False, "error": str(e)}
        return {
            "ok": True,
            "counts": {"products": len(records), "categories": len(lookup)},
            "sample": records[:2],
        }

    try:
        products = list_products(store, settings)
    except Exception:
        log.exception("products list failed; returning []")
        return []
    return [p.dump() for p in products]


# -------------------------------
# One product by slug or record id
# -------------------------------
@router.get("/{slug_or_id}")
def product_detail(
    slug_or_id: str,
    store: RecordStoreClient = Depends(get_store),
    settings: Settings = Depends(get_settings),
) -> Dict[str, Any]:
    """
    Normalized product, or {"notFound": true} (HTTP 200) when nothing matches
    or the store is unavailable.
    """
    try:
        product = get_product(store, settings, slug_or_id)
    except Exception:
        log.exception("product lookup failed key=%s", slug_or_id)
        product = None
    if product is None:
        return {"notFound": True}
    return product.dump()
