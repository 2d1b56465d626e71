# avtools/routers/pages.py
from __future__ import annotations

from fastapi import APIRouter, Depends
from typing import Any, Dict

from avtools.config import Settings, get_settings
from avtools.directory import get_product, reviews_for_product
from avtools.logging_utils import setup_logger
from avtools.models import ProductPage
from avtools.store import RecordStoreClient, get_store

router = APIRouter(prefix="/products", tags=["pages"])
log = setup_logger("api")


@router.get("/{slug_or_id}")
def product_page(
    slug_or_id: str,
    store: RecordStoreClient = Depends(get_store),
    settings: Settings = Depends(get_settings),
) -> Dict[str, Any]:
    """
    Page model for the product detail view: the product plus its approved
    reviews. Unknown products get an empty state, not an error.
    """
    try:
        product = get_product(store, settings, slug_or_id)
    except Exception:
        log.exception("detail page lookup failed key=%s", slug_or_id)
        product = None
    if product is None:
        return ProductPage(found=False).dump()

    try:
        reviews = reviews_for_product(store, settings, product.id)
    except Exception:
        log.exception("detail page reviews failed id=%s", product.id)
        reviews = []
    return ProductPage(found=True, product=product, reviews=reviews).dump()
