# avtools/routers/reviews.py
from __future__ import annotations

import httpx
from fastapi import APIRouter, Depends, Query
from fastapi.responses import JSONResponse
from typing import Any, Dict, List, Optional

from avtools.config import Settings, get_settings
from avtools.directory import create_review, list_reviews, reviews_for_product
from avtools.errors import ReviewCreateFailed
from avtools.logging_utils import log_kv, setup_logger
from avtools.models import ReviewIn
from avtools.store import RecordStoreClient, get_store

router = APIRouter(prefix="/api/reviews", tags=["reviews"])
log = setup_logger("api")


# -------------------------------
# Feeds
# -------------------------------
@router.get("")
def reviews_index(
    approved: bool = Query(False, description="only moderated/approved reviews"),
    product_id: Optional[str] = Query(None, alias="productId"),
    store: RecordStoreClient = Depends(get_store),
    settings: Settings = Depends(get_settings),
) -> List[Dict[str, Any]]:
    """
    Reviews newest first. approved=true is what the public catalog uses.
    Upstream failure -> [].
    """
    try:
        reviews = list_reviews(store, settings, approved_only=approved, product_id=product_id or None)
    except Exception:
        log.exception("reviews list failed; returning []")
        return []
    return [r.dump() for r in reviews]


@router.get("/by-product/{product_id}")
def reviews_by_product(
    product_id: str,
    store: RecordStoreClient = Depends(get_store),
    settings: Settings = Depends(get_settings),
) -> List[Dict[str, Any]]:
    try:
        reviews = reviews_for_product(store, settings, product_id)
    except Exception:
        log.exception("reviews by product failed id=%s", product_id)
        return []
    return [r.dump() for r in reviews]


# -------------------------------
# Submission
# -------------------------------
@router.post("")
def submit_review(
    payload: ReviewIn,
    store: RecordStoreClient = Depends(get_store),
    settings: Settings = Depends(get_settings),
):
    """
    Store a review as Pending / not approved. Any approval flags in the body
    are ignored. Validation errors come back as HTTP 400 (see main).
    """
    try:
        review_id = create_review(store, settings, payload)
    except ReviewCreateFailed as e:
        log.error("review create failed attempted=%s error=%s", e.attempted, e.last_error)
        return JSONResponse(
            status_code=502,
            content={"ok": False, "error": str(e), "attempted": e.attempted},
        )
    except httpx.HTTPError as e:
        log.error("review create failed, store unreachable: %s", e)
        return JSONResponse(status_code=502, content={"ok": False, "error": "Record store unreachable"})
    log_kv(log, event="review_created", id=review_id, product=payload.product_id)
    return {"ok": True, "id": review_id}
