"""
avtools/directory.py
Read and write operations behind the /api routes and the detail page.

Reads raise on upstream failure; the routers decide how to degrade.
Writes take already-validated submissions (see models.ReviewIn / LeadIn).
"""

from __future__ import annotations
from concurrent.futures import ThreadPoolExecutor
from typing import Any, Dict, List, Optional, Tuple
import logging

from .config import Settings
from .errors import ReviewCreateFailed, StoreRequestFailed
from .formulas import (
    PRODUCT_LINK_BINDINGS,
    all_of,
    approved_formula,
    product_link_formula,
    record_id_formula,
    slug_formula,
)
from .models import LeadIn, Product, Review, ReviewIn
from .normalize import (
    build_category_lookup,
    derive_slug,
    is_approved,
    looks_like_record_id,
    newest_first,
    normalize_product,
    normalize_review,
    now_iso,
    review_product_id,
)
from .logging_utils import log_kv, setup_logger
from .store import RecordStoreClient

log = setup_logger("api")

LEAD_SOURCE = "Website form"
LEAD_STATUS = "New"
REVIEW_PENDING_STATUS = "Pending"

# -------------------------------
# Products
# -------------------------------
def category_lookup(store: RecordStoreClient, settings: Settings) -> Dict[str, str]:
    """
    Category id -> label. A missing or unreadable Categories table gives an
    empty lookup; products then keep their raw category values.
    """
    try:
        return build_category_lookup(store.list_records(settings.table_categories))
    except Exception as e:
        log_kv(log, logging.WARNING, event="categories_unavailable",
               table=settings.table_categories, error=e)
        return {}


def load_product_records(store: RecordStoreClient, settings: Settings):
    """Fetch categories and products concurrently. Returns (records, lookup)."""
    with ThreadPoolExecutor(max_workers=2) as pool:
        cats = pool.submit(category_lookup, store, settings)
        prods = pool.submit(store.list_records, settings.table_products)
        lookup = cats.result()
        records = prods.result()
    return records, lookup


def list_products(store: RecordStoreClient, settings: Settings) -> List[Product]:
    records, lookup = load_product_records(store, settings)
    return [normalize_product(r, lookup) for r in records]


def _slug_matches(record: Dict[str, Any], slug: str) -> bool:
    f = record.get("fields") or {}
    explicit = str(f.get("Slug (optional)") or "").lower()
    return slug in (explicit, derive_slug(str(f.get("Product Name") or "")))


def get_product(store: RecordStoreClient, settings: Settings, slug_or_id: str) -> Optional[Product]:
    """
    Resolve one product by record id (when the segment has the id shape) or
    by slug: explicit "Slug (optional)" or the slug derived from its name.
    Returns None when nothing matches.
    """
    key = (slug_or_id or "").strip()
    if not key:
        return None

    if looks_like_record_id(key):
        records = store.list_records(
            settings.table_products,
            {"filterByFormula": record_id_formula(key), "maxRecords": "1"},
        )
        match = next((r for r in records if r.get("id") == key), None)
    else:
        slug = key.lower()
        records = store.list_records(
            settings.table_products,
            {"filterByFormula": slug_formula(slug), "maxRecords": "1"},
        )
        match = next((r for r in records if _slug_matches(r, slug)), None)

    if match is None:
        return None
    return normalize_product(match, category_lookup(store, settings))


# -------------------------------
# Reviews
# -------------------------------
def list_reviews(
    store: RecordStoreClient,
    settings: Settings,
    approved_only: bool = False,
    product_id: Optional[str] = None,
) -> List[Review]:
    """
    Reviews newest first. The formula narrows server-side; moderation and
    product are re-checked here so the feed never leaks pending reviews.
    """
    approved_field = settings.review_approved_field
    formula = all_of(
        approved_formula(approved_field) if approved_only else "",
        product_link_formula(product_id) if product_id else "",
    )
    params = {"filterByFormula": formula} if formula else {}
    try:
        records = store.list_records(settings.table_reviews, params)
    except StoreRequestFailed as e:
        # 422: the formula names a link column this base lacks;
        # fall back to moderation-only and match the product below
        if not (product_id and e.status_code == 422):
            raise
        log_kv(log, logging.WARNING, event="product_formula_rejected", product=product_id)
        fallback = approved_formula(approved_field) if approved_only else ""
        records = store.list_records(
            settings.table_reviews, {"filterByFormula": fallback} if fallback else {}
        )

    kept = []
    for r in records:
        f = r.get("fields") or {}
        if approved_only and not is_approved(f, approved_field):
            continue
        if product_id and review_product_id(f) != product_id:
            continue
        kept.append(normalize_review(r))
    return newest_first(kept)


def reviews_for_product(store: RecordStoreClient, settings: Settings, product_id: str) -> List[Review]:
    # Approved only, same policy as the catalog feed
    return list_reviews(store, settings, approved_only=True, product_id=product_id)


def review_fields(submission: ReviewIn, settings: Settings) -> Dict[str, Any]:
    """Field bag for a new review, without the product link."""
    return {
        "Reviewer Name": submission.reviewer_name,
        "Email": submission.email or "",
        "Role": submission.role,
        "Fleet Size": submission.fleet_size,
        "Star Rating": submission.rating,
        "Pros": submission.pros,
        "Cons": submission.cons,
        "Anonymous?": submission.anonymous,
        "Would Recommend": submission.would_recommend,
        "Date": now_iso(),
        # new reviews always wait for moderation
        settings.review_approved_field: False,
        "Status": REVIEW_PENDING_STATUS,
    }


def create_review(store: RecordStoreClient, settings: Settings, submission: ReviewIn) -> str:
    """
    Create the review, trying each product-link binding in order until the
    store accepts one. Returns the new record id; raises ReviewCreateFailed
    with every attempt when all bindings are rejected.
    """
    base = review_fields(submission, settings)
    attempts: List[Tuple[str, Exception]] = []
    for field, linked in PRODUCT_LINK_BINDINGS:
        fields = dict(base)
        fields[field] = [submission.product_id] if linked else submission.product_id
        try:
            created = store.create_record(settings.table_reviews, fields)
        except StoreRequestFailed as e:
            log_kv(log, logging.WARNING, event="review_binding_rejected",
                   binding=repr(field), status=e.status_code)
            attempts.append((field, e))
            continue
        return str(created.get("id", ""))
    raise ReviewCreateFailed(attempts)


# -------------------------------
# Leads
# -------------------------------
def lead_fields(submission: LeadIn) -> Dict[str, Any]:
    return {
        "Product": [submission.product_id],
        "Lead Name": submission.name,
        "Email": str(submission.email),
        "Company": submission.company,
        "Role": submission.role,
        "Message": submission.message,
        "Source": LEAD_SOURCE,
        "Status": LEAD_STATUS,
    }


def create_lead(store: RecordStoreClient, settings: Settings, submission: LeadIn) -> str:
    created = store.create_record(settings.table_leads, lead_fields(submission))
    return str(created.get("id", ""))
