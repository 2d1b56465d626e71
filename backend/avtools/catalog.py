"""
avtools/catalog.py
Catalog view: fetch products + approved reviews once, then filter in memory.

    catalog = asyncio.run(fetch_catalog("http://127.0.0.1:8000"))
    hits = filter_products(catalog.products, CatalogFilter(min_rating=4.5),
                           catalog.reviews_by_product)

Filtering is synchronous and recomputed from scratch on every facet change;
the directory holds tens to low hundreds of products.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional
import asyncio

import httpx

from .logging_utils import setup_logger
from .models import Product, Review

ALL = "All"
CATEGORIES = ("Scheduling", "Quoting", "Marketplace / Aircraft Sourcing")
ROLES = ("DO", "DOM", "Dispatcher", "Broker", "Safety", "Other")
FLEET_SIZES = ("Small", "Medium", "Large")
RATING_STEPS = (0, 3, 4, 4.5)

log = setup_logger("catalog")


@dataclass
class CatalogFilter:
    category: str = ALL
    min_rating: float = 0
    query: str = ""
    role: str = ALL
    fleet_size: str = ALL

    @property
    def reviewer_facets_active(self) -> bool:
        return self.role != ALL or self.fleet_size != ALL


@dataclass
class Catalog:
    products: List[Product] = field(default_factory=list)
    reviews_by_product: Dict[str, List[Review]] = field(default_factory=dict)


def group_reviews(reviews: Iterable[Review]) -> Dict[str, List[Review]]:
    grouped: Dict[str, List[Review]] = {}
    for r in reviews:
        grouped.setdefault(r.product_id, []).append(r)
    return grouped


def _review_matches(review: Review, flt: CatalogFilter) -> bool:
    return (flt.role == ALL or review.role == flt.role) and (
        flt.fleet_size == ALL or review.fleet_size == flt.fleet_size
    )


def product_matches(
    product: Product,
    flt: CatalogFilter,
    reviews_by_product: Optional[Dict[str, List[Review]]] = None,
) -> bool:
    if flt.category != ALL and flt.category not in product.categories:
        return False

    if (product.avg_rating or 0) < flt.min_rating:
        return False

    if flt.query:
        haystack = f"{product.name} {product.vendor} {product.description}".lower()
        if flt.query.lower() not in haystack:
            return False

    # reviewer facets need at least one review matching both
    if flt.reviewer_facets_active:
        reviews = (reviews_by_product or {}).get(product.id, [])
        if not any(_review_matches(r, flt) for r in reviews):
            return False

    return True


def filter_products(
    products: Iterable[Product],
    flt: CatalogFilter,
    reviews_by_product: Optional[Dict[str, List[Review]]] = None,
) -> List[Product]:
    return [p for p in products if product_matches(p, flt, reviews_by_product)]


def product_href(product: Product) -> str:
    return f"/products/{product.slug or product.id}"


# -------------------------------
# Fetching (defensive: any failure -> [])
# -------------------------------
async def _get_list(client: httpx.AsyncClient, path: str, params: Optional[dict] = None) -> list:
    try:
        resp = await client.get(path, params=params, headers={"Cache-Control": "no-store"})
    except httpx.HTTPError as e:
        log.warning("catalog fetch failed path=%s error=%s", path, e)
        return []
    if not resp.is_success:
        log.warning("catalog fetch failed path=%s status=%s", path, resp.status_code)
        return []
    try:
        data = resp.json()
    except ValueError:
        return []
    return data if isinstance(data, list) else []


async def fetch_catalog(
    base_url: str,
    transport: Optional[httpx.AsyncBaseTransport] = None,
    timeout: float = 30.0,
) -> Catalog:
    """
    GET /api/products and /api/reviews?approved=true concurrently and build
    the in-memory catalog. Rows that do not parse are skipped.
    """
    async with httpx.AsyncClient(base_url=base_url.rstrip("/"), transport=transport, timeout=timeout) as client:
        raw_products, raw_reviews = await asyncio.gather(
            _get_list(client, "/api/products"),
            _get_list(client, "/api/reviews", {"approved": "true"}),
        )

    products = _parse(Product, raw_products)
    reviews = _parse(Review, raw_reviews)
    return Catalog(products=products, reviews_by_product=group_reviews(reviews))


def _parse(model, rows: list) -> list:
    out = []
    for row in rows:
        try:
            out.append(model.model_validate(row))
        except ValueError as e:
            log.warning("skipping malformed %s row: %s", model.__name__, e)
    return out
