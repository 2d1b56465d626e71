"""
avtools/normalize.py
Field normalizer: record-store field bags -> Product / Review.

The store's schema is owned by whoever edits the base, so every reader here
tolerates missing fields, odd types and a couple of alternate field names.
No I/O in this module.
"""

from __future__ import annotations
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Mapping, Optional
import math
import re

from .formulas import PRODUCT_LINK_BINDINGS
from .models import Product, Review

# Store record ids look like "rec" + 14 alphanumerics
RECORD_ID_PREFIX = "rec"
_RECORD_ID_RE = re.compile(r"^rec[A-Za-z0-9]{14}$")

CATEGORY_LABEL_FIELDS = ("Name", "Category", "Title", "Label")

Fields = Mapping[str, Any]


def looks_like_record_id(value: Any) -> bool:
    return isinstance(value, str) and bool(_RECORD_ID_RE.match(value))


def now_iso() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


# -------------------------------
# Scalar coercion
# -------------------------------
def _finite(x: float) -> float:
    return x if math.isfinite(x) else 0


def strip_percent(value: Any) -> float:
    """
    42 -> 42, "42%" -> 42.0, "bad" -> 0, None -> 0.
    """
    if isinstance(value, bool):
        return 0
    if isinstance(value, (int, float)):
        return _finite(value)
    if isinstance(value, str):
        s = value.strip()
        if s.endswith("%"):
            s = s[:-1].strip()
        try:
            return _finite(float(s))
        except ValueError:
            return 0
    return 0


def to_number(value: Any) -> float:
    """Numeric parse with 0 on anything unusable."""
    if isinstance(value, bool):
        return int(value)
    if isinstance(value, (int, float)):
        return _finite(value)
    if isinstance(value, str):
        try:
            return _finite(float(value.strip()))
        except ValueError:
            return 0
    return 0


def _text(value: Any) -> str:
    if value is None:
        return ""
    return value if isinstance(value, str) else str(value)


def derive_slug(name: str) -> str:
    """
    URL slug from a product name: "Sky & Sea / Air" -> "sky-and-sea-air".
    Must stay in step with formulas.derived_slug_expr.
    """
    s = (name or "").replace(" ", "-").replace("/", "-").replace("&", "and").lower()
    return re.sub(r"-+", "-", s)


# -------------------------------
# Categories
# -------------------------------
def category_label(record: Mapping[str, Any]) -> str:
    fields = record.get("fields") or {}
    for key in CATEGORY_LABEL_FIELDS:
        label = fields.get(key)
        if label:
            return str(label)
    return str(record.get("id", ""))


def build_category_lookup(records: Iterable[Mapping[str, Any]]) -> Dict[str, str]:
    return {r["id"]: category_label(r) for r in records if r.get("id")}


def normalize_categories(raw: Any, lookup: Optional[Mapping[str, str]] = None) -> List[str]:
    """
    Categories arrive either as multi-select labels or as linked record ids.
    Ids are resolved through `lookup`; unknown ids are kept as-is.
    """
    if not isinstance(raw, list) or not raw or not isinstance(raw[0], str):
        return []
    if raw[0].startswith(RECORD_ID_PREFIX):
        lookup = lookup or {}
        return [lookup.get(str(v), str(v)) for v in raw]
    return [str(v) for v in raw]


def _features(raw: Any) -> List[str]:
    if isinstance(raw, list):
        return [str(v) for v in raw if v is not None]
    if isinstance(raw, str):
        return [ln.strip() for ln in raw.splitlines() if ln.strip()]
    return []


def _media(raw: Any):
    """First attachment is the logo, the rest are screenshots."""
    items = raw if isinstance(raw, list) else []
    urls = [m.get("url") if isinstance(m, dict) else None for m in items]
    logo = urls[0] if urls and urls[0] else None
    return logo, [u for u in urls[1:] if u]


# -------------------------------
# Records -> models
# -------------------------------
def normalize_product(record: Mapping[str, Any], lookup: Optional[Mapping[str, str]] = None) -> Product:
    f: Fields = record.get("fields") or {}
    logo_url, screenshots = _media(f.get("Media"))
    return Product(
        id=str(record.get("id", "")),
        slug=_text(f.get("Slug (optional)")),
        name=_text(f.get("Product Name")),
        vendor=_text(f.get("Vendor Name")),
        website=_text(f.get("Website URL")),
        description=_text(f.get("Short Description")),
        categories=normalize_categories(f.get("Categories"), lookup),
        features=_features(f.get("Features")),
        logo_url=logo_url,
        screenshots=screenshots,
        avg_rating=to_number(f.get("Star Rating Rollup (from Reviews)")),
        review_count=int(to_number(f.get("Review Count"))),
        recommend_pct=strip_percent(f.get("Recommend %")),
    )


def review_product_id(fields: Fields) -> str:
    """
    First id from any linked product column, else a plain text id column.
    Reads the same columns create_review may write.
    """
    for field, linked in PRODUCT_LINK_BINDINGS:
        value = fields.get(field)
        if linked and isinstance(value, list) and value:
            return str(value[0])
    for field, linked in PRODUCT_LINK_BINDINGS:
        if not linked and fields.get(field):
            return _text(fields[field])
    return ""


def display_name(fields: Fields) -> str:
    if fields.get("Display Name"):
        return _text(fields["Display Name"])
    if fields.get("Anonymous?"):
        return "Anonymous"
    return _text(fields.get("Reviewer Name")) or "Anonymous"


def is_approved(fields: Fields, approved_field: str = "Approved") -> bool:
    return fields.get(approved_field) is True or fields.get("Status") == "Approved"


def normalize_review(record: Mapping[str, Any]) -> Review:
    f: Fields = record.get("fields") or {}
    date = f.get("Date")
    return Review(
        id=str(record.get("id", "")),
        product_id=review_product_id(f),
        display_name=display_name(f),
        role=_text(f.get("Role")) or "Other",
        fleet_size=_text(f.get("Fleet Size")) or "Small",
        rating=int(to_number(f.get("Star Rating"))),
        pros=_text(f.get("Pros")),
        cons=_text(f.get("Cons")),
        would_recommend=bool(f.get("Would Recommend")),
        date=date if isinstance(date, str) and date else now_iso(),
    )


def _date_key(review: Review) -> datetime:
    try:
        dt = datetime.fromisoformat(review.date.replace("Z", "+00:00"))
    except ValueError:
        return datetime.min.replace(tzinfo=timezone.utc)
    return dt if dt.tzinfo else dt.replace(tzinfo=timezone.utc)


def newest_first(reviews: Iterable[Review]) -> List[Review]:
    return sorted(reviews, key=_date_key, reverse=True)
