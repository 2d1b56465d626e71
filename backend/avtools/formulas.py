# avtools/formulas.py
"""
Builders for the record store's filterByFormula expressions.
User input is always passed through _quote().
"""
from __future__ import annotations

PRODUCT_NAME_FIELD = "Product Name"
SLUG_FIELD = "Slug (optional)"
STATUS_FIELD = "Status"

# Product-link columns seen across bases, in write-preference order:
# (field name, linked-record field?)
PRODUCT_LINK_BINDINGS = (
    ("Product", True),
    ("Products", True),
    ("Product Id", False),
)


def _quote(value: str) -> str:
    escaped = str(value).replace("\\", "\\\\").replace("'", "\\'")
    return f"'{escaped}'"


def derived_slug_expr(field: str = PRODUCT_NAME_FIELD) -> str:
    # Mirrors normalize.derive_slug
    replaced = f"SUBSTITUTE(SUBSTITUTE(SUBSTITUTE({{{field}}},' ','-'),'/','-'),'&','and')"
    return f"REGEX_REPLACE(LOWER({replaced}),'-+','-')"


def slug_formula(slug: str) -> str:
    value = _quote(slug.strip().lower())
    return f"OR(LOWER({{{SLUG_FIELD}}})={value},{derived_slug_expr()}={value})"


def record_id_formula(record_id: str) -> str:
    return f"RECORD_ID()={_quote(record_id)}"


def product_link_formula(product_id: str) -> str:
    # linked fields come back as ["rec..."]; ARRAYJOIN flattens them
    value = _quote(product_id)
    parts = [
        f"ARRAYJOIN({{{field}}})={value}" if linked else f"{{{field}}}={value}"
        for field, linked in PRODUCT_LINK_BINDINGS
    ]
    return "OR(" + ",".join(parts) + ")"


def approved_formula(approved_field: str = "Approved") -> str:
    return f"OR({{{approved_field}}}=TRUE(),{{{STATUS_FIELD}}}='Approved')"


def all_of(*parts: str) -> str:
    parts = tuple(p for p in parts if p)
    if not parts:
        return ""
    if len(parts) == 1:
        return parts[0]
    return "AND(" + ",".join(parts) + ")"
