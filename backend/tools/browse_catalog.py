# -*- coding: utf-8 -*-
import os, argparse, asyncio, csv

from avtools.catalog import (
    ALL,
    CATEGORIES,
    FLEET_SIZES,
    ROLES,
    CatalogFilter,
    fetch_catalog,
    filter_products,
    product_href,
)

CSV_FIELDS = ["id", "name", "vendor", "avgRating", "reviewCount", "recommendPct", "categories", "href"]


def browse(base_url, flt):
    """
    Load the catalog from a running API and return the products passing `flt`.
    """
    catalog = asyncio.run(fetch_catalog(base_url))
    hits = filter_products(catalog.products, flt, catalog.reviews_by_product)
    print(f"Loaded {len(catalog.products)} products; {len(hits)} match.")
    return hits


def main():
    p = argparse.ArgumentParser(description="Filter the product catalog like the /products page does")
    p.add_argument("--base-url", default=os.getenv("APP_API_BASE", "http://127.0.0.1:8000"))
    p.add_argument("--category", default=ALL, choices=(ALL,) + CATEGORIES)
    p.add_argument("--min-rating", type=float, default=0, dest="min_rating")
    p.add_argument("--query", default="", help="Substring of name/vendor/description")
    p.add_argument("--role", default=ALL, choices=(ALL,) + ROLES)
    p.add_argument("--fleet", default=ALL, choices=(ALL,) + FLEET_SIZES)
    p.add_argument("--csv", help="Optional path to write matches as CSV")
    args = p.parse_args()

    flt = CatalogFilter(
        category=args.category,
        min_rating=args.min_rating,
        query=args.query,
        role=args.role,
        fleet_size=args.fleet,
    )
    hits = browse(args.base_url, flt)

    for i, prod in enumerate(hits, 1):
        print(f"{i:>2}. {prod.name} ({prod.vendor})  {prod.avg_rating:.1f}*  "
              f"{prod.review_count} reviews  {product_href(prod)}")

    if args.csv:
        out_dir = os.path.dirname(args.csv)
        if out_dir:
            os.makedirs(out_dir, exist_ok=True)
        with open(args.csv, "w", newline="", encoding="utf-8") as f:
            w = csv.DictWriter(f, fieldnames=CSV_FIELDS)
            w.writeheader()
            for prod in hits:
                row = prod.dump()
                w.writerow({
                    "id": row["id"],
                    "name": row["name"],
                    "vendor": row["vendor"],
                    "avgRating": row["avgRating"],
                    "reviewCount": row["reviewCount"],
                    "recommendPct": row["recommendPct"],
                    "categories": "; ".join(row["categories"]),
                    "href": product_href(prod),
                })
        print(f"\nSaved CSV -> {args.csv}")


if __name__ == "__main__":
    main()
