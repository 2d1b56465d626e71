from __future__ import annotations

import copy
import os
import tempfile
from pathlib import Path

import pytest
from fastapi.testclient import TestClient

# Required settings must exist before avtools.main is imported
os.environ.setdefault("AIRTABLE_BASE_ID", "appTestBase00000")
os.environ.setdefault("AIRTABLE_API_KEY", "pat-test-key")
os.environ.setdefault("LOG_DIR", str(Path(tempfile.gettempdir()) / "avtools-test-logs"))

from avtools.config import get_settings  # noqa: E402
from avtools.errors import StoreRequestFailed  # noqa: E402
from avtools.main import app  # noqa: E402
from avtools.store import get_store  # noqa: E402


def rec(tag: str) -> str:
    """Record id with the store's shape: 'rec' + 14 alphanumerics."""
    return "rec" + tag.ljust(14, "0")[:14]


class FakeStore:
    """
    In-memory stand-in for RecordStoreClient. Ignores formulas, so the code
    under test must do its own matching; records every call for assertions.
    """

    def __init__(self, tables=None):
        self.tables = {name: list(rows) for name, rows in (tables or {}).items()}
        self.calls = []
        self.created = []
        self.fail_tables = set()
        # field names the store rejects on create (unknown column)
        self.unknown_fields = set()
        # columns a filterByFormula may not reference (422 INVALID_FORMULA)
        self.formula_unknown_fields = set()
        self._next = 0

    def list_records(self, table, params=None):
        self.calls.append(("list", table, dict(params or {})))
        if table in self.fail_tables:
            raise StoreRequestFailed(table, 503, "upstream down")
        if table not in self.tables:
            raise StoreRequestFailed(table, 404, "TABLE_NOT_FOUND")
        formula = (params or {}).get("filterByFormula", "")
        if any("{" + name + "}" in formula for name in self.formula_unknown_fields):
            raise StoreRequestFailed(table, 422, "INVALID_FORMULA")
        return copy.deepcopy(self.tables[table])

    def create_record(self, table, fields):
        self.calls.append(("create", table, dict(fields)))
        if table in self.fail_tables:
            raise StoreRequestFailed(table, 503, "upstream down")
        bad = sorted(self.unknown_fields & set(fields))
        if bad:
            raise StoreRequestFailed(table, 422, f'Unknown field name: "{bad[0]}"')
        self._next += 1
        record = {"id": rec(f"New{self._next}"), "fields": dict(fields)}
        self.tables.setdefault(table, []).append(record)
        self.created.append((table, record))
        return record


def product_record(tag, name, **fields):
    f = {"Product Name": name}
    f.update(fields)
    return {"id": rec(tag), "fields": f}


def review_record(tag, product_id, **fields):
    f = {"Product": [product_id]}
    f.update(fields)
    return {"id": rec(tag), "fields": f}


@pytest.fixture()
def settings():
    return get_settings()


@pytest.fixture()
def store() -> FakeStore:
    return FakeStore(
        {
            "Categories": [
                {"id": rec("CatSched"), "fields": {"Name": "Scheduling"}},
                {"id": rec("CatQuote"), "fields": {"Category": "Quoting"}},
                {"id": rec("CatBare"), "fields": {}},
            ],
            "Products": [
                product_record(
                    "SkySea",
                    "Sky & Sea / Air",
                    **{
                        "Vendor Name": "Blue Horizon",
                        "Short Description": "Charter scheduling for mixed fleets",
                        "Categories": [rec("CatSched"), rec("CatQuote")],
                        "Media": [{"url": "https://cdn.test/logo.png"}, {"url": "https://cdn.test/s1.png"}],
                        "Star Rating Rollup (from Reviews)": 4.6,
                        "Review Count": 2,
                        "Recommend %": "90%",
                    },
                ),
                product_record(
                    "QuoteFlow",
                    "QuoteFlow",
                    **{
                        "Slug (optional)": "quoteflow-pro",
                        "Vendor Name": "QF Inc",
                        "Categories": ["Quoting"],
                        "Star Rating Rollup (from Reviews)": 3,
                        "Recommend %": 75,
                    },
                ),
            ],
            "Reviews": [
                review_record("Rev1", rec("SkySea"), **{"Approved": True, "Date": "2024-01-01",
                                                       "Role": "DO", "Fleet Size": "Medium",
                                                       "Star Rating": 5, "Reviewer Name": "Ana"}),
                review_record("Rev2", rec("SkySea"), **{"Status": "Approved", "Date": "2024-03-01",
                                                       "Star Rating": "4", "Anonymous?": True,
                                                       "Reviewer Name": "Hidden"}),
                review_record("Rev3", rec("QuoteFlow"), **{"Approved": True, "Date": "2024-02-01",
                                                          "Role": "Broker", "Star Rating": 3}),
                review_record("Rev4", rec("SkySea"), **{"Status": "Pending", "Date": "2024-04-01",
                                                       "Star Rating": 1}),
            ],
            "Leads": [],
        }
    )


@pytest.fixture()
def client(store) -> TestClient:
    app.dependency_overrides[get_store] = lambda: store
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.pop(get_store, None)
