from avtools.config import Settings
from avtools.directory import create_review
from avtools.models import ReviewIn

from conftest import FakeStore, rec

SKY = rec("SkySea")


def ids(rows):
    return [r["id"] for r in rows]


def valid_review(**overrides):
    body = {
        "productId": SKY,
        "reviewerName": "Jo Pilot",
        "email": "jo@jetcharter.com",
        "role": "Dispatcher",
        "fleetSize": "Medium",
        "rating": 4,
        "pros": "Fast quoting",
        "cons": "",
        "anonymous": False,
        "wouldRecommend": True,
    }
    body.update(overrides)
    return body


# -------------------------------
# Feeds
# -------------------------------
def test_approved_feed_excludes_pending_and_sorts_newest_first(client, store):
    rows = client.get("/api/reviews", params={"approved": "true"}).json()
    assert ids(rows) == [rec("Rev2"), rec("Rev3"), rec("Rev1")]
    assert [r["date"] for r in rows] == ["2024-03-01", "2024-02-01", "2024-01-01"]

    _, _, params = store.calls[-1]
    assert "{Approved}=TRUE()" in params["filterByFormula"]


def test_approved_feed_for_one_product(client):
    rows = client.get("/api/reviews", params={"approved": "true", "productId": SKY}).json()
    assert ids(rows) == [rec("Rev2"), rec("Rev1")]


def test_unfiltered_feed_returns_everything_newest_first(client):
    rows = client.get("/api/reviews").json()
    assert ids(rows) == [rec("Rev4"), rec("Rev2"), rec("Rev3"), rec("Rev1")]


def test_review_shape(client):
    rows = {r["id"]: r for r in client.get("/api/reviews").json()}
    anon = rows[rec("Rev2")]
    assert anon["displayName"] == "Anonymous"
    assert anon["rating"] == 4
    assert anon["productId"] == SKY
    assert anon["role"] == "Other"
    assert anon["fleetSize"] == "Small"
    assert "approved" not in anon and "status" not in anon
    assert rows[rec("Rev1")]["displayName"] == "Ana"


def test_by_product_is_approved_only(client, store):
    rows = client.get(f"/api/reviews/by-product/{SKY}").json()
    assert ids(rows) == [rec("Rev2"), rec("Rev1")]
    _, _, params = store.calls[-1]
    assert f"ARRAYJOIN({{Product}})='{SKY}'" in params["filterByFormula"]


def test_feeds_degrade_to_empty(client, store):
    store.fail_tables.add("Reviews")
    assert client.get("/api/reviews", params={"approved": "true"}).json() == []
    assert client.get(f"/api/reviews/by-product/{SKY}").json() == []


# -------------------------------
# Submission
# -------------------------------
def test_create_review_is_always_pending(client, store):
    r = client.post("/api/reviews", json=valid_review(approved=True, status="Approved", Approved=True))
    assert r.status_code == 200
    body = r.json()
    assert body["ok"] is True

    table, record = store.created[-1]
    assert table == "Reviews"
    assert body["id"] == record["id"]
    fields = record["fields"]
    assert fields["Approved"] is False
    assert fields["Status"] == "Pending"
    assert fields["Product"] == [SKY]
    assert fields["Star Rating"] == 4
    assert fields["Fleet Size"] == "Medium"
    assert fields["Would Recommend"] is True
    assert fields["Date"]


def test_create_review_defaults(client, store):
    r = client.post("/api/reviews", json={"productId": SKY, "rating": "5", "email": "", "role": ""})
    assert r.json()["ok"] is True
    fields = store.created[-1][1]["fields"]
    assert fields["Role"] == "Other"
    assert fields["Fleet Size"] == "Small"
    assert fields["Email"] == ""
    assert fields["Anonymous?"] is False
    assert fields["Star Rating"] == 5


def test_rating_out_of_range_never_reaches_store(client, store):
    for rating in (0, 6, -1):
        r = client.post("/api/reviews", json=valid_review(rating=rating))
        assert r.status_code == 400
        body = r.json()
        assert body["ok"] is False
        assert "rating" in body["fields"]
    assert not [c for c in store.calls if c[0] == "create"]


def test_missing_product_and_bad_email_are_both_reported(client, store):
    body = valid_review(email="not-an-email")
    del body["productId"]
    r = client.post("/api/reviews", json=body)
    assert r.status_code == 400
    assert set(r.json()["fields"]) == {"productId", "email"}
    assert store.created == []


def test_falls_back_to_next_product_link_field(client, store):
    store.unknown_fields = {"Product"}
    r = client.post("/api/reviews", json=valid_review())
    assert r.json()["ok"] is True
    new_id = r.json()["id"]
    record = store.created[-1][1]
    fields = record["fields"]
    assert fields["Products"] == [SKY]
    assert "Product" not in fields
    creates = [c for c in store.calls if c[0] == "create"]
    assert len(creates) == 2

    # once moderated, the review is read back under its product
    record["fields"]["Approved"] = True
    rows = client.get(f"/api/reviews/by-product/{SKY}").json()
    assert new_id in ids(rows)
    assert next(x for x in rows if x["id"] == new_id)["productId"] == SKY

    feed = client.get("/api/reviews", params={"approved": "true"}).json()
    assert next(x for x in feed if x["id"] == new_id)["productId"] == SKY


def test_text_bound_review_is_read_back_under_its_product(client, store):
    store.unknown_fields = {"Product", "Products"}
    new_id = client.post("/api/reviews", json=valid_review()).json()["id"]
    store.created[-1][1]["fields"]["Status"] = "Approved"
    rows = client.get(f"/api/reviews/by-product/{SKY}").json()
    assert next(x for x in rows if x["id"] == new_id)["productId"] == SKY


def test_by_product_survives_formula_naming_missing_column(client, store):
    store.formula_unknown_fields = {"Products"}
    rows = client.get(f"/api/reviews/by-product/{SKY}").json()
    assert ids(rows) == [rec("Rev2"), rec("Rev1")]
    formulas = [c[2].get("filterByFormula", "") for c in store.calls]
    assert len(formulas) == 2
    assert "ARRAYJOIN" not in formulas[-1]
    assert "{Approved}=TRUE()" in formulas[-1]


def test_plain_text_binding_is_last_resort(client, store):
    store.unknown_fields = {"Product", "Products"}
    client.post("/api/reviews", json=valid_review())
    assert store.created[-1][1]["fields"]["Product Id"] == SKY


def test_all_bindings_rejected(client, store):
    store.unknown_fields = {"Product", "Products", "Product Id"}
    r = client.post("/api/reviews", json=valid_review())
    assert r.status_code == 502
    body = r.json()
    assert body["ok"] is False
    assert body["attempted"] == ["Product", "Products", "Product Id"]
    assert "Product Id" in body["error"]
    assert store.created == []


def test_configured_moderation_field_name():
    store = FakeStore({"Reviews": []})
    settings = Settings(base_id="app1", api_key="k", review_approved_field="Approved?")
    create_review(store, settings, ReviewIn(product_id=SKY, rating=3))
    fields = store.created[-1][1]["fields"]
    assert fields["Approved?"] is False
    assert "Approved" not in fields
