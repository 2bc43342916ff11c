import pytest
from fastapi.testclient import TestClient

from wholesale_pricing.api.main import app
from wholesale_pricing.api.state import build_state, get_state

HEADERS = {"X-Tenant-ID": "acme"}


@pytest.fixture
def client(settings):
    settings.data_dir.mkdir(parents=True, exist_ok=True)
    settings.products_csv.write_text(
        "tenant_id,product_id,name,category_id,base_price\n"
        "acme,SKU-1,Premium Rice,grains,100\n",
        encoding="utf-8",
    )
    state = build_state(settings)
    app.dependency_overrides[get_state] = lambda: state
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


def create_tier(client, **overrides):
    body = {
        "product_id": "SKU-1",
        "min_quantity": 10,
        "discount_type": "percentage",
        "discount_value": 20,
    }
    body.update(overrides)
    return client.post("/api/tiers", json=body, headers=HEADERS)


def test_calculate_reference_example(client):
    assert create_tier(client).status_code == 201
    resp = client.post("/api/pricing/calculate", headers=HEADERS,
                       json={"product_id": "SKU-1", "quantity": 10, "base_price": 100})
    assert resp.status_code == 200
    data = resp.json()
    assert data["total"] == 860.0
    assert data["unit_price"] == 86.0
    assert data["tax_amount"] == 60.0
    assert data["applied_tier"]["tier_id"] == "P-SKU-1-Q10"
    assert "Tier" in data["trace_text"]


def test_tenant_header_required(client):
    resp = client.post("/api/pricing/calculate", json={"product_id": "SKU-1", "quantity": 1, "base_price": 10})
    assert resp.status_code == 422
    assert "X-Tenant-ID" in resp.json()["detail"]


def test_invalid_input_maps_to_422(client):
    resp = client.post("/api/pricing/calculate", headers=HEADERS,
                       json={"product_id": "SKU-1", "quantity": 0, "base_price": 10})
    assert resp.status_code == 422
    assert resp.json()["error"] == "InvalidInput"


def test_tiers_are_tenant_scoped(client):
    create_tier(client)
    resp = client.post("/api/pricing/calculate", headers={"X-Tenant-ID": "globex"},
                       json={"product_id": "SKU-1", "quantity": 10, "base_price": 100})
    assert resp.json()["applied_tier"] is None
    assert client.get("/api/tiers", headers={"X-Tenant-ID": "globex"}).json() == []


def test_tier_crud_and_conflict(client):
    created = create_tier(client, tier_id="A", max_quantity=50).json()
    assert created["tier_id"] == "A"

    conflict = create_tier(client, tier_id="B", min_quantity=20)
    assert conflict.status_code == 409
    assert conflict.json()["conflicting_ids"] == ["A"]

    validation = client.post("/api/tiers/validate", headers=HEADERS,
                             json={"product_id": "SKU-1", "min_quantity": 20,
                                   "discount_type": "percentage", "discount_value": 5})
    assert validation.json()["valid"] is False
    assert validation.json()["overlapping_ids"] == ["A"]

    updated = client.put("/api/tiers/A", headers=HEADERS, json={"discount_value": 25})
    assert updated.json()["discount_value"] == 25.0

    assert client.get("/api/tiers/A", headers=HEADERS).status_code == 200
    assert client.get("/api/tiers/missing", headers=HEADERS).status_code == 404

    deleted = client.delete("/api/tiers/A", params={"hard": True}, headers=HEADERS)
    assert deleted.json()["status"] == "removed"
    assert client.get("/api/tiers", headers=HEADERS).json() == []
    assert client.get("/api/tiers/stats", headers=HEADERS).json()["removed"] == 1


def test_bad_discount_type_rejected(client):
    resp = create_tier(client, discount_type="bogus")
    assert resp.status_code == 422


def test_matrix(client):
    create_tier(client)
    resp = client.post("/api/pricing/matrix", headers=HEADERS, json={"product_ids": ["SKU-1", "NOPE"]})
    assert resp.status_code == 200
    matrix = resp.json()
    assert [row["product_id"] for row in matrix] == ["SKU-1"]
    assert matrix[0]["product_name"] == "Premium Rice"
    assert len(matrix[0]["tiers"]) == 9

    flat = client.post("/api/pricing/matrix", headers=HEADERS,
                       json={"product_ids": ["SKU-1"], "flat": True}).json()
    assert len(flat) == 9
    assert flat[-1]["max_quantity"] is None


def test_channel_advancement_flow(client):
    cell = "/api/channels/WholesalePricingTiers"
    client.put(cell, headers=HEADERS, json={"channels": {"stable": "2.0.5", "canary": "2.0.5"},
                                            "health": "healthy", "downloads": 10})

    resp = client.put(f"{cell}/policy", headers=HEADERS,
                      json={"type": "automatic", "rules": [{"type": "minor_allowed"}], "channel": "canary"})
    assert resp.status_code == 200

    advancements = client.post(f"{cell}/evaluate", headers=HEADERS, json={"version": "2.1.0"}).json()
    assert [a["channel"] for a in advancements] == ["canary"]

    results = client.post(f"{cell}/execute", headers=HEADERS, json={"advancements": advancements}).json()
    assert results[0]["success"] is True

    history = client.get(f"{cell}/history", headers=HEADERS).json()
    assert history[0]["to_version"] == "2.1.0"


def test_channel_pin_and_errors(client):
    cell = "/api/channels/Cart"
    client.put(cell, headers=HEADERS, json={"channels": {"stable": "1.0.0"}})
    client.put(f"{cell}/policy", headers=HEADERS, json={"type": "automatic", "rules": [{"type": "minor_allowed"}]})

    pinned = client.put(f"{cell}/pin", headers=HEADERS,
                        json={"channel": "stable", "constraint": "max", "version": "1.0.5"})
    assert pinned.status_code == 200
    assert client.post(f"{cell}/evaluate", headers=HEADERS, json={"version": "1.1.0"}).json() == []

    bad_policy = client.put(f"{cell}/policy", headers=HEADERS, json={"type": "sometimes"})
    assert bad_policy.status_code == 422
    assert bad_policy.json()["error"] == "EvaluationFailed"

    missing = client.post("/api/channels/Nope/evaluate", headers=HEADERS, json={"version": "1.0.0"})
    assert missing.status_code == 404
