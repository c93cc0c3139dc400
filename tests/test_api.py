"""
HTTP boundary: FastAPI routes over an in-memory pricing service.
"""
from datetime import timedelta

import pytest
from fastapi.testclient import TestClient

from storefront_pricing.api.main import app
from storefront_pricing.api.state import get_service

from conftest import NOW


@pytest.fixture
def client(make_service, make_rule):
    service = make_service(rules=[
        make_rule("promo", [("percentage", 10)], name="Spring Promo", priority=2,
                  start_date=(NOW - timedelta(days=30)).isoformat()),
        make_rule("retired", [("fixed", 1)], status="inactive"),
    ])
    app.dependency_overrides[get_service] = lambda: service
    yield TestClient(app)
    app.dependency_overrides.clear()


def test_calculate(client):
    response = client.post("/pricing/calculate", json={
        "product_id": "P1",
        "context": {"date": "2025-06-11T12:00:00"},
    })
    assert response.status_code == 200

    data = response.json()
    assert data["original_price"] == 50.0
    assert data["final_price"] == 45.0
    assert data["currency"] == "USD"
    assert data["applied_rules"][0]["rule_id"] == "promo"
    assert data["applied_rules"][0]["adjustment_type"] == "percentage"


def test_calculate_with_utc_date(client):
    response = client.post("/pricing/calculate", json={
        "product_id": "P1",
        "context": {"date": "2025-06-11T12:00:00Z"},
    })
    assert response.status_code == 200
    assert response.json()["final_price"] == 45.0


def test_calculate_with_excluded_rule(client):
    response = client.post("/pricing/calculate", json={
        "product_id": "P1",
        "context": {"date": "2025-06-11T12:00:00", "exclude_rule_ids": ["promo"]},
    })
    assert response.json()["final_price"] == 50.0


def test_calculate_unknown_product(client):
    response = client.post("/pricing/calculate", json={"product_id": "NOPE"})
    assert response.status_code == 404
    assert response.json()["detail"]["code"] == "product_not_found"


def test_calculate_rejects_zero_quantity(client):
    response = client.post("/pricing/calculate", json={"product_id": "P1", "context": {"quantity": 0}})
    assert response.status_code == 422


def test_calculate_batch(client):
    response = client.post("/pricing/calculate-batch", json={
        "items": [
            {"product_id": "P1"},
            {"product_id": "P1", "variant_id": "V1-SALE"},
            {"product_id": "P2", "quantity": 2},
        ],
        "context": {"date": "2025-06-11T12:00:00"},
    })
    assert response.status_code == 200

    data = response.json()
    assert set(data) == {"P1", "P1:V1-SALE", "P2"}
    assert data["P1:V1-SALE"]["original_price"] == 45.0
    assert data["P2"]["final_price"] == 90.0


def test_list_rules(client):
    rules = client.get("/api/rules").json()
    assert {r["rule_id"] for r in rules} == {"promo", "retired"}

    active = client.get("/api/rules", params={"include_inactive": False}).json()
    assert [r["rule_id"] for r in active] == ["promo"]


def test_get_rule(client):
    response = client.get("/api/rules/promo")
    assert response.status_code == 200
    data = response.json()
    assert data["name"] == "Spring Promo"
    assert data["adjustments"] == [{"type": "percentage", "value": 10.0, "target": None}]

    assert client.get("/api/rules/missing").status_code == 404


def test_rule_impact(client):
    response = client.post("/api/rules/promo/impact", json={"product_id": "P2"})
    assert response.status_code == 200

    data = response.json()
    assert data["impact"] == pytest.approx(10.0)
    assert data["percentage_impact"] == pytest.approx(10.0)
    assert data["after_rule"]["final_price"] == pytest.approx(90.0)

    missing = client.post("/api/rules/missing/impact", json={"product_id": "P2"})
    assert missing.status_code == 404
    assert missing.json()["detail"]["code"] == "rule_not_found"


def test_status(client):
    data = client.get("/system/status").json()
    assert data["engine_active"] is True
    assert data["products_count"] == 4
    assert data["rules_count"] == 2
    assert data["active_rules_count"] == 1
