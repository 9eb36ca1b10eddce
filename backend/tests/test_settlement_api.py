from __future__ import annotations

from fastapi.testclient import TestClient

from backend.app import models
from backend.app.main import app

RANGE = {"start_date": "2025-03-10", "end_date": "2025-03-10"}


def _create_reseller(client, name: str, email: str, referral_code: str | None = None) -> dict:
    payload = {"full_name": name, "email": email}
    if referral_code:
        payload["referral_code"] = referral_code
    response = client.post("/resellers", json=payload)
    assert response.status_code == 201, response.text
    return response.json()


def test_endpoints_require_a_token():
    with TestClient(app) as anonymous:
        response = anonymous.get("/resellers")
    assert response.status_code == 401


def test_health_check(client):
    assert client.get("/").json() == {"status": "ok"}


def test_full_settlement_flow(client, db_session):
    referrer = _create_reseller(client, "Alice Referrer", "alice@example.com")
    reseller = _create_reseller(
        client, "Rita Reseller", "rita@example.com", referrer["referral_code"]
    )
    assert reseller["referrer_id"] == referrer["id"]

    quote = client.post(
        "/quotes",
        json={
            "reseller_id": reseller["id"],
            "spu": "SPU-LAMP",
            "country_code": "us",
            "quantity": 1,
            "product_cost": "10",
        },
    )
    assert quote.status_code == 201, quote.text
    assert quote.json()["total_price"] == "10.00"

    rule = client.post(
        f"/user-discount-rules/{reseller['id']}",
        json={"min_quantity": 5, "max_quantity": 10, "discount_rate": "0.9"},
    )
    assert rule.status_code == 201, rule.text

    imported = client.post(
        "/orders/import",
        json={
            "reseller_id": reseller["id"],
            "orders": [
                {
                    "marketplace_order_number": "O1",
                    "country_code": "US",
                    "product_spu": "SPU-LAMP",
                    "quantity": 2,
                    "buyer_name": "Buyer B",
                    "payment_time": "2025-03-10T09:00:00",
                },
                {
                    "marketplace_order_number": "O2",
                    "country_code": "US",
                    "product_spu": "SPU-LAMP",
                    "quantity": 5,
                    "buyer_name": "Buyer B",
                    "payment_time": "2025-03-10T18:30:00",
                },
                {
                    "marketplace_order_number": "O2",
                    "country_code": "US",
                    "product_spu": "SPU-LAMP",
                    "quantity": 5,
                    "buyer_name": "Buyer B",
                    "payment_time": "2025-03-10T18:30:00",
                },
            ],
        },
    )
    assert imported.status_code == 201, imported.text
    assert imported.json()["created_count"] == 2
    assert imported.json()["duplicates"] == ["O2"]

    report = client.post("/settlement/calculate", json=RANGE)
    assert report.status_code == 200, report.text
    body = report.json()
    assert body["processedOrders"] == 2
    assert body["settledOrders"] == 2
    assert body["failureReasons"] == {
        "noPriceInfo": 0,
        "noDiscountInfo": 0,
        "priceCalculationError": 0,
    }
    assert body["processingTime"].endswith("ms")

    orders = client.get("/settlement/orders", params=RANGE).json()
    amounts = {
        order["marketplace_order_number"]: order["settlement_amount"]
        for order in orders["calculated"]
    }
    assert amounts == {"O1": "18.00", "O2": "45.00"}

    executed = client.post(
        "/settlement/execute", json={**RANGE, "reseller_id": reseller["id"], "notes": "March"}
    )
    assert executed.status_code == 200, executed.text
    result = executed.json()
    assert result["total_settlement_amount"] == "63.00"
    assert result["order_count"] == 2
    assert result["commission_id"]

    again = client.post("/settlement/execute", json={**RANGE, "reseller_id": reseller["id"]})
    assert again.status_code == 409

    record = client.get(f"/settlement-records/{result['settlement_record_id']}")
    assert record.status_code == 200
    detail = record.json()
    assert detail["status"] == "completed"
    assert detail["executed_by"] == "admin@example.com"
    assert len(detail["orders"]) == 2
    assert detail["commission"]["commission_amount"] == "1.26"

    commissions = client.get("/commissions", params={"status": "pending"}).json()
    assert commissions["total"] == 1
    assert commissions["items"][0]["referrer"]["email"] == "alice@example.com"

    missing_reason = client.put(
        f"/commissions/{result['commission_id']}/review", json={"status": "rejected"}
    )
    assert missing_reason.status_code == 422

    approved = client.put(
        f"/commissions/{result['commission_id']}/review", json={"status": "approved"}
    )
    assert approved.status_code == 200, approved.text
    assert approved.json()["status"] == "approved"

    repeated = client.put(
        f"/commissions/{result['commission_id']}/review", json={"status": "approved"}
    )
    assert repeated.status_code == 409

    wallet = client.get(f"/resellers/{referrer['id']}/wallet-transactions").json()
    assert wallet["total"] == 1
    assert wallet["items"][0]["amount"] == "1.26"
    assert client.get(f"/resellers/{referrer['id']}").json()["wallet_balance"] == "1.26"

    consistency = client.get("/settlement-records/consistency").json()
    assert consistency["checked_records"] == 1
    assert consistency["mismatched_records"] == []

    runs = client.get("/settlement/runs").json()
    assert sorted(run["outcome"] for run in runs) == ["rejected", "success", "success"]
    executes = client.get("/settlement/runs", params={"run_type": "execute"}).json()
    assert len(executes) == 2


def test_overlapping_rule_returns_conflict(client):
    reseller = _create_reseller(client, "Rita", "rita@example.com")
    url = f"/user-discount-rules/{reseller['id']}"
    first = client.post(url, json={"min_quantity": 1, "max_quantity": 5, "discount_rate": "0.95"})
    assert first.status_code == 201

    response = client.post(
        url, json={"min_quantity": 3, "max_quantity": 8, "discount_rate": "0.9"}
    )

    assert response.status_code == 409
    assert "conflicting_rule_id" in response.json()["detail"]


def test_invalid_date_range_is_rejected(client):
    response = client.post(
        "/settlement/calculate", json={"start_date": "2025-03-11", "end_date": "2025-03-10"}
    )
    assert response.status_code == 422


def test_execute_for_unknown_reseller_returns_404(client):
    response = client.post("/settlement/execute", json={**RANGE, "reseller_id": "missing"})
    assert response.status_code == 404


def test_commission_rate_setting_round_trip(client):
    current = client.get("/settings/commission-rate").json()
    assert current["rate"] == "0.02"
    assert current["source"] == "default"

    updated = client.put("/settings/commission-rate", json={"rate": "0.035"})
    assert updated.status_code == 200, updated.text
    assert updated.json()["source"] == "database"
    assert updated.json()["updated_by"] == "admin@example.com"

    assert client.put("/settings/commission-rate", json={"rate": "2"}).status_code == 422


def test_quote_resolution_endpoint(client):
    reseller = _create_reseller(client, "Rita", "rita@example.com")
    lookup = {"reseller_id": reseller["id"], "spu": "SPU-MUG", "country_code": "GB"}
    client.post("/quotes", json={**lookup, "quantity": 2, "total_price": "9"})

    resolved = client.get("/quotes/resolve", params={**lookup, "quantity": 3}).json()
    missing = client.get("/quotes/resolve", params={**lookup, "quantity": 1}).json()

    assert resolved["unit_price"] == "4.50"
    assert resolved["quote"]["quantity"] == 2
    assert missing["failure"] == "noPriceInfo"


def test_admin_cancel_and_sku_mapping(client, db_session):
    reseller = _create_reseller(client, "Rita", "rita@example.com")
    client.post(
        "/orders/import",
        json={
            "reseller_id": reseller["id"],
            "orders": [
                {
                    "marketplace_order_number": "C1",
                    "country_code": "US",
                    "product_sku": "SKU-RED",
                    "quantity": 1,
                    "payment_time": "2025-03-10T10:00:00",
                }
            ],
        },
    )
    order = db_session.query(models.Order).filter_by(marketplace_order_number="C1").one()

    mapping = client.put("/orders/sku-mappings", json={"sku": "SKU-RED", "spu": "SPU-RED"})
    assert mapping.status_code == 200
    assert mapping.json()["spu"] == "SPU-RED"

    cancelled = client.post("/orders/cancel", json={"order_ids": [order.id, "unknown"]})
    assert cancelled.status_code == 200
    assert cancelled.json()["cancelled_order_ids"] == [order.id]
    assert cancelled.json()["skipped_order_ids"] == ["unknown"]
    assert cancelled.json()["reason"] == "Cancelled by administrator"

    stats = client.get("/settlement/stats", params=RANGE).json()
    assert stats["cancelled_orders"] == 1
    assert stats["total_settlement_amount"] == "0.00"


def test_rates_beyond_four_decimal_places_are_rejected(client):
    reseller = _create_reseller(client, "Rita", "rita@example.com")

    rate = client.put("/settings/commission-rate", json={"rate": "0.02555"})
    rule = client.post(
        f"/user-discount-rules/{reseller['id']}",
        json={"min_quantity": 1, "max_quantity": 5, "discount_rate": "0.12345"},
    )

    assert rate.status_code == 422
    assert rule.status_code == 422


def test_delete_all_discount_rules(client):
    reseller = _create_reseller(client, "Rita", "rita@example.com")
    url = f"/user-discount-rules/{reseller['id']}"
    client.post(url, json={"min_quantity": 1, "max_quantity": 4, "discount_rate": "0.95"})
    client.post(url, json={"min_quantity": 5, "max_quantity": 9, "discount_rate": "0.9"})

    response = client.delete(url)

    assert response.status_code == 200
    assert response.json() == {"reseller_id": reseller["id"], "deleted_count": 2}
    assert client.get(url).json()["total"] == 0
    assert client.delete("/user-discount-rules/missing").status_code == 404


def test_referral_stats_endpoint(client):
    referrer = _create_reseller(client, "Alice", "alice@example.com")
    _create_reseller(client, "Rita", "rita@example.com", referrer["referral_code"])

    stats = client.get(f"/resellers/{referrer['id']}/referral-stats")

    assert stats.status_code == 200
    body = stats.json()
    assert body["referee_count"] == 1
    assert body["referees"][0]["email"] == "rita@example.com"
    assert body["referees"][0]["total_settled_amount"] == "0.00"
    assert body["commissions"]["total_commissions"] == 0
    assert client.get("/resellers/missing/referral-stats").status_code == 404


def test_refunded_rows_may_omit_quantity(client):
    reseller = _create_reseller(client, "Rita", "rita@example.com")
    row = {
        "marketplace_order_number": "R1",
        "country_code": "US",
        "payment_time": "2025-03-10T09:00:00",
    }

    missing = client.post(
        "/orders/import", json={"reseller_id": reseller["id"], "orders": [row]}
    )
    refunded = client.post(
        "/orders/import",
        json={"reseller_id": reseller["id"], "orders": [{**row, "order_status": "已退款"}]},
    )

    assert missing.status_code == 422
    assert refunded.status_code == 201, refunded.text
    report = client.post("/settlement/calculate", json=RANGE).json()
    assert report["cancelledOrders"] == 1
