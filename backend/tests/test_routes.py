"""
HTTP surface tests.

Verifies:
- requests without gateway headers return 401
- roles without the permission get 403 and nothing changes
- service errors map to their status codes and machine codes
- a full repair round trip through the API
"""

import pytest

from shopledger.services import stock_ledger


# =============================================================================
# UNAUTHENTICATED ACCESS (401)
# =============================================================================


class TestUnauthenticatedAccess:
    @pytest.mark.parametrize(
        "method,path",
        [
            ("GET", "/api/inventory/items"),
            ("POST", "/api/inventory/purchases"),
            ("GET", "/api/allocations"),
            ("POST", "/api/allocations/1/approve"),
            ("GET", "/api/exchanges"),
            ("POST", "/api/repairs"),
            ("POST", "/api/repairs/1/collect"),
            ("GET", "/api/supplier-debts"),
            ("GET", "/api/payments/daily-totals"),
            ("POST", "/api/sales"),
            ("GET", "/api/activity"),
        ],
    )
    def test_requires_principal(self, client, method, path):
        resp = getattr(client, method.lower())(path)
        assert resp.status_code == 401, f"{method} {path} returned {resp.status_code}"
        assert resp.json["code"] == "UNAUTHENTICATED"

    def test_unknown_role_is_unauthenticated(self, client):
        resp = client.get("/api/inventory/items", headers={"X-User-Id": "5", "X-User-Roles": "owner"})
        assert resp.status_code == 401

    def test_health_is_public(self, client):
        resp = client.get("/health")
        assert resp.status_code == 200


# =============================================================================
# ROLE CHECKS (403)
# =============================================================================


class TestTechnicianDenied:
    def test_cannot_record_purchase(self, client, headers_for, tech_a, supplier):
        resp = client.post(
            "/api/inventory/purchases",
            json={"supplier_id": supplier.id, "lines": [{"name": "Charger", "quantity": 1}]},
            headers=headers_for(tech_a),
        )
        assert resp.status_code == 403
        assert resp.json["code"] == "UNAUTHORIZED"
        assert stock_ledger.find_item("Charger", None) is None

    def test_cannot_approve_allocation(self, client, headers_for, admin, tech_a, shop_a, stock_pool_item):
        pool = stock_pool_item("iPhone 12 Screen", 5)
        created = client.post(
            "/api/allocations",
            json={"item_id": pool.id, "destinations": [{"shop_id": shop_a.id, "quantity": 2}]},
            headers=headers_for(admin),
        )
        assert created.status_code == 201

        resp = client.post(f"/api/allocations/{created.json['id']}/approve", headers=headers_for(tech_a))
        assert resp.status_code == 403
        assert stock_ledger.get_stock(pool.id) == 5

    def test_cannot_view_payments(self, client, headers_for, tech_a):
        resp = client.get("/api/payments/daily-totals", headers=headers_for(tech_a))
        assert resp.status_code == 403

    def test_cannot_view_other_shop_repairs(self, client, headers_for, tech_a, shop_b):
        resp = client.get(f"/api/repairs?shop_id={shop_b.id}", headers=headers_for(tech_a))
        assert resp.status_code == 403


class TestStaffWithoutShop:
    @pytest.mark.parametrize(
        "path",
        [
            "/api/repairs",
            "/api/repairs/pending-collections",
            "/api/payments",
            "/api/payments/daily-totals",
            "/api/payments/pending-deposits",
        ],
    )
    def test_shop_scoped_reads_denied(self, client, headers_for, make_staff, tech_a, path):
        client.post(
            "/api/repairs",
            json={"customer_name": "Jane", "phone_number": "0712"},
            headers=headers_for(tech_a),
        )
        floating = make_staff(None, role="manager")

        resp = client.get(path, headers=headers_for(floating))

        assert resp.status_code == 403, f"{path} returned {resp.status_code}"
        assert resp.json["code"] == "UNAUTHORIZED"
        assert "repairs" not in resp.json

    def test_admin_without_shop_still_sees_all(self, client, headers_for, admin, tech_a):
        client.post(
            "/api/repairs",
            json={"customer_name": "Jane", "phone_number": "0712"},
            headers=headers_for(tech_a),
        )
        resp = client.get("/api/repairs", headers=headers_for(admin))
        assert resp.status_code == 200
        assert len(resp.json["repairs"]) == 1


# =============================================================================
# ERROR MAPPING
# =============================================================================


class TestErrorMapping:
    def test_validation_error_is_400(self, client, headers_for, tech_a):
        resp = client.post("/api/repairs", json={"phone_number": "0712"}, headers=headers_for(tech_a))
        assert resp.status_code == 400
        assert resp.json["code"] == "VALIDATION_ERROR"
        assert resp.json["field"] == "customer_name"

    def test_not_found_is_404(self, client, headers_for, admin):
        resp = client.post("/api/allocations/424242/approve", headers=headers_for(admin))
        assert resp.status_code == 404
        assert resp.json["code"] == "NOT_FOUND"

    def test_insufficient_stock_is_409(self, client, headers_for, tech_a, shop_a, stock_shop_item):
        item = stock_shop_item(shop_a, "Charger", 1, price_cents=800)
        resp = client.post(
            "/api/sales",
            json={"lines": [{"item_id": item.id, "quantity": 2}]},
            headers=headers_for(tech_a),
        )
        assert resp.status_code == 409
        assert resp.json["code"] == "INSUFFICIENT_STOCK"
        assert resp.json["available"] == 1
        assert stock_ledger.get_stock(item.id) == 1

    def test_cost_fields_hidden_without_permission(self, client, headers_for, admin, tech_a, shop_a, stock_shop_item):
        stock_shop_item(shop_a, "Charger", 1, cost_price_cents=450)

        as_tech = client.get(f"/api/inventory/items?shop_id={shop_a.id}", headers=headers_for(tech_a))
        as_admin = client.get(f"/api/inventory/items?shop_id={shop_a.id}", headers=headers_for(admin))

        assert "cost_price_cents" not in as_tech.json["items"][0]
        assert as_admin.json["items"][0]["cost_price_cents"] == 450


# =============================================================================
# ROUND TRIP
# =============================================================================


class TestRepairRoundTrip:
    def test_intake_submit_approve_collect(self, client, headers_for, admin, tech_a, shop_a, stock_shop_item):
        screen = stock_shop_item(shop_a, "iPhone 12 Screen", 2, price_cents=9000)
        tech = headers_for(tech_a)

        created = client.post(
            "/api/repairs",
            json={
                "customer_name": "Brian Otieno",
                "phone_number": "0722000000",
                "parts": [{"item_id": screen.id, "quantity": 1}],
                "labor_cost_cents": 1000,
            },
            headers=tech,
        )
        assert created.status_code == 201
        repair_id = created.json["id"]
        assert created.json["balance_cents"] == 10000

        early = client.post(f"/api/repairs/{repair_id}/collect", headers=tech)
        assert early.status_code == 409

        submitted = client.post(
            f"/api/repairs/{repair_id}/payments/submit",
            json={"method": "mpesa", "reference": "MPX1"},
            headers=tech,
        )
        assert submitted.status_code == 200
        assert submitted.json["pending_transaction"]["amount_cents"] == 10000

        approved = client.post(f"/api/repairs/{repair_id}/payments/approve", headers=headers_for(admin))
        assert approved.status_code == 200
        assert approved.json["payment_status"] == "fully_paid"

        collected = client.post(f"/api/repairs/{repair_id}/collect", headers=tech)
        assert collected.status_code == 200
        assert collected.json["status"] == "COLLECTED"

        feed = client.get("/api/activity?entity_type=repair", headers=tech)
        assert feed.status_code == 200
        assert [ev["event_type"] for ev in feed.json["events"]] == [
            "repair.created",
            "repair.payment_submitted",
            "repair.payment_approved",
            "repair.collected",
        ]
