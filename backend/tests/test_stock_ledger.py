# Overview: Pytest coverage for the stock ledger and purchase intake.

"""
Stock ledger tests.

Verifies:
- adjust() never lets a row go negative and writes nothing on refusal
- every adjustment leaves a movement with the resulting quantity
- purchases land in the pool (flagged for allocation) or a shop row
- manual items, corrections and deactivation
"""

import pytest

from shopledger.errors import InsufficientStock, NotFound, Unauthorized, ValidationError
from shopledger.extensions import db
from shopledger.models import ActivityEvent, StockMovement
from shopledger.services import purchase_service, stock_ledger


# =============================================================================
# ADJUST
# =============================================================================


class TestAdjust:
    def test_increment_and_decrement(self, shop_a, stock_shop_item):
        item = stock_shop_item(shop_a, "USB-C Cable", 5)

        assert stock_ledger.adjust(item.id, 3, reason=stock_ledger.REASON_ADJUST) == 8
        assert stock_ledger.adjust(item.id, -8, reason=stock_ledger.REASON_SALE) == 0
        db.session.commit()

        assert stock_ledger.get_stock(item.id) == 0

    def test_refuses_negative_result(self, shop_a, stock_shop_item):
        item = stock_shop_item(shop_a, "Screen Protector", 2)
        movements_before = db.session.query(StockMovement).filter_by(item_id=item.id).count()

        with pytest.raises(InsufficientStock) as exc:
            stock_ledger.adjust(item.id, -3, reason=stock_ledger.REASON_SALE)
        db.session.rollback()

        assert exc.value.details["available"] == 2
        assert exc.value.details["requested"] == 3
        assert stock_ledger.get_stock(item.id) == 2
        assert db.session.query(StockMovement).filter_by(item_id=item.id).count() == movements_before

    def test_zero_delta_rejected(self, shop_a, stock_shop_item):
        item = stock_shop_item(shop_a, "Charger", 1)
        with pytest.raises(ValidationError):
            stock_ledger.adjust(item.id, 0, reason=stock_ledger.REASON_ADJUST)

    def test_unknown_reason_rejected(self, shop_a, stock_shop_item):
        item = stock_shop_item(shop_a, "Charger", 1)
        with pytest.raises(ValidationError):
            stock_ledger.adjust(item.id, 1, reason="GIFT")

    def test_missing_item(self):
        with pytest.raises(NotFound):
            stock_ledger.adjust(999999, 1, reason=stock_ledger.REASON_ADJUST)

    def test_movement_records_stock_after(self, shop_a, stock_shop_item):
        item = stock_shop_item(shop_a, "Battery", 4)
        stock_ledger.adjust(item.id, -1, reason=stock_ledger.REASON_REPAIR_PART, reference_type="repair", reference_id=7)
        db.session.commit()

        latest = stock_ledger.list_movements(item.id)[0]
        assert latest.delta == -1
        assert latest.stock_after == 3
        assert latest.reason == stock_ledger.REASON_REPAIR_PART
        assert latest.reference_id == 7

    def test_adjust_by_name_requires_existing_row(self, shop_a):
        with pytest.raises(NotFound):
            stock_ledger.adjust_by_name("Ghost Part", shop_a.id, 1, reason=stock_ledger.REASON_ADJUST)


class TestEnsureItem:
    def test_creates_zero_row_with_template_metadata(self, shop_a, stock_pool_item):
        pool = stock_pool_item("iPhone 12 Screen", 10, cost_price_cents=4500)
        pool.price_cents = 9000
        pool.reorder_level = 2
        db.session.commit()

        row = stock_ledger.ensure_item("iPhone 12 Screen", shop_a.id, template=pool)
        db.session.commit()

        assert row.stock == 0
        assert row.shop_id == shop_a.id
        assert row.price_cents == 9000
        assert row.reorder_level == 2
        assert row.cost_price_cents == 4500

    def test_returns_existing_row(self, shop_a, stock_shop_item):
        item = stock_shop_item(shop_a, "Back Cover", 3)
        assert stock_ledger.ensure_item("Back Cover", shop_a.id).id == item.id

    def test_reactivates_inactive_row(self, shop_a, stock_shop_item, admin):
        item = stock_shop_item(shop_a, "Back Cover", 1)
        stock_ledger.deactivate_item(item.id, admin)

        row = stock_ledger.ensure_item("Back Cover", shop_a.id)
        assert row.id == item.id
        assert row.is_active is True


# =============================================================================
# PURCHASES
# =============================================================================


class TestPurchases:
    def test_pool_purchase_flags_pending_allocation(self, supplier, admin):
        purchase = purchase_service.record_purchase(
            {
                "supplier_id": supplier.id,
                "lines": [
                    {"name": "iPhone 12 Screen", "quantity": 10, "cost_price_cents": 4500},
                    {"name": "Samsung A10 Battery", "quantity": 4, "cost_price_cents": 1200},
                ],
            },
            admin,
        )

        assert purchase.total_cents == 10 * 4500 + 4 * 1200
        assert len(purchase.lines) == 2

        pool = stock_ledger.find_item("iPhone 12 Screen", None)
        assert pool.stock == 10
        assert pool.pending_allocation is True
        assert pool.initial_stock == 10
        assert pool.supplier_id == supplier.id

    def test_shop_purchase_goes_to_shop_row(self, supplier, admin, shop_a):
        purchase_service.record_purchase(
            {
                "supplier_id": supplier.id,
                "shop_id": shop_a.id,
                "lines": [{"name": "Earphones", "quantity": 6, "cost_price_cents": 300, "price_cents": 800}],
            },
            admin,
        )

        item = stock_ledger.find_item("Earphones", shop_a.id)
        assert item.stock == 6
        assert item.price_cents == 800
        assert item.pending_allocation is False
        assert stock_ledger.find_item("Earphones", None) is None

    def test_repeat_purchase_accumulates(self, stock_pool_item):
        stock_pool_item("Tempered Glass", 5)
        pool = stock_pool_item("Tempered Glass", 7)
        assert pool.stock == 12
        assert stock_ledger.get_total_stock("Tempered Glass") == 12

    def test_purchase_writes_movements_and_event(self, stock_pool_item):
        pool = stock_pool_item("Tempered Glass", 5)
        movements = stock_ledger.list_movements(pool.id)
        assert [m.reason for m in movements] == [stock_ledger.REASON_PURCHASE]
        assert db.session.query(ActivityEvent).filter_by(event_type="purchase.recorded").count() == 1

    def test_duplicate_line_names_rejected(self, supplier, admin):
        with pytest.raises(ValidationError):
            purchase_service.record_purchase(
                {
                    "supplier_id": supplier.id,
                    "lines": [
                        {"name": "Charger", "quantity": 1, "cost_price_cents": 100},
                        {"name": "Charger", "quantity": 2, "cost_price_cents": 100},
                    ],
                },
                admin,
            )

    def test_unknown_supplier_writes_nothing(self, admin):
        with pytest.raises(NotFound):
            purchase_service.record_purchase(
                {"supplier_id": 424242, "lines": [{"name": "Charger", "quantity": 1}]},
                admin,
            )
        assert stock_ledger.find_item("Charger", None) is None

    def test_technician_cannot_purchase(self, supplier, tech_a):
        with pytest.raises(Unauthorized):
            purchase_service.record_purchase(
                {"supplier_id": supplier.id, "lines": [{"name": "Charger", "quantity": 1}]},
                tech_a,
            )


# =============================================================================
# MANUAL ITEMS / CORRECTIONS
# =============================================================================


class TestManualStock:
    def test_create_item_posts_opening_stock(self, admin, shop_a):
        item = stock_ledger.create_item(
            {"name": "Phone Case", "category": "Accessory", "shop_id": shop_a.id, "stock": 9, "price_cents": 500},
            admin,
        )

        assert item.stock == 9
        assert item.initial_stock == 9
        movements = stock_ledger.list_movements(item.id)
        assert len(movements) == 1
        assert movements[0].reason == stock_ledger.REASON_ADJUST
        assert movements[0].stock_after == 9

    def test_create_item_refuses_duplicate_name(self, admin, shop_a, stock_shop_item):
        stock_shop_item(shop_a, "Phone Case", 1)
        with pytest.raises(ValidationError):
            stock_ledger.create_item({"name": "Phone Case", "shop_id": shop_a.id}, admin)

    def test_record_adjustment_cannot_go_negative(self, admin, shop_a, stock_shop_item):
        item = stock_shop_item(shop_a, "Phone Case", 2)

        stock_ledger.record_adjustment(item.id, -1, admin, note="Damaged")
        with pytest.raises(InsufficientStock):
            stock_ledger.record_adjustment(item.id, -5, admin, note="Recount")

        assert stock_ledger.get_stock(item.id) == 1

    def test_low_stock_lists_rows_at_reorder_level(self, admin, shop_a):
        stock_ledger.create_item({"name": "Low", "shop_id": shop_a.id, "stock": 1, "reorder_level": 2}, admin)
        stock_ledger.create_item({"name": "Fine", "shop_id": shop_a.id, "stock": 10, "reorder_level": 2}, admin)

        names = [item.name for item in stock_ledger.low_stock_items(shop_a.id)]
        assert names == ["Low"]

    def test_deactivated_items_hidden_from_listing(self, admin, shop_a, stock_shop_item):
        item = stock_shop_item(shop_a, "Old Model Case", 1)
        stock_ledger.deactivate_item(item.id, admin)

        assert item.id not in [i.id for i in stock_ledger.list_items(shop_id=shop_a.id)]
        assert item.id in [i.id for i in stock_ledger.list_items(shop_id=shop_a.id, include_inactive=True)]
