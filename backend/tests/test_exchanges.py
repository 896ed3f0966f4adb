# Overview: Pytest coverage for inter-shop exchanges.

"""
Exchange tests.

Verifies:
- stock only moves on completion, after the receiving shop confirmed
- only receiving-shop staff can confirm receipt
- a shortfall at completion leaves the exchange confirmed and stock untouched
- rejection rules
"""

import pytest

from shopledger.errors import (
    InsufficientStock,
    InvalidStateTransition,
    Unauthorized,
    ValidationError,
)
from shopledger.extensions import db
from shopledger.services import exchange_service, stock_ledger


@pytest.fixture
def screen_at_a(shop_a, stock_shop_item):
    return stock_shop_item(shop_a, "iPhone 12 Screen", 5, price_cents=9000)


class TestCreateExchange:
    def test_pending_exchange_moves_nothing(self, tech_a, shop_a, shop_b, screen_at_a):
        exchange = exchange_service.create_exchange(
            shop_a.id, shop_b.id, [{"item_id": screen_at_a.id, "quantity": 2}], tech_a, note="Customer pickup"
        )

        assert exchange.status == exchange_service.EXCHANGE_STATUS_PENDING
        assert [(line.item_name, line.quantity) for line in exchange.lines] == [("iPhone 12 Screen", 2)]
        assert stock_ledger.get_stock(screen_at_a.id) == 5

    def test_same_shop_rejected(self, tech_a, shop_a, screen_at_a):
        with pytest.raises(ValidationError):
            exchange_service.create_exchange(shop_a.id, shop_a.id, [{"item_id": screen_at_a.id, "quantity": 1}], tech_a)

    def test_item_must_belong_to_source_shop(self, tech_b, shop_a, shop_b, screen_at_a):
        with pytest.raises(ValidationError):
            exchange_service.create_exchange(shop_b.id, shop_a.id, [{"item_id": screen_at_a.id, "quantity": 1}], tech_b)

    def test_more_than_source_holds(self, tech_a, shop_a, shop_b, screen_at_a):
        with pytest.raises(InsufficientStock):
            exchange_service.create_exchange(shop_a.id, shop_b.id, [{"item_id": screen_at_a.id, "quantity": 6}], tech_a)

    def test_outsider_cannot_create(self, make_shop, make_staff, shop_a, shop_b, screen_at_a):
        outsider = make_staff(make_shop("Karen"))
        with pytest.raises(Unauthorized):
            exchange_service.create_exchange(shop_a.id, shop_b.id, [{"item_id": screen_at_a.id, "quantity": 1}], outsider)


class TestExchangeLifecycle:
    def test_happy_path(self, admin, tech_a, tech_b, shop_a, shop_b, screen_at_a):
        exchange = exchange_service.create_exchange(
            shop_a.id, shop_b.id, [{"item_id": screen_at_a.id, "quantity": 2}], tech_a
        )

        confirmed = exchange_service.confirm_receipt(exchange.id, tech_b)
        assert confirmed.status == exchange_service.EXCHANGE_STATUS_CONFIRMED
        assert confirmed.confirmed_by_user_id == tech_b.user_id
        assert stock_ledger.get_stock(screen_at_a.id) == 5

        completed = exchange_service.complete_exchange(exchange.id, admin)
        assert completed.status == exchange_service.EXCHANGE_STATUS_COMPLETED
        assert stock_ledger.get_stock(screen_at_a.id) == 3

        dest = stock_ledger.find_item("iPhone 12 Screen", shop_b.id)
        assert dest.stock == 2
        assert dest.price_cents == 9000
        assert stock_ledger.get_total_stock("iPhone 12 Screen") == 5

    def test_sender_cannot_confirm(self, tech_a, shop_a, shop_b, screen_at_a):
        exchange = exchange_service.create_exchange(
            shop_a.id, shop_b.id, [{"item_id": screen_at_a.id, "quantity": 1}], tech_a
        )
        with pytest.raises(Unauthorized):
            exchange_service.confirm_receipt(exchange.id, tech_a)

    def test_admin_outside_receiving_shop_cannot_confirm(self, admin, tech_a, shop_a, shop_b, screen_at_a):
        exchange = exchange_service.create_exchange(
            shop_a.id, shop_b.id, [{"item_id": screen_at_a.id, "quantity": 1}], tech_a
        )
        with pytest.raises(Unauthorized):
            exchange_service.confirm_receipt(exchange.id, admin)

    def test_cannot_complete_before_confirmation(self, admin, tech_a, shop_a, shop_b, screen_at_a):
        exchange = exchange_service.create_exchange(
            shop_a.id, shop_b.id, [{"item_id": screen_at_a.id, "quantity": 1}], tech_a
        )
        with pytest.raises(InvalidStateTransition):
            exchange_service.complete_exchange(exchange.id, admin)
        assert stock_ledger.get_stock(screen_at_a.id) == 5

    def test_technician_cannot_complete(self, tech_a, tech_b, shop_a, shop_b, screen_at_a):
        exchange = exchange_service.create_exchange(
            shop_a.id, shop_b.id, [{"item_id": screen_at_a.id, "quantity": 1}], tech_a
        )
        exchange_service.confirm_receipt(exchange.id, tech_b)
        with pytest.raises(Unauthorized):
            exchange_service.complete_exchange(exchange.id, tech_b)

    def test_shortfall_at_completion_keeps_confirmed(self, admin, tech_a, tech_b, shop_a, shop_b, screen_at_a):
        exchange = exchange_service.create_exchange(
            shop_a.id, shop_b.id, [{"item_id": screen_at_a.id, "quantity": 4}], tech_a
        )
        exchange_service.confirm_receipt(exchange.id, tech_b)
        stock_ledger.record_adjustment(screen_at_a.id, -3, admin, note="Sold meanwhile")

        with pytest.raises(InsufficientStock):
            exchange_service.complete_exchange(exchange.id, admin)

        refreshed = exchange_service.get_exchange(exchange.id)
        db.session.refresh(refreshed)
        assert refreshed.status == exchange_service.EXCHANGE_STATUS_CONFIRMED
        assert stock_ledger.get_stock(screen_at_a.id) == 2
        assert stock_ledger.find_item("iPhone 12 Screen", shop_b.id) is None

    def test_complete_twice_is_noop(self, admin, tech_a, tech_b, shop_a, shop_b, screen_at_a):
        exchange = exchange_service.create_exchange(
            shop_a.id, shop_b.id, [{"item_id": screen_at_a.id, "quantity": 2}], tech_a
        )
        exchange_service.confirm_receipt(exchange.id, tech_b)
        exchange_service.complete_exchange(exchange.id, admin)
        exchange_service.complete_exchange(exchange.id, admin)

        assert stock_ledger.get_stock(screen_at_a.id) == 3
        assert stock_ledger.get_stock_by_name("iPhone 12 Screen", shop_b.id) == 2

    def test_reject_confirmed_exchange(self, admin, tech_a, tech_b, shop_a, shop_b, screen_at_a):
        exchange = exchange_service.create_exchange(
            shop_a.id, shop_b.id, [{"item_id": screen_at_a.id, "quantity": 2}], tech_a
        )
        exchange_service.confirm_receipt(exchange.id, tech_b)

        rejected = exchange_service.reject_exchange(exchange.id, admin, reason="Wrong model")
        assert rejected.status == exchange_service.EXCHANGE_STATUS_REJECTED

        with pytest.raises(InvalidStateTransition):
            exchange_service.confirm_receipt(exchange.id, tech_b)
        assert stock_ledger.get_stock(screen_at_a.id) == 5

    def test_completed_exchange_cannot_be_rejected(self, admin, tech_a, tech_b, shop_a, shop_b, screen_at_a):
        exchange = exchange_service.create_exchange(
            shop_a.id, shop_b.id, [{"item_id": screen_at_a.id, "quantity": 1}], tech_a
        )
        exchange_service.confirm_receipt(exchange.id, tech_b)
        exchange_service.complete_exchange(exchange.id, admin)

        with pytest.raises(InvalidStateTransition):
            exchange_service.reject_exchange(exchange.id, admin)

    def test_list_by_shop_covers_both_sides(self, tech_a, shop_a, shop_b, make_shop, screen_at_a):
        exchange = exchange_service.create_exchange(
            shop_a.id, shop_b.id, [{"item_id": screen_at_a.id, "quantity": 1}], tech_a
        )
        other = make_shop("Thika")

        assert [x.id for x in exchange_service.list_exchanges(shop_id=shop_a.id)] == [exchange.id]
        assert [x.id for x in exchange_service.list_exchanges(shop_id=shop_b.id)] == [exchange.id]
        assert exchange_service.list_exchanges(shop_id=other.id) == []
