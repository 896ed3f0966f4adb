# Overview: Pytest coverage for pool allocations.

"""
Allocation tests.

Verifies:
- approval moves exactly total_qty from the pool into the destination shops
- a second approval is a no-op
- a pool shortfall at approval leaves the allocation pending and stock untouched
- rejection and role checks
"""

import pytest

from shopledger.errors import (
    AllocationExceedsPool,
    InvalidStateTransition,
    NotFound,
    Unauthorized,
    ValidationError,
)
from shopledger.extensions import db
from shopledger.models import StockMovement
from shopledger.services import allocation_service, stock_ledger


class TestRequestAllocation:
    def test_pending_allocation_has_no_ledger_effect(self, admin, shop_a, shop_b, stock_pool_item):
        pool = stock_pool_item("iPhone 12 Screen", 10)

        allocation = allocation_service.request_allocation(
            pool.id,
            [{"shop_id": shop_a.id, "quantity": 4}, {"shop_id": shop_b.id, "quantity": 3}],
            admin,
        )

        assert allocation.status == allocation_service.ALLOCATION_STATUS_PENDING
        assert allocation.total_qty == 7
        assert stock_ledger.get_stock(pool.id) == 10
        assert stock_ledger.find_item("iPhone 12 Screen", shop_a.id) is None

    def test_quantities_must_add_up(self, admin, shop_a, stock_pool_item):
        pool = stock_pool_item("iPhone 12 Screen", 10)
        with pytest.raises(ValidationError):
            allocation_service.request_allocation(
                pool.id, [{"shop_id": shop_a.id, "quantity": 4}], admin, total_qty=5
            )

    def test_duplicate_destination_rejected(self, admin, shop_a, stock_pool_item):
        pool = stock_pool_item("iPhone 12 Screen", 10)
        with pytest.raises(ValidationError):
            allocation_service.request_allocation(
                pool.id,
                [{"shop_id": shop_a.id, "quantity": 1}, {"shop_id": shop_a.id, "quantity": 2}],
                admin,
            )

    def test_more_than_pool_holds(self, admin, shop_a, stock_pool_item):
        pool = stock_pool_item("iPhone 12 Screen", 3)
        with pytest.raises(AllocationExceedsPool):
            allocation_service.request_allocation(pool.id, [{"shop_id": shop_a.id, "quantity": 4}], admin)

    def test_shop_row_cannot_be_allocated(self, admin, shop_a, shop_b, stock_shop_item):
        item = stock_shop_item(shop_a, "Charger", 5)
        with pytest.raises(ValidationError):
            allocation_service.request_allocation(item.id, [{"shop_id": shop_b.id, "quantity": 1}], admin)

    def test_unknown_shop(self, admin, stock_pool_item):
        pool = stock_pool_item("iPhone 12 Screen", 3)
        with pytest.raises(NotFound):
            allocation_service.request_allocation(pool.id, [{"shop_id": 987654, "quantity": 1}], admin)

    def test_technician_cannot_request(self, tech_a, shop_a, stock_pool_item):
        pool = stock_pool_item("iPhone 12 Screen", 3)
        with pytest.raises(Unauthorized):
            allocation_service.request_allocation(pool.id, [{"shop_id": shop_a.id, "quantity": 1}], tech_a)


class TestApproveAllocation:
    def test_approval_moves_stock_once(self, admin, shop_a, shop_b, stock_pool_item):
        pool = stock_pool_item("iPhone 12 Screen", 10)
        allocation = allocation_service.request_allocation(
            pool.id,
            [{"shop_id": shop_a.id, "quantity": 4}, {"shop_id": shop_b.id, "quantity": 3}],
            admin,
        )

        approved = allocation_service.approve_allocation(allocation.id, admin)

        assert approved.status == allocation_service.ALLOCATION_STATUS_APPROVED
        assert approved.approved_by_user_id == admin.user_id
        assert stock_ledger.get_stock(pool.id) == 3
        assert stock_ledger.get_stock_by_name("iPhone 12 Screen", shop_a.id) == 4
        assert stock_ledger.get_stock_by_name("iPhone 12 Screen", shop_b.id) == 3
        assert stock_ledger.get_total_stock("iPhone 12 Screen") == 10

    def test_second_approval_is_noop(self, admin, shop_a, stock_pool_item):
        pool = stock_pool_item("iPhone 12 Screen", 10)
        allocation = allocation_service.request_allocation(pool.id, [{"shop_id": shop_a.id, "quantity": 6}], admin)

        allocation_service.approve_allocation(allocation.id, admin)
        again = allocation_service.approve_allocation(allocation.id, admin)

        assert again.status == allocation_service.ALLOCATION_STATUS_APPROVED
        assert stock_ledger.get_stock(pool.id) == 4
        assert stock_ledger.get_stock_by_name("iPhone 12 Screen", shop_a.id) == 6
        out_moves = (
            db.session.query(StockMovement)
            .filter_by(reason=stock_ledger.REASON_ALLOCATION_OUT, reference_id=allocation.id)
            .count()
        )
        assert out_moves == 1

    def test_shortfall_at_approval_rolls_back(self, admin, shop_a, stock_pool_item):
        pool = stock_pool_item("iPhone 12 Screen", 5)
        allocation = allocation_service.request_allocation(pool.id, [{"shop_id": shop_a.id, "quantity": 5}], admin)

        # Stock leaves the pool between request and approval
        stock_ledger.record_adjustment(pool.id, -2, admin, note="Damaged in transit")

        with pytest.raises(AllocationExceedsPool):
            allocation_service.approve_allocation(allocation.id, admin)

        refreshed = allocation_service.get_allocation(allocation.id)
        db.session.refresh(refreshed)
        assert refreshed.status == allocation_service.ALLOCATION_STATUS_PENDING
        assert stock_ledger.get_stock(pool.id) == 3
        assert stock_ledger.find_item("iPhone 12 Screen", shop_a.id) is None

    def test_emptied_pool_clears_pending_flag(self, admin, shop_a, stock_pool_item):
        pool = stock_pool_item("Samsung A10 Battery", 4)
        allocation = allocation_service.request_allocation(pool.id, [{"shop_id": shop_a.id, "quantity": 4}], admin)

        allocation_service.approve_allocation(allocation.id, admin)

        db.session.refresh(pool)
        assert pool.stock == 0
        assert pool.pending_allocation is False
        assert allocation_service.list_items_awaiting_allocation() == []

    def test_shop_row_inherits_pool_metadata(self, admin, shop_a, stock_pool_item):
        pool = stock_pool_item("Samsung A10 Battery", 4, cost_price_cents=1200)
        allocation = allocation_service.request_allocation(pool.id, [{"shop_id": shop_a.id, "quantity": 2}], admin)

        allocation_service.approve_allocation(allocation.id, admin)

        shop_row = stock_ledger.find_item("Samsung A10 Battery", shop_a.id)
        assert shop_row.cost_price_cents == 1200
        assert shop_row.pending_allocation is False

    def test_manager_cannot_approve(self, admin, manager_a, shop_a, stock_pool_item):
        pool = stock_pool_item("iPhone 12 Screen", 10)
        allocation = allocation_service.request_allocation(pool.id, [{"shop_id": shop_a.id, "quantity": 1}], manager_a)

        with pytest.raises(Unauthorized):
            allocation_service.approve_allocation(allocation.id, manager_a)
        assert stock_ledger.get_stock(pool.id) == 10


class TestRejectAllocation:
    def test_rejected_allocation_cannot_be_approved(self, admin, shop_a, stock_pool_item):
        pool = stock_pool_item("iPhone 12 Screen", 10)
        allocation = allocation_service.request_allocation(pool.id, [{"shop_id": shop_a.id, "quantity": 2}], admin)

        rejected = allocation_service.reject_allocation(allocation.id, admin, reason="Wrong split")
        assert rejected.status == allocation_service.ALLOCATION_STATUS_REJECTED
        assert rejected.rejection_reason == "Wrong split"

        with pytest.raises(InvalidStateTransition):
            allocation_service.approve_allocation(allocation.id, admin)
        assert stock_ledger.get_stock(pool.id) == 10

    def test_approved_allocation_cannot_be_rejected(self, admin, shop_a, stock_pool_item):
        pool = stock_pool_item("iPhone 12 Screen", 10)
        allocation = allocation_service.request_allocation(pool.id, [{"shop_id": shop_a.id, "quantity": 2}], admin)
        allocation_service.approve_allocation(allocation.id, admin)

        with pytest.raises(InvalidStateTransition):
            allocation_service.reject_allocation(allocation.id, admin)

    def test_reject_twice_is_noop(self, admin, shop_a, stock_pool_item):
        pool = stock_pool_item("iPhone 12 Screen", 10)
        allocation = allocation_service.request_allocation(pool.id, [{"shop_id": shop_a.id, "quantity": 2}], admin)

        allocation_service.reject_allocation(allocation.id, admin)
        again = allocation_service.reject_allocation(allocation.id, admin)
        assert again.status == allocation_service.ALLOCATION_STATUS_REJECTED
