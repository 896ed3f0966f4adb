# Overview: Service-layer operations for pool allocations; approval-gated distribution of purchased stock.

"""
Pool allocation service.

WHY: Purchased stock lands in the pool (shop_id NULL). It only reaches a
shop through an allocation an admin approved, so head office decides the
split and the ledger moves it exactly once.

LIFECYCLE:
1. pending: created by request_allocation(); no ledger effect
2. approved: approve_allocation() debits the pool by total_qty and credits
   every destination shop, all in one transaction (terminal)
3. rejected: reject_allocation(); no ledger effect (terminal)

Approving twice (including two admins racing) applies the effect once: the
second attempt either sees status approved after its lock, or loses the
version check, is retried, and then sees approved.
"""
from __future__ import annotations

from flask import current_app

from ..errors import (
    AllocationExceedsPool,
    AlreadyProcessed,
    InvalidStateTransition,
    NotFound,
    ValidationError,
)
from ..extensions import db
from ..models import AllocationLine, InventoryItem, Shop, StockAllocation
from ..time_utils import utcnow
from ..validation import optional_int, optional_str, require_int
from .activity_service import append_event
from .concurrency import lock_for_update, run_in_transaction
from .policy import Principal, authorize
from .stock_ledger import REASON_ALLOCATION_IN, REASON_ALLOCATION_OUT, adjust, ensure_item


ALLOCATION_STATUS_PENDING = "pending"
ALLOCATION_STATUS_APPROVED = "approved"
ALLOCATION_STATUS_REJECTED = "rejected"


def _parse_destinations(destinations) -> list[tuple[int, int]]:
    if not isinstance(destinations, list) or not destinations:
        raise ValidationError("destinations must be a non-empty list", field="destinations")

    parsed: list[tuple[int, int]] = []
    seen: set[int] = set()
    for idx, raw in enumerate(destinations):
        if not isinstance(raw, dict):
            raise ValidationError(f"destinations[{idx}] must be an object", field="destinations")
        shop_id = require_int(raw.get("shop_id"), f"destinations[{idx}].shop_id")
        qty = require_int(raw.get("quantity"), f"destinations[{idx}].quantity", minimum=1)
        if shop_id in seen:
            raise ValidationError(f"Shop {shop_id} appears more than once", field="destinations")
        seen.add(shop_id)
        parsed.append((shop_id, qty))
    return parsed


def get_allocation(allocation_id: int) -> StockAllocation:
    allocation = db.session.get(StockAllocation, allocation_id)
    if allocation is None:
        raise NotFound("Allocation", allocation_id)
    return allocation


def _lock_allocation(allocation_id: int) -> StockAllocation:
    allocation = lock_for_update(
        db.session.query(StockAllocation).filter_by(id=allocation_id)
    ).populate_existing().first()
    if allocation is None:
        raise NotFound("Allocation", allocation_id)
    return allocation


def request_allocation(
    item_id: int,
    destinations: list[dict],
    principal: Principal,
    total_qty: int | None = None,
) -> StockAllocation:
    """
    Propose a split of a pool row across shops.

    Args:
        item_id: pool inventory row
        destinations: [{"shop_id", "quantity"}], distinct shops, quantity > 0
        principal: acting user (REQUEST_ALLOCATION)
        total_qty: must equal the sum of destination quantities; defaults to it

    Returns:
        StockAllocation: pending allocation

    Raises:
        ValidationError: bad destinations, sum mismatch, not a pool row
        AllocationExceedsPool: total_qty is more than the pool holds right now
        NotFound: item or shop missing
    """
    authorize(principal, "REQUEST_ALLOCATION")

    item_id = require_int(item_id, "item_id")
    lines = _parse_destinations(destinations)
    line_total = sum(qty for _, qty in lines)
    total_qty = optional_int(total_qty, "total_qty", minimum=1)
    if total_qty is None:
        total_qty = line_total
    if total_qty != line_total:
        raise ValidationError(
            f"Destination quantities add up to {line_total}, expected {total_qty}",
            field="destinations",
        )

    def _op():
        item = db.session.get(InventoryItem, item_id)
        if item is None:
            raise NotFound("Inventory item", item_id)
        if not item.is_pool:
            raise ValidationError(f"{item.name} is not a pool item", field="item_id")

        for shop_id, _ in lines:
            if db.session.get(Shop, shop_id) is None:
                raise NotFound("Shop", shop_id)

        # Advisory only; approval re-checks against the ledger
        if total_qty > item.stock:
            raise AllocationExceedsPool(item.name, requested=total_qty, available=item.stock)

        allocation = StockAllocation(
            item_id=item.id,
            total_qty=total_qty,
            status=ALLOCATION_STATUS_PENDING,
            requested_by_user_id=principal.user_id,
        )
        db.session.add(allocation)
        db.session.flush()

        for shop_id, qty in lines:
            db.session.add(AllocationLine(allocation_id=allocation.id, shop_id=shop_id, quantity=qty))
        db.session.flush()

        append_event(
            event_type="allocation.requested",
            entity_type="allocation",
            entity_id=allocation.id,
            actor_user_id=principal.user_id,
            payload={"item_id": item.id, "total_qty": total_qty},
        )
        return allocation

    return run_in_transaction(_op)


def approve_allocation(allocation_id: int, principal: Principal) -> StockAllocation:
    """
    Apply an allocation to the ledger.

    The status flip is flushed first so a concurrent approver fails the
    version check before either touches stock. If the pool cannot cover
    total_qty the whole transaction rolls back and the allocation stays
    pending.
    """
    authorize(principal, "APPROVE_ALLOCATION")

    def _op():
        allocation = _lock_allocation(allocation_id)
        if allocation.status == ALLOCATION_STATUS_APPROVED:
            raise AlreadyProcessed(f"Allocation {allocation_id} already approved")
        if allocation.status == ALLOCATION_STATUS_REJECTED:
            raise InvalidStateTransition(f"Allocation {allocation_id} was rejected and cannot be approved")

        allocation.status = ALLOCATION_STATUS_APPROVED
        allocation.approved_by_user_id = principal.user_id
        allocation.approved_at = utcnow()
        db.session.flush()

        pool_item = allocation.item
        pool_after = adjust(
            pool_item.id,
            -allocation.total_qty,
            reason=REASON_ALLOCATION_OUT,
            reference_type="allocation",
            reference_id=allocation.id,
            actor_user_id=principal.user_id,
            error_cls=AllocationExceedsPool,
        )

        for line in allocation.lines:
            shop_item = ensure_item(pool_item.name, line.shop_id, template=pool_item)
            adjust(
                shop_item.id,
                line.quantity,
                reason=REASON_ALLOCATION_IN,
                reference_type="allocation",
                reference_id=allocation.id,
                actor_user_id=principal.user_id,
            )

        if pool_after == 0:
            pool_item.pending_allocation = False

        append_event(
            event_type="allocation.approved",
            entity_type="allocation",
            entity_id=allocation.id,
            actor_user_id=principal.user_id,
            payload={
                "item_id": pool_item.id,
                "total_qty": allocation.total_qty,
                "pool_after": pool_after,
            },
        )
        return allocation

    try:
        allocation = run_in_transaction(_op)
    except AlreadyProcessed:
        current_app.logger.info("Allocation %s already approved; nothing to do", allocation_id)
        return get_allocation(allocation_id)

    current_app.logger.info(
        "Allocation %s approved by user %s: %s units of %s",
        allocation.id,
        principal.user_id,
        allocation.total_qty,
        allocation.item.name,
    )
    return allocation


def reject_allocation(allocation_id: int, principal: Principal, reason: str | None = None) -> StockAllocation:
    authorize(principal, "APPROVE_ALLOCATION")
    reason = optional_str(reason, "reason")

    def _op():
        allocation = _lock_allocation(allocation_id)
        if allocation.status == ALLOCATION_STATUS_REJECTED:
            raise AlreadyProcessed(f"Allocation {allocation_id} already rejected")
        if allocation.status == ALLOCATION_STATUS_APPROVED:
            raise InvalidStateTransition(f"Allocation {allocation_id} is already approved")

        allocation.status = ALLOCATION_STATUS_REJECTED
        allocation.rejected_by_user_id = principal.user_id
        allocation.rejected_at = utcnow()
        allocation.rejection_reason = reason

        append_event(
            event_type="allocation.rejected",
            entity_type="allocation",
            entity_id=allocation.id,
            actor_user_id=principal.user_id,
            note=reason,
        )
        return allocation

    try:
        return run_in_transaction(_op)
    except AlreadyProcessed:
        current_app.logger.info("Allocation %s already rejected; nothing to do", allocation_id)
        return get_allocation(allocation_id)


def list_allocations(*, status: str | None = None, limit: int = 100) -> list[StockAllocation]:
    query = db.session.query(StockAllocation)
    if status is not None:
        query = query.filter(StockAllocation.status == status)
    return query.order_by(StockAllocation.id.desc()).limit(limit).all()


def list_items_awaiting_allocation() -> list[InventoryItem]:
    """Pool rows still holding stock from a purchase."""
    return (
        db.session.query(InventoryItem)
        .filter(
            InventoryItem.shop_id.is_(None),
            InventoryItem.pending_allocation.is_(True),
            InventoryItem.stock > 0,
        )
        .order_by(InventoryItem.name.asc())
        .all()
    )
