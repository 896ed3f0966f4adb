# Overview: Service-layer operations for inter-shop exchanges; two-phase confirm/complete handoff.

"""
Inter-shop exchange service.

LIFECYCLE:
1. pending: create_exchange(); source stock is checked, not deducted
2. confirmed: confirm_receipt() by staff of the receiving shop; no ledger effect
3. completed: complete_exchange() by an admin; each line debits the source
   row and credits the destination row (terminal)
4. rejected: reject_exchange() by an admin from pending or confirmed (terminal)

Stock only moves on confirmed -> completed. A shortfall at completion
aborts the whole completion and the exchange stays confirmed.
"""
from __future__ import annotations

from flask import current_app
from sqlalchemy import or_

from ..errors import (
    AlreadyProcessed,
    InsufficientStock,
    InvalidStateTransition,
    NotFound,
    Unauthorized,
    ValidationError,
)
from ..extensions import db
from ..models import Exchange, ExchangeLine, InventoryItem, Shop
from ..time_utils import utcnow
from ..validation import optional_str, require_int
from .activity_service import append_event
from .concurrency import lock_for_update, run_in_transaction
from .policy import Principal, authorize
from .stock_ledger import REASON_EXCHANGE_IN, REASON_EXCHANGE_OUT, adjust, ensure_item


EXCHANGE_STATUS_PENDING = "pending"
EXCHANGE_STATUS_CONFIRMED = "confirmed"
EXCHANGE_STATUS_COMPLETED = "completed"
EXCHANGE_STATUS_REJECTED = "rejected"


def _parse_items(items) -> list[tuple[int, int]]:
    if not isinstance(items, list) or not items:
        raise ValidationError("items must be a non-empty list", field="items")

    parsed: list[tuple[int, int]] = []
    seen: set[int] = set()
    for idx, raw in enumerate(items):
        if not isinstance(raw, dict):
            raise ValidationError(f"items[{idx}] must be an object", field="items")
        item_id = require_int(raw.get("item_id"), f"items[{idx}].item_id")
        qty = require_int(raw.get("quantity"), f"items[{idx}].quantity", minimum=1)
        if item_id in seen:
            raise ValidationError(f"Item {item_id} appears more than once", field="items")
        seen.add(item_id)
        parsed.append((item_id, qty))
    return parsed


def get_exchange(exchange_id: int) -> Exchange:
    exchange = db.session.get(Exchange, exchange_id)
    if exchange is None:
        raise NotFound("Exchange", exchange_id)
    return exchange


def _lock_exchange(exchange_id: int) -> Exchange:
    exchange = lock_for_update(
        db.session.query(Exchange).filter_by(id=exchange_id)
    ).populate_existing().first()
    if exchange is None:
        raise NotFound("Exchange", exchange_id)
    return exchange


def create_exchange(
    from_shop_id: int,
    to_shop_id: int,
    items: list[dict],
    principal: Principal,
    note: str | None = None,
) -> Exchange:
    """
    Open an exchange of stock from one shop to another.

    Args:
        from_shop_id: shop giving the stock
        to_shop_id: shop receiving it (must differ)
        items: [{"item_id", "quantity"}] where item_id is a from-shop row
        principal: staff of either shop, or an admin (CREATE_EXCHANGE)

    Returns:
        Exchange: pending exchange

    Raises:
        ValidationError, NotFound, Unauthorized
        InsufficientStock: a line asks for more than the source holds now
    """
    authorize(principal, "CREATE_EXCHANGE")

    from_shop_id = require_int(from_shop_id, "from_shop_id")
    to_shop_id = require_int(to_shop_id, "to_shop_id")
    if from_shop_id == to_shop_id:
        raise ValidationError("Cannot exchange stock with the same shop", field="to_shop_id")
    if not principal.is_admin and principal.shop_id not in (from_shop_id, to_shop_id):
        raise Unauthorized(
            "Only staff of the sending or receiving shop can create this exchange",
            required_permission="CREATE_EXCHANGE",
        )
    lines = _parse_items(items)
    note = optional_str(note, "note")

    def _op():
        for shop_id in (from_shop_id, to_shop_id):
            if db.session.get(Shop, shop_id) is None:
                raise NotFound("Shop", shop_id)

        exchange = Exchange(
            from_shop_id=from_shop_id,
            to_shop_id=to_shop_id,
            status=EXCHANGE_STATUS_PENDING,
            note=note,
            requested_by_user_id=principal.user_id,
        )
        db.session.add(exchange)
        db.session.flush()

        for item_id, qty in lines:
            item = db.session.get(InventoryItem, item_id)
            if item is None:
                raise NotFound("Inventory item", item_id)
            if item.shop_id != from_shop_id or not item.is_active:
                raise ValidationError(
                    f"{item.name} is not an active item of shop {from_shop_id}",
                    field="items",
                )
            # Advisory only; completion is decided by the ledger
            if item.stock < qty:
                raise InsufficientStock(item.name, requested=qty, available=item.stock, shop_id=from_shop_id)

            db.session.add(ExchangeLine(
                exchange_id=exchange.id,
                item_id=item.id,
                item_name=item.name,
                quantity=qty,
            ))

        db.session.flush()
        append_event(
            event_type="exchange.created",
            entity_type="exchange",
            entity_id=exchange.id,
            shop_id=from_shop_id,
            actor_user_id=principal.user_id,
            payload={"to_shop_id": to_shop_id, "lines": len(lines)},
        )
        return exchange

    return run_in_transaction(_op)


def confirm_receipt(exchange_id: int, principal: Principal) -> Exchange:
    """
    Receiving shop attests the goods arrived.

    Only staff attached to the receiving shop may confirm; admins are held
    to the same rule since confirmation is an attestation of physical receipt.
    """
    exchange = get_exchange(exchange_id)
    authorize(principal, "CONFIRM_EXCHANGE", shop_id=exchange.to_shop_id, strict_shop=True)

    def _op():
        exchange = _lock_exchange(exchange_id)
        if exchange.status in (EXCHANGE_STATUS_CONFIRMED, EXCHANGE_STATUS_COMPLETED):
            raise AlreadyProcessed(f"Exchange {exchange_id} already {exchange.status}")
        if exchange.status != EXCHANGE_STATUS_PENDING:
            raise InvalidStateTransition(f"Cannot confirm exchange in {exchange.status} status")

        exchange.status = EXCHANGE_STATUS_CONFIRMED
        exchange.confirmed_by_user_id = principal.user_id
        exchange.confirmed_at = utcnow()

        append_event(
            event_type="exchange.confirmed",
            entity_type="exchange",
            entity_id=exchange.id,
            shop_id=exchange.to_shop_id,
            actor_user_id=principal.user_id,
        )
        return exchange

    try:
        return run_in_transaction(_op)
    except AlreadyProcessed as exc:
        current_app.logger.info("%s; nothing to do", exc.message)
        return get_exchange(exchange_id)


def complete_exchange(exchange_id: int, principal: Principal) -> Exchange:
    """Move the stock: debit source rows, credit destination rows."""
    authorize(principal, "COMPLETE_EXCHANGE")

    def _op():
        exchange = _lock_exchange(exchange_id)
        if exchange.status == EXCHANGE_STATUS_COMPLETED:
            raise AlreadyProcessed(f"Exchange {exchange_id} already completed")
        if exchange.status != EXCHANGE_STATUS_CONFIRMED:
            raise InvalidStateTransition(
                f"Cannot complete exchange in {exchange.status} status; receipt must be confirmed first"
            )

        exchange.status = EXCHANGE_STATUS_COMPLETED
        exchange.completed_by_user_id = principal.user_id
        exchange.completed_at = utcnow()
        db.session.flush()

        for line in exchange.lines:
            adjust(
                line.item_id,
                -line.quantity,
                reason=REASON_EXCHANGE_OUT,
                reference_type="exchange",
                reference_id=exchange.id,
                actor_user_id=principal.user_id,
            )
            source = db.session.get(InventoryItem, line.item_id)
            dest = ensure_item(source.name, exchange.to_shop_id, template=source)
            adjust(
                dest.id,
                line.quantity,
                reason=REASON_EXCHANGE_IN,
                reference_type="exchange",
                reference_id=exchange.id,
                actor_user_id=principal.user_id,
            )

        append_event(
            event_type="exchange.completed",
            entity_type="exchange",
            entity_id=exchange.id,
            shop_id=exchange.to_shop_id,
            actor_user_id=principal.user_id,
            payload={"from_shop_id": exchange.from_shop_id, "lines": len(exchange.lines)},
        )
        return exchange

    try:
        exchange = run_in_transaction(_op)
    except AlreadyProcessed:
        current_app.logger.info("Exchange %s already completed; nothing to do", exchange_id)
        return get_exchange(exchange_id)

    current_app.logger.info(
        "Exchange %s completed by user %s: shop %s -> shop %s",
        exchange.id,
        principal.user_id,
        exchange.from_shop_id,
        exchange.to_shop_id,
    )
    return exchange


def reject_exchange(exchange_id: int, principal: Principal, reason: str | None = None) -> Exchange:
    authorize(principal, "COMPLETE_EXCHANGE")
    reason = optional_str(reason, "reason")

    def _op():
        exchange = _lock_exchange(exchange_id)
        if exchange.status == EXCHANGE_STATUS_REJECTED:
            raise AlreadyProcessed(f"Exchange {exchange_id} already rejected")
        if exchange.status == EXCHANGE_STATUS_COMPLETED:
            raise InvalidStateTransition(f"Exchange {exchange_id} is completed and cannot be rejected")

        exchange.status = EXCHANGE_STATUS_REJECTED
        exchange.rejected_by_user_id = principal.user_id
        exchange.rejected_at = utcnow()
        exchange.rejection_reason = reason

        append_event(
            event_type="exchange.rejected",
            entity_type="exchange",
            entity_id=exchange.id,
            shop_id=exchange.from_shop_id,
            actor_user_id=principal.user_id,
            note=reason,
        )
        return exchange

    try:
        return run_in_transaction(_op)
    except AlreadyProcessed:
        current_app.logger.info("Exchange %s already rejected; nothing to do", exchange_id)
        return get_exchange(exchange_id)


def list_exchanges(
    *,
    status: str | None = None,
    shop_id: int | None = None,
    limit: int = 100,
) -> list[Exchange]:
    """Exchanges touching shop_id on either side, newest first."""
    query = db.session.query(Exchange)
    if status is not None:
        query = query.filter(Exchange.status == status)
    if shop_id is not None:
        query = query.filter(or_(Exchange.from_shop_id == shop_id, Exchange.to_shop_id == shop_id))
    return query.order_by(Exchange.id.desc()).limit(limit).all()
