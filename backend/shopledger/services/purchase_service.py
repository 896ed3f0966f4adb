# Overview: Service-layer operations for supplier purchases; the entry point of stock into the ledger.

"""
Purchase intake.

LIFECYCLE: a Purchase is immutable once recorded. Each line increments the
target row (the pool by default, or a shop row when shop_id is given) and
posts a PURCHASE movement. Pool rows that received stock are flagged
pending_allocation until an approved allocation empties them.
"""
from __future__ import annotations

from flask import current_app

from ..errors import NotFound, ValidationError
from ..extensions import db
from ..models import Purchase, PurchaseLine, Shop, Supplier, ITEM_CATEGORIES
from ..validation import require_int, require_str, require_choice, optional_int, optional_str, require_amount
from .activity_service import append_event
from .concurrency import run_in_transaction
from .policy import Principal, authorize
from .stock_ledger import REASON_PURCHASE, adjust, ensure_item


def _parse_lines(lines) -> list[dict]:
    if not isinstance(lines, list) or not lines:
        raise ValidationError("lines must be a non-empty list", field="lines")

    parsed = []
    seen: set[str] = set()
    for idx, raw in enumerate(lines):
        if not isinstance(raw, dict):
            raise ValidationError(f"lines[{idx}] must be an object", field="lines")
        name = require_str(raw.get("name"), f"lines[{idx}].name")
        if name in seen:
            raise ValidationError(f"{name!r} appears more than once", field="lines")
        seen.add(name)
        parsed.append({
            "name": name,
            "quantity": require_int(raw.get("quantity"), f"lines[{idx}].quantity", minimum=1),
            "cost_price_cents": require_amount(raw.get("cost_price_cents", 0), f"lines[{idx}].cost_price_cents"),
            "category": require_choice(raw.get("category", "Spare"), f"lines[{idx}].category", ITEM_CATEGORIES),
            "price_cents": optional_int(raw.get("price_cents"), f"lines[{idx}].price_cents", minimum=0),
            "reorder_level": optional_int(raw.get("reorder_level"), f"lines[{idx}].reorder_level", minimum=0),
        })
    return parsed


def record_purchase(data: dict, principal: Principal) -> Purchase:
    """
    Record stock bought from a supplier.

    Args:
        data: {"supplier_id", "shop_id"?, "note"?, "lines": [{"name", "quantity",
              "cost_price_cents", "category"?, "price_cents"?, "reorder_level"?}]}
        principal: acting user (RECORD_PURCHASE)

    Returns:
        Purchase: the recorded purchase with its lines

    Raises:
        ValidationError, NotFound, Unauthorized
    """
    authorize(principal, "RECORD_PURCHASE")

    supplier_id = require_int(data.get("supplier_id"), "supplier_id")
    shop_id = optional_int(data.get("shop_id"), "shop_id")
    note = optional_str(data.get("note"), "note")
    lines = _parse_lines(data.get("lines"))

    def _op():
        if db.session.get(Supplier, supplier_id) is None:
            raise NotFound("Supplier", supplier_id)
        if shop_id is not None and db.session.get(Shop, shop_id) is None:
            raise NotFound("Shop", shop_id)

        purchase = Purchase(
            supplier_id=supplier_id,
            shop_id=shop_id,
            note=note,
            created_by_user_id=principal.user_id,
            total_cents=sum(line["quantity"] * line["cost_price_cents"] for line in lines),
        )
        db.session.add(purchase)
        db.session.flush()

        for line in lines:
            item = ensure_item(line["name"], shop_id)
            if item.initial_stock == 0 and item.stock == 0:
                item.initial_stock = line["quantity"]
                item.category = line["category"]
            item.supplier_id = supplier_id
            item.cost_price_cents = line["cost_price_cents"]
            if line["price_cents"] is not None:
                item.price_cents = line["price_cents"]
            if line["reorder_level"] is not None:
                item.reorder_level = line["reorder_level"]
            if item.is_pool:
                item.pending_allocation = True

            adjust(
                item.id,
                line["quantity"],
                reason=REASON_PURCHASE,
                reference_type="purchase",
                reference_id=purchase.id,
                actor_user_id=principal.user_id,
            )
            db.session.add(PurchaseLine(
                purchase_id=purchase.id,
                item_id=item.id,
                item_name=item.name,
                quantity=line["quantity"],
                cost_price_cents=line["cost_price_cents"],
            ))

        db.session.flush()
        append_event(
            event_type="purchase.recorded",
            entity_type="purchase",
            entity_id=purchase.id,
            shop_id=shop_id,
            actor_user_id=principal.user_id,
            payload={"lines": len(lines), "total_cents": purchase.total_cents},
        )
        return purchase

    purchase = run_in_transaction(_op)
    current_app.logger.info(
        "Purchase %s recorded: supplier=%s target=%s lines=%s",
        purchase.id,
        supplier_id,
        "pool" if shop_id is None else f"shop {shop_id}",
        len(lines),
    )
    return purchase


def get_purchase(purchase_id: int) -> Purchase:
    purchase = db.session.get(Purchase, purchase_id)
    if purchase is None:
        raise NotFound("Purchase", purchase_id)
    return purchase


def list_purchases(*, supplier_id: int | None = None, shop_id: int | None = None, limit: int = 100) -> list[Purchase]:
    query = db.session.query(Purchase)
    if supplier_id is not None:
        query = query.filter(Purchase.supplier_id == supplier_id)
    if shop_id is not None:
        query = query.filter(Purchase.shop_id == shop_id)
    return query.order_by(Purchase.id.desc()).limit(limit).all()
