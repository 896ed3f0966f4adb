# Overview: Service-layer operations for counter and wholesale sales; consumes shop stock and takes payment.

from __future__ import annotations

from flask import current_app

from ..errors import NotFound, ValidationError
from ..extensions import db
from ..models import InventoryItem, Sale, SaleLine, Shop, Supplier
from ..validation import optional_int, optional_str, require_amount, require_choice, require_int
from . import payment_service
from .activity_service import append_event
from .concurrency import run_in_transaction
from .policy import Principal, authorize
from .stock_ledger import REASON_SALE, adjust, find_item
from .supplier_debt_service import add_debt


SALE_TYPES = ("in-shop", "wholesale")
LINE_SOURCES = ("in-house", "outsourced")


def _parse_lines(lines) -> list[dict]:
    if not isinstance(lines, list) or not lines:
        raise ValidationError("lines must be a non-empty list", field="lines")

    parsed = []
    for idx, raw in enumerate(lines):
        if not isinstance(raw, dict):
            raise ValidationError(f"lines[{idx}] must be an object", field="lines")
        line = {
            "source": require_choice(raw.get("source", "in-house"), f"lines[{idx}].source", LINE_SOURCES),
            "item_id": optional_int(raw.get("item_id"), f"lines[{idx}].item_id"),
            "name": optional_str(raw.get("name"), f"lines[{idx}].name"),
            "quantity": require_int(raw.get("quantity"), f"lines[{idx}].quantity", minimum=1),
            "unit_price_cents": optional_int(raw.get("unit_price_cents"), f"lines[{idx}].unit_price_cents", minimum=0),
            "supplier_id": optional_int(raw.get("supplier_id"), f"lines[{idx}].supplier_id"),
        }
        if line["source"] == "in-house" and line["item_id"] is None and line["name"] is None:
            raise ValidationError(f"lines[{idx}] needs an item_id or a name", field="lines")
        if line["source"] == "outsourced":
            if line["name"] is None or line["supplier_id"] is None:
                raise ValidationError(f"lines[{idx}] outsourced lines need a name and supplier_id", field="lines")
            if line["unit_price_cents"] is None:
                raise ValidationError(f"lines[{idx}].unit_price_cents is required", field="lines")
        parsed.append(line)
    return parsed


def record_sale(data: dict, principal: Principal):
    """
    Sell from a shop's stock.

    Every in-house line is taken through the stock ledger; any shortfall
    aborts the whole sale. Outsourced lines raise a supplier debt awaiting
    cost. The full total is paid on the spot and written to the payment
    ledger.

    Returns (sale, payment).
    """
    shop_id = optional_int(data.get("shop_id"), "shop_id")
    if shop_id is None:
        shop_id = principal.shop_id
    if shop_id is None:
        raise ValidationError("shop_id is required", field="shop_id")
    authorize(principal, "RECORD_SALE", shop_id=shop_id)

    sale_type = require_choice(data.get("sale_type", "in-shop"), "sale_type", SALE_TYPES)
    method = require_choice(data.get("method", payment_service.PAYMENT_TYPE_CASH), "method", payment_service.PAYMENT_TYPES)
    reference = optional_str(data.get("reference"), "reference", max_length=128)
    bank = optional_str(data.get("bank"), "bank", max_length=64)
    lines = _parse_lines(data.get("lines"))

    def _op():
        if db.session.get(Shop, shop_id) is None:
            raise NotFound("Shop", shop_id)

        sale = Sale(shop_id=shop_id, sale_type=sale_type, created_by_user_id=principal.user_id)
        db.session.add(sale)
        db.session.flush()

        total = 0
        for line in lines:
            item: InventoryItem | None = None
            if line["source"] == "in-house":
                if line["item_id"] is not None:
                    item = db.session.get(InventoryItem, line["item_id"])
                else:
                    item = find_item(line["name"], shop_id)
                if item is None:
                    raise NotFound("Inventory item", line["item_id"] or line["name"])
                if item.shop_id != shop_id or not item.is_active:
                    raise ValidationError(f"{item.name} is not an active item of shop {shop_id}", field="lines")
                adjust(
                    item.id,
                    -line["quantity"],
                    reason=REASON_SALE,
                    reference_type="sale",
                    reference_id=sale.id,
                    actor_user_id=principal.user_id,
                )
                name = item.name
                unit_price = line["unit_price_cents"] if line["unit_price_cents"] is not None else item.price_cents
            else:
                if db.session.get(Supplier, line["supplier_id"]) is None:
                    raise NotFound("Supplier", line["supplier_id"])
                add_debt(line["supplier_id"], line["name"], line["quantity"], sale_id=sale.id)
                name = line["name"]
                unit_price = line["unit_price_cents"]

            db.session.add(SaleLine(
                sale_id=sale.id,
                item_id=item.id if item is not None else None,
                item_name=name,
                quantity=line["quantity"],
                unit_price_cents=unit_price,
                source=line["source"],
                supplier_id=line["supplier_id"],
            ))
            total += unit_price * line["quantity"]

        sale.total_cents = require_amount(total, "total_cents", allow_zero=False)

        payment = payment_service.record_payment(
            method,
            total,
            payment_service.RELATED_TO_SALE,
            sale.id,
            shop_id=shop_id,
            state="fully_paid",
            reference=reference,
            bank=bank,
            actor_user_id=principal.user_id,
        )

        append_event(
            event_type="sale.recorded",
            entity_type="sale",
            entity_id=sale.id,
            shop_id=shop_id,
            actor_user_id=principal.user_id,
            payload={"total_cents": total, "method": method},
        )
        return sale, payment

    sale, payment = run_in_transaction(_op)
    current_app.logger.info(
        "Sale %s recorded at shop %s: total_cents=%s method=%s",
        sale.id,
        shop_id,
        sale.total_cents,
        method,
    )
    return sale, payment


def get_sale(sale_id: int) -> Sale:
    sale = db.session.get(Sale, sale_id)
    if sale is None:
        raise NotFound("Sale", sale_id)
    return sale


def list_sales(*, shop_id: int | None = None, limit: int = 100) -> list[Sale]:
    query = db.session.query(Sale)
    if shop_id is not None:
        query = query.filter(Sale.shop_id == shop_id)
    return query.order_by(Sale.id.desc()).limit(limit).all()
