# backend/shopledger/routes/inventory.py
"""
Inventory API routes: stock rows, movement history, low-stock alerts,
manual adjustments and supplier purchases.
"""
from flask import Blueprint, current_app, g, jsonify, request

from ..errors import LedgerError
from ..extensions import db
from ..decorators import require_permission, require_principal
from ..services import purchase_service, stock_ledger
from ..services.policy import has_permission
from ..validation import optional_int, require_str


inventory_bp = Blueprint("inventory", __name__, url_prefix="/api/inventory")


def _flag(name: str) -> bool:
    return request.args.get(name, "").lower() in ("1", "true", "yes")


def _item_json(item):
    return item.to_dict(include_costs=has_permission(g.principal, "VIEW_COSTS"))


@inventory_bp.get("/items")
@require_principal
@require_permission("VIEW_INVENTORY")
def list_items():
    """
    List stock rows.

    Query: shop_id, pool=1, category, include_inactive=1
    """
    try:
        items = stock_ledger.list_items(
            shop_id=optional_int(request.args.get("shop_id"), "shop_id"),
            pool=_flag("pool"),
            category=request.args.get("category") or None,
            include_inactive=_flag("include_inactive"),
        )
        return jsonify({"items": [_item_json(item) for item in items]}), 200
    except LedgerError as e:
        return jsonify(e.to_dict()), e.status_code


@inventory_bp.post("/items")
@require_principal
def create_item():
    data = request.get_json(silent=True) or {}
    try:
        item = stock_ledger.create_item(data, g.principal)
        return jsonify(_item_json(item)), 201
    except LedgerError as e:
        db.session.rollback()
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Failed to create inventory item")
        return jsonify({"error": "Internal server error"}), 500


@inventory_bp.get("/items/<int:item_id>")
@require_principal
@require_permission("VIEW_INVENTORY")
def get_item(item_id: int):
    try:
        return jsonify(_item_json(stock_ledger.get_item(item_id))), 200
    except LedgerError as e:
        return jsonify(e.to_dict()), e.status_code


@inventory_bp.get("/items/<int:item_id>/movements")
@require_principal
@require_permission("VIEW_INVENTORY")
def list_movements(item_id: int):
    try:
        limit = optional_int(request.args.get("limit"), "limit", minimum=1, maximum=1000) or 100
        movements = stock_ledger.list_movements(item_id, limit=limit)
        return jsonify({"movements": [m.to_dict() for m in movements]}), 200
    except LedgerError as e:
        return jsonify(e.to_dict()), e.status_code


@inventory_bp.post("/items/<int:item_id>/adjust")
@require_principal
def adjust_item(item_id: int):
    """
    Manual stock correction.

    Request body: {"delta": int, "note": str (optional)}
    """
    data = request.get_json(silent=True) or {}
    try:
        item = stock_ledger.record_adjustment(item_id, data.get("delta"), g.principal, note=data.get("note"))
        return jsonify(_item_json(item)), 200
    except LedgerError as e:
        db.session.rollback()
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Failed to adjust item %s", item_id)
        return jsonify({"error": "Internal server error"}), 500


@inventory_bp.post("/items/<int:item_id>/deactivate")
@require_principal
def deactivate_item(item_id: int):
    try:
        item = stock_ledger.deactivate_item(item_id, g.principal)
        return jsonify(_item_json(item)), 200
    except LedgerError as e:
        db.session.rollback()
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Failed to deactivate item %s", item_id)
        return jsonify({"error": "Internal server error"}), 500


@inventory_bp.get("/stock")
@require_principal
@require_permission("VIEW_INVENTORY")
def stock_by_name():
    """Query: name (required), shop_id (omit for the pool)."""
    try:
        name = require_str(request.args.get("name"), "name")
        shop_id = optional_int(request.args.get("shop_id"), "shop_id")
        return jsonify({
            "name": name,
            "shop_id": shop_id,
            "stock": stock_ledger.get_stock_by_name(name, shop_id),
            "total_stock": stock_ledger.get_total_stock(name),
        }), 200
    except LedgerError as e:
        return jsonify(e.to_dict()), e.status_code


@inventory_bp.get("/low-stock")
@require_principal
@require_permission("VIEW_INVENTORY")
def low_stock():
    try:
        items = stock_ledger.low_stock_items(optional_int(request.args.get("shop_id"), "shop_id"))
        return jsonify({"items": [_item_json(item) for item in items]}), 200
    except LedgerError as e:
        return jsonify(e.to_dict()), e.status_code


@inventory_bp.post("/purchases")
@require_principal
def record_purchase():
    """
    Record a supplier purchase.

    Request body:
    {
        "supplier_id": int,
        "shop_id": int (optional, omit to stock the pool),
        "note": str (optional),
        "lines": [{"name", "quantity", "cost_price_cents", "category", "price_cents", "reorder_level"}]
    }
    """
    data = request.get_json(silent=True) or {}
    try:
        purchase = purchase_service.record_purchase(data, g.principal)
        return jsonify(purchase.to_dict()), 201
    except LedgerError as e:
        db.session.rollback()
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Failed to record purchase")
        return jsonify({"error": "Internal server error"}), 500


@inventory_bp.get("/purchases")
@require_principal
@require_permission("RECORD_PURCHASE")
def list_purchases():
    try:
        purchases = purchase_service.list_purchases(
            supplier_id=optional_int(request.args.get("supplier_id"), "supplier_id"),
            shop_id=optional_int(request.args.get("shop_id"), "shop_id"),
        )
        return jsonify({"purchases": [p.to_dict() for p in purchases]}), 200
    except LedgerError as e:
        return jsonify(e.to_dict()), e.status_code


@inventory_bp.get("/purchases/<int:purchase_id>")
@require_principal
@require_permission("RECORD_PURCHASE")
def get_purchase(purchase_id: int):
    try:
        return jsonify(purchase_service.get_purchase(purchase_id).to_dict()), 200
    except LedgerError as e:
        return jsonify(e.to_dict()), e.status_code
