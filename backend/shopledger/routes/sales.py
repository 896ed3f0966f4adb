# backend/shopledger/routes/sales.py
"""
Sales API routes.
"""
from flask import Blueprint, current_app, g, jsonify, request

from ..errors import LedgerError
from ..extensions import db
from ..decorators import require_permission, require_principal
from ..services import sales_service
from ..services.policy import visible_shop_id
from ..validation import optional_int


sales_bp = Blueprint("sales", __name__, url_prefix="/api/sales")


@sales_bp.post("")
@require_principal
def record_sale():
    """
    Request body:
    {
        "shop_id": int (optional, defaults to the caller's shop),
        "sale_type": "in-shop" | "wholesale",
        "method": "cash" | "mpesa" | "bank_deposit",
        "reference": str, "bank": str,
        "lines": [{"item_id" | "name", "quantity", "unit_price_cents", "source", "supplier_id"}]
    }
    """
    data = request.get_json(silent=True) or {}
    try:
        sale, payment = sales_service.record_sale(data, g.principal)
        return jsonify({"sale": sale.to_dict(), "payment": payment.to_dict()}), 201
    except LedgerError as e:
        db.session.rollback()
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Failed to record sale")
        return jsonify({"error": "Internal server error"}), 500


@sales_bp.get("")
@require_principal
@require_permission("RECORD_SALE")
def list_sales():
    try:
        shop_id = visible_shop_id(g.principal, optional_int(request.args.get("shop_id"), "shop_id"))
        sales = sales_service.list_sales(shop_id=shop_id)
        return jsonify({"sales": [s.to_dict() for s in sales]}), 200
    except LedgerError as e:
        return jsonify(e.to_dict()), e.status_code


@sales_bp.get("/<int:sale_id>")
@require_principal
@require_permission("RECORD_SALE")
def get_sale(sale_id: int):
    try:
        sale = sales_service.get_sale(sale_id)
        visible_shop_id(g.principal, sale.shop_id)
        return jsonify(sale.to_dict()), 200
    except LedgerError as e:
        return jsonify(e.to_dict()), e.status_code
