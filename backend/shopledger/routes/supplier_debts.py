# backend/shopledger/routes/supplier_debts.py
"""
Supplier debt API routes.
"""
from flask import Blueprint, current_app, g, jsonify, request

from ..errors import LedgerError
from ..extensions import db
from ..decorators import require_permission, require_principal
from ..services import supplier_debt_service
from ..time_utils import parse_iso_date
from ..validation import optional_int


supplier_debts_bp = Blueprint("supplier_debts", __name__, url_prefix="/api/supplier-debts")


@supplier_debts_bp.get("")
@require_principal
@require_permission("VIEW_SUPPLIER_DEBTS")
def list_debts():
    """Query: supplier_id, unpaid=1, repair_id"""
    try:
        debts = supplier_debt_service.list_debts(
            supplier_id=optional_int(request.args.get("supplier_id"), "supplier_id"),
            unpaid_only=request.args.get("unpaid", "").lower() in ("1", "true", "yes"),
            repair_id=optional_int(request.args.get("repair_id"), "repair_id"),
        )
        return jsonify({"debts": [d.to_dict() for d in debts]}), 200
    except LedgerError as e:
        return jsonify(e.to_dict()), e.status_code


@supplier_debts_bp.get("/awaiting-cost")
@require_principal
@require_permission("VIEW_SUPPLIER_DEBTS")
def awaiting_cost():
    debts = supplier_debt_service.list_awaiting_cost()
    return jsonify({"debts": [d.to_dict() for d in debts]}), 200


@supplier_debts_bp.get("/totals")
@require_principal
@require_permission("VIEW_SUPPLIER_DEBTS")
def unpaid_totals():
    return jsonify({"suppliers": supplier_debt_service.unpaid_totals_by_supplier()}), 200


@supplier_debts_bp.get("/suppliers/<int:supplier_id>/unpaid-total")
@require_principal
@require_permission("VIEW_SUPPLIER_DEBTS")
def supplier_unpaid_total(supplier_id: int):
    """Query: date=YYYY-MM-DD adds the total for debts raised that day."""
    try:
        day = parse_iso_date(request.args.get("date"))
    except ValueError:
        return jsonify({"error": "date must be YYYY-MM-DD", "code": "VALIDATION_ERROR", "field": "date"}), 400

    return jsonify({
        "supplier_id": supplier_id,
        "unpaid_total_cents": supplier_debt_service.unpaid_total_by_supplier(supplier_id),
        "day_unpaid_total_cents": supplier_debt_service.todays_unpaid_total_by_supplier(supplier_id, day),
    }), 200


@supplier_debts_bp.post("/<int:debt_id>/cost")
@require_principal
def set_cost(debt_id: int):
    """Request body: {"cost_per_unit_cents": int}"""
    data = request.get_json(silent=True) or {}
    try:
        debt = supplier_debt_service.set_cost(debt_id, data.get("cost_per_unit_cents"), g.principal)
        return jsonify(debt.to_dict()), 200
    except LedgerError as e:
        db.session.rollback()
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Failed to cost supplier debt %s", debt_id)
        return jsonify({"error": "Internal server error"}), 500


@supplier_debts_bp.post("/<int:debt_id>/pay")
@require_principal
def mark_paid(debt_id: int):
    try:
        debt = supplier_debt_service.mark_paid(debt_id, g.principal)
        return jsonify(debt.to_dict()), 200
    except LedgerError as e:
        db.session.rollback()
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Failed to pay supplier debt %s", debt_id)
        return jsonify({"error": "Internal server error"}), 500
