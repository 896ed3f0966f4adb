# backend/shopledger/routes/repairs.py
"""
Repair ticket API routes: intake, status, payments, approval, collection
and parts costing.
"""
from flask import Blueprint, current_app, g, jsonify, request

from ..errors import LedgerError
from ..extensions import db
from ..decorators import require_permission, require_principal
from ..services import repair_service
from ..services.policy import visible_shop_id
from ..validation import optional_int


repairs_bp = Blueprint("repairs", __name__, url_prefix="/api/repairs")


def _mutation_failed(e: Exception, action: str, repair_id=None):
    db.session.rollback()
    if isinstance(e, LedgerError):
        return jsonify(e.to_dict()), e.status_code
    current_app.logger.exception("Failed to %s repair %s", action, repair_id)
    return jsonify({"error": "Internal server error"}), 500


@repairs_bp.post("")
@require_principal
def create_repair():
    """
    Take in a repair.

    Request body:
    {
        "shop_id": int (optional, defaults to the caller's shop),
        "customer_name": str, "phone_number": str,
        "imei", "phone_model", "issue", "technician": str (optional),
        "parts": [{"item_id" | "name", "quantity", "cost_cents", "source", "supplier_id"}],
        "outsourced_cost_cents": int, "labor_cost_cents": int,
        "total_agreed_amount_cents": int (optional),
        "payment_timing": "before" | "after",
        "deposit_amount_cents": int, "deposit_method": str, "deposit_reference": str
    }
    """
    data = request.get_json(silent=True) or {}
    try:
        repair = repair_service.create_repair(data, g.principal)
        return jsonify(repair.to_dict()), 201
    except Exception as e:
        return _mutation_failed(e, "create")


@repairs_bp.get("")
@require_principal
@require_permission("CREATE_REPAIR")
def list_repairs():
    try:
        shop_id = visible_shop_id(g.principal, optional_int(request.args.get("shop_id"), "shop_id"))
        repairs = repair_service.list_repairs(shop_id=shop_id, status=request.args.get("status") or None)
        return jsonify({"repairs": [r.to_dict() for r in repairs]}), 200
    except LedgerError as e:
        return jsonify(e.to_dict()), e.status_code


@repairs_bp.get("/pending-approvals")
@require_principal
@require_permission("APPROVE_PAYMENT")
def pending_approvals():
    repairs = repair_service.list_pending_approvals()
    return jsonify({"repairs": [r.to_dict() for r in repairs]}), 200


@repairs_bp.get("/pending-collections")
@require_principal
@require_permission("CONFIRM_COLLECTION")
def pending_collections():
    try:
        shop_id = visible_shop_id(g.principal, optional_int(request.args.get("shop_id"), "shop_id"))
        repairs = repair_service.list_pending_collections(shop_id)
        return jsonify({"repairs": [r.to_dict() for r in repairs]}), 200
    except LedgerError as e:
        return jsonify(e.to_dict()), e.status_code


@repairs_bp.get("/needing-costs")
@require_principal
@require_permission("COST_PARTS")
def needing_costs():
    repairs = repair_service.list_repairs_needing_costs()
    return jsonify({"repairs": [r.to_dict() for r in repairs]}), 200


@repairs_bp.get("/totals")
@require_principal
@require_permission("VIEW_PAYMENTS")
def totals():
    try:
        shop_id = visible_shop_id(g.principal, optional_int(request.args.get("shop_id"), "shop_id"))
        return jsonify(repair_service.repair_totals(shop_id)), 200
    except LedgerError as e:
        return jsonify(e.to_dict()), e.status_code


@repairs_bp.get("/<int:repair_id>")
@require_principal
@require_permission("CREATE_REPAIR")
def get_repair(repair_id: int):
    try:
        repair = repair_service.get_repair(repair_id)
        visible_shop_id(g.principal, repair.shop_id)
        return jsonify(repair.to_dict()), 200
    except LedgerError as e:
        return jsonify(e.to_dict()), e.status_code


@repairs_bp.delete("/<int:repair_id>")
@require_principal
def delete_repair(repair_id: int):
    try:
        repair_service.delete_repair(repair_id, g.principal)
        return jsonify({"deleted": True, "id": repair_id}), 200
    except Exception as e:
        return _mutation_failed(e, "delete", repair_id)


@repairs_bp.post("/<int:repair_id>/status")
@require_principal
def update_status(repair_id: int):
    data = request.get_json(silent=True) or {}
    try:
        repair = repair_service.update_status(repair_id, data.get("status"), g.principal)
        return jsonify(repair.to_dict()), 200
    except Exception as e:
        return _mutation_failed(e, "update status of", repair_id)


@repairs_bp.post("/<int:repair_id>/customer-status")
@require_principal
def set_customer_status(repair_id: int):
    data = request.get_json(silent=True) or {}
    try:
        repair = repair_service.set_customer_status(repair_id, data.get("customer_status"), g.principal)
        return jsonify(repair.to_dict()), 200
    except Exception as e:
        return _mutation_failed(e, "update customer status of", repair_id)


@repairs_bp.post("/<int:repair_id>/payments")
@require_principal
def record_payment(repair_id: int):
    """Request body: {"amount_cents": int, "method": str, "reference": str (optional)}"""
    data = request.get_json(silent=True) or {}
    try:
        repair = repair_service.record_payment(
            repair_id,
            data.get("amount_cents"),
            data.get("method"),
            g.principal,
            reference=data.get("reference"),
        )
        return jsonify(repair.to_dict()), 200
    except Exception as e:
        return _mutation_failed(e, "record payment on", repair_id)


@repairs_bp.post("/<int:repair_id>/payments/submit")
@require_principal
def submit_payment(repair_id: int):
    """Request body: {"method": str, "reference": str, "amount_cents": int (optional)}"""
    data = request.get_json(silent=True) or {}
    try:
        repair = repair_service.submit_payment_for_approval(
            repair_id,
            data.get("method"),
            data.get("reference"),
            g.principal,
            amount_cents=data.get("amount_cents"),
        )
        return jsonify(repair.to_dict()), 200
    except Exception as e:
        return _mutation_failed(e, "submit payment on", repair_id)


@repairs_bp.post("/<int:repair_id>/payments/approve")
@require_principal
def approve_payment(repair_id: int):
    try:
        repair = repair_service.approve_payment(repair_id, g.principal)
        return jsonify(repair.to_dict()), 200
    except Exception as e:
        return _mutation_failed(e, "approve payment on", repair_id)


@repairs_bp.post("/<int:repair_id>/collect")
@require_principal
def confirm_collection(repair_id: int):
    try:
        repair = repair_service.confirm_collection(repair_id, g.principal)
        return jsonify(repair.to_dict()), 200
    except Exception as e:
        return _mutation_failed(e, "collect", repair_id)


@repairs_bp.post("/<int:repair_id>/parts/cost")
@require_principal
def update_part_cost(repair_id: int):
    """
    Request body:
    {"item_name": str, "cost_per_unit_cents": int, "qty": int, "supplier_id": int (optional)}
    """
    data = request.get_json(silent=True) or {}
    try:
        repair = repair_service.update_part_cost(
            repair_id,
            data.get("item_name"),
            data.get("cost_per_unit_cents"),
            data.get("qty", 1),
            g.principal,
            supplier_id=data.get("supplier_id"),
        )
        return jsonify(repair.to_dict()), 200
    except Exception as e:
        return _mutation_failed(e, "cost parts on", repair_id)
