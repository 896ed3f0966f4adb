# backend/shopledger/routes/allocations.py
"""
Pool allocation API routes.
"""
from flask import Blueprint, current_app, g, jsonify, request

from ..errors import LedgerError
from ..extensions import db
from ..decorators import require_permission, require_principal
from ..services import allocation_service


allocations_bp = Blueprint("allocations", __name__, url_prefix="/api/allocations")


@allocations_bp.post("")
@require_principal
def request_allocation():
    """
    Request a split of pool stock.

    Request body:
    {
        "item_id": int,
        "total_qty": int (optional, defaults to the sum of quantities),
        "destinations": [{"shop_id": int, "quantity": int}]
    }

    Returns:
        201: pending allocation
        400: invalid destinations
        409: more than the pool holds
    """
    data = request.get_json(silent=True) or {}
    try:
        allocation = allocation_service.request_allocation(
            data.get("item_id"),
            data.get("destinations"),
            g.principal,
            total_qty=data.get("total_qty"),
        )
        return jsonify(allocation.to_dict()), 201
    except LedgerError as e:
        db.session.rollback()
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Failed to request allocation")
        return jsonify({"error": "Internal server error"}), 500


@allocations_bp.get("")
@require_principal
@require_permission("REQUEST_ALLOCATION")
def list_allocations():
    allocations = allocation_service.list_allocations(status=request.args.get("status") or None)
    return jsonify({"allocations": [a.to_dict() for a in allocations]}), 200


@allocations_bp.get("/awaiting")
@require_principal
@require_permission("REQUEST_ALLOCATION")
def items_awaiting_allocation():
    items = allocation_service.list_items_awaiting_allocation()
    return jsonify({"items": [item.to_dict() for item in items]}), 200


@allocations_bp.get("/<int:allocation_id>")
@require_principal
@require_permission("REQUEST_ALLOCATION")
def get_allocation(allocation_id: int):
    try:
        return jsonify(allocation_service.get_allocation(allocation_id).to_dict()), 200
    except LedgerError as e:
        return jsonify(e.to_dict()), e.status_code


@allocations_bp.post("/<int:allocation_id>/approve")
@require_principal
def approve_allocation(allocation_id: int):
    try:
        allocation = allocation_service.approve_allocation(allocation_id, g.principal)
        return jsonify(allocation.to_dict()), 200
    except LedgerError as e:
        db.session.rollback()
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Failed to approve allocation %s", allocation_id)
        return jsonify({"error": "Internal server error"}), 500


@allocations_bp.post("/<int:allocation_id>/reject")
@require_principal
def reject_allocation(allocation_id: int):
    data = request.get_json(silent=True) or {}
    try:
        allocation = allocation_service.reject_allocation(allocation_id, g.principal, reason=data.get("reason"))
        return jsonify(allocation.to_dict()), 200
    except LedgerError as e:
        db.session.rollback()
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Failed to reject allocation %s", allocation_id)
        return jsonify({"error": "Internal server error"}), 500
