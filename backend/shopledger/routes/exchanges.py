# backend/shopledger/routes/exchanges.py
"""
Inter-shop exchange API routes.
"""
from flask import Blueprint, current_app, g, jsonify, request

from ..errors import LedgerError
from ..extensions import db
from ..decorators import require_permission, require_principal
from ..services import exchange_service
from ..services.policy import visible_shop_id
from ..validation import optional_int


exchanges_bp = Blueprint("exchanges", __name__, url_prefix="/api/exchanges")


@exchanges_bp.post("")
@require_principal
def create_exchange():
    """
    Request body:
    {
        "from_shop_id": int,
        "to_shop_id": int,
        "items": [{"item_id": int, "quantity": int}],
        "note": str (optional)
    }
    """
    data = request.get_json(silent=True) or {}
    try:
        exchange = exchange_service.create_exchange(
            data.get("from_shop_id"),
            data.get("to_shop_id"),
            data.get("items"),
            g.principal,
            note=data.get("note"),
        )
        return jsonify(exchange.to_dict()), 201
    except LedgerError as e:
        db.session.rollback()
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Failed to create exchange")
        return jsonify({"error": "Internal server error"}), 500


@exchanges_bp.get("")
@require_principal
@require_permission("CREATE_EXCHANGE")
def list_exchanges():
    try:
        shop_id = visible_shop_id(g.principal, optional_int(request.args.get("shop_id"), "shop_id"))
        exchanges = exchange_service.list_exchanges(status=request.args.get("status") or None, shop_id=shop_id)
        return jsonify({"exchanges": [x.to_dict() for x in exchanges]}), 200
    except LedgerError as e:
        return jsonify(e.to_dict()), e.status_code


@exchanges_bp.get("/<int:exchange_id>")
@require_principal
@require_permission("CREATE_EXCHANGE")
def get_exchange(exchange_id: int):
    try:
        return jsonify(exchange_service.get_exchange(exchange_id).to_dict()), 200
    except LedgerError as e:
        return jsonify(e.to_dict()), e.status_code


@exchanges_bp.post("/<int:exchange_id>/confirm")
@require_principal
def confirm_receipt(exchange_id: int):
    try:
        exchange = exchange_service.confirm_receipt(exchange_id, g.principal)
        return jsonify(exchange.to_dict()), 200
    except LedgerError as e:
        db.session.rollback()
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Failed to confirm exchange %s", exchange_id)
        return jsonify({"error": "Internal server error"}), 500


@exchanges_bp.post("/<int:exchange_id>/complete")
@require_principal
def complete_exchange(exchange_id: int):
    try:
        exchange = exchange_service.complete_exchange(exchange_id, g.principal)
        return jsonify(exchange.to_dict()), 200
    except LedgerError as e:
        db.session.rollback()
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Failed to complete exchange %s", exchange_id)
        return jsonify({"error": "Internal server error"}), 500


@exchanges_bp.post("/<int:exchange_id>/reject")
@require_principal
def reject_exchange(exchange_id: int):
    data = request.get_json(silent=True) or {}
    try:
        exchange = exchange_service.reject_exchange(exchange_id, g.principal, reason=data.get("reason"))
        return jsonify(exchange.to_dict()), 200
    except LedgerError as e:
        db.session.rollback()
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Failed to reject exchange %s", exchange_id)
        return jsonify({"error": "Internal server error"}), 500
