# backend/shopledger/routes/payments.py
"""
Payment ledger API routes: listings, daily totals and cash settlement.
"""
from flask import Blueprint, current_app, g, jsonify, request

from ..errors import LedgerError, ValidationError
from ..extensions import db
from ..decorators import require_permission, require_principal
from ..services import payment_service
from ..services.policy import visible_shop_id
from ..time_utils import parse_iso_date, parse_iso_datetime
from ..validation import optional_int, require_choice


payments_bp = Blueprint("payments", __name__, url_prefix="/api/payments")


def _day_arg():
    try:
        return parse_iso_date(request.args.get("date"))
    except ValueError:
        raise ValidationError("date must be YYYY-MM-DD", field="date")


@payments_bp.get("")
@require_principal
@require_permission("VIEW_PAYMENTS")
def list_payments():
    """Query: type, shop_id, date"""
    try:
        payment_type = request.args.get("type") or None
        if payment_type is not None:
            require_choice(payment_type, "type", payment_service.PAYMENT_TYPES)
        payments = payment_service.list_payments(
            type=payment_type,
            shop_id=visible_shop_id(g.principal, optional_int(request.args.get("shop_id"), "shop_id")),
            day=_day_arg(),
        )
        return jsonify({"payments": [p.to_dict() for p in payments]}), 200
    except LedgerError as e:
        return jsonify(e.to_dict()), e.status_code


@payments_bp.get("/daily-totals")
@require_principal
@require_permission("VIEW_PAYMENTS")
def daily_totals():
    try:
        shop_id = visible_shop_id(g.principal, optional_int(request.args.get("shop_id"), "shop_id"))
        return jsonify(payment_service.daily_totals(_day_arg(), shop_id)), 200
    except LedgerError as e:
        return jsonify(e.to_dict()), e.status_code


@payments_bp.get("/pending-deposits")
@require_principal
@require_permission("SETTLE_CASH")
def pending_deposits():
    try:
        shop_id = visible_shop_id(g.principal, optional_int(request.args.get("shop_id"), "shop_id"))
        payments = payment_service.pending_cash_deposits(shop_id)
        return jsonify({
            "payments": [p.to_dict() for p in payments],
            "total_cents": sum(p.amount_cents for p in payments),
        }), 200
    except LedgerError as e:
        return jsonify(e.to_dict()), e.status_code


@payments_bp.get("/for/<related_to>/<int:related_id>")
@require_principal
@require_permission("VIEW_PAYMENTS")
def payments_for(related_to: str, related_id: int):
    try:
        related_to = require_choice(related_to, "related_to", payment_service.RELATED_TYPES)
        payments = payment_service.payments_for(related_to, related_id)
        return jsonify({
            "payments": [p.to_dict() for p in payments],
            "total_cents": payment_service.total_recorded_for(related_to, related_id),
        }), 200
    except LedgerError as e:
        return jsonify(e.to_dict()), e.status_code


@payments_bp.post("/<int:payment_id>/deposit")
@require_principal
def mark_deposited(payment_id: int):
    """
    Record that a cash payment was banked.

    Request body: {"deposit_date": ISO datetime (optional), "bank": str, "deposit_reference": str}
    """
    data = request.get_json(silent=True) or {}
    try:
        try:
            deposit_date = parse_iso_datetime(data.get("deposit_date"))
        except ValueError:
            raise ValidationError("deposit_date must be an ISO-8601 datetime", field="deposit_date")
        payment = payment_service.mark_deposited(
            payment_id,
            g.principal,
            deposit_date=deposit_date,
            bank=data.get("bank"),
            deposit_reference=data.get("deposit_reference"),
        )
        return jsonify(payment.to_dict()), 200
    except LedgerError as e:
        db.session.rollback()
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Failed to settle payment %s", payment_id)
        return jsonify({"error": "Internal server error"}), 500
