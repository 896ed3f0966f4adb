# Overview: Service-layer operations for the payment ledger; append-only record of money received.

"""
Payment ledger.

Payments are appended by the repair and sales workflows inside their own
transactions. The only later mutation is cash settlement: a cash payment
starts undeposited and mark_deposited() records when it reached the bank.
Non-cash payments are deposited on arrival.
"""
from __future__ import annotations

from datetime import date

from flask import current_app
from sqlalchemy import func

from ..errors import AlreadyProcessed, InvalidStateTransition, NotFound, ValidationError
from ..extensions import db
from ..models import Payment
from ..time_utils import day_bounds, utcnow
from ..validation import optional_str, require_amount, require_choice
from .activity_service import append_event
from .concurrency import lock_for_update, run_in_transaction
from .policy import Principal, authorize


PAYMENT_TYPE_CASH = "cash"
PAYMENT_TYPE_MPESA = "mpesa"
PAYMENT_TYPE_BANK_DEPOSIT = "bank_deposit"
PAYMENT_TYPES = (PAYMENT_TYPE_CASH, PAYMENT_TYPE_MPESA, PAYMENT_TYPE_BANK_DEPOSIT)

RELATED_TO_REPAIR = "repair"
RELATED_TO_SALE = "sale"
RELATED_TYPES = (RELATED_TO_REPAIR, RELATED_TO_SALE)


def record_payment(
    type: str,
    amount_cents: int,
    related_to: str,
    related_id: int,
    *,
    shop_id: int | None = None,
    state: str = "fully_paid",
    reference: str | None = None,
    bank: str | None = None,
    actor_user_id: int | None = None,
    deposited: bool | None = None,
) -> Payment:
    """
    Append a payment row inside the caller's transaction.

    deposited defaults to True for everything except cash.
    """
    type = require_choice(type, "method", PAYMENT_TYPES)
    amount_cents = require_amount(amount_cents, "amount_cents", allow_zero=False)
    related_to = require_choice(related_to, "related_to", RELATED_TYPES)
    if type == PAYMENT_TYPE_BANK_DEPOSIT and not bank and not reference:
        raise ValidationError("bank deposits need a bank or a reference", field="bank")

    if deposited is None:
        deposited = type != PAYMENT_TYPE_CASH

    payment = Payment(
        type=type,
        amount_cents=amount_cents,
        state=state,
        reference=reference,
        bank=bank,
        deposited=deposited,
        deposit_date=None if not deposited else utcnow(),
        shop_id=shop_id,
        related_to=related_to,
        related_id=related_id,
        created_by_user_id=actor_user_id,
    )
    db.session.add(payment)
    db.session.flush()
    return payment


def get_payment(payment_id: int) -> Payment:
    payment = db.session.get(Payment, payment_id)
    if payment is None:
        raise NotFound("Payment", payment_id)
    return payment


def mark_deposited(
    payment_id: int,
    principal: Principal,
    deposit_date=None,
    bank: str | None = None,
    deposit_reference: str | None = None,
) -> Payment:
    """
    Record that a cash payment was banked.

    Raises:
        InvalidStateTransition: payment is not cash
    """
    bank = optional_str(bank, "bank", max_length=64)
    deposit_reference = optional_str(deposit_reference, "deposit_reference", max_length=128)

    def _op():
        payment = lock_for_update(
            db.session.query(Payment).filter_by(id=payment_id)
        ).populate_existing().first()
        if payment is None:
            raise NotFound("Payment", payment_id)
        authorize(principal, "SETTLE_CASH", shop_id=payment.shop_id)
        if payment.type != PAYMENT_TYPE_CASH:
            raise InvalidStateTransition(f"Payment {payment_id} is {payment.type}; only cash is deposited")
        if payment.deposited:
            raise AlreadyProcessed(f"Payment {payment_id} already deposited")

        payment.deposited = True
        payment.deposit_date = deposit_date or utcnow()
        payment.deposit_reference = deposit_reference
        if bank:
            payment.bank = bank

        append_event(
            event_type="payment.deposited",
            entity_type="payment",
            entity_id=payment.id,
            shop_id=payment.shop_id,
            actor_user_id=principal.user_id,
            payload={"amount_cents": payment.amount_cents},
        )
        return payment

    try:
        return run_in_transaction(_op)
    except AlreadyProcessed:
        current_app.logger.info("Payment %s already deposited; nothing to do", payment_id)
        return get_payment(payment_id)


def daily_totals(day: date | None = None, shop_id: int | None = None) -> dict:
    """Totals per payment type for one day, plus the grand total."""
    start, end = day_bounds(day)
    query = (
        db.session.query(Payment.type, func.coalesce(func.sum(Payment.amount_cents), 0))
        .filter(Payment.created_at >= start, Payment.created_at < end)
    )
    if shop_id is not None:
        query = query.filter(Payment.shop_id == shop_id)

    totals = {payment_type: 0 for payment_type in PAYMENT_TYPES}
    for payment_type, amount in query.group_by(Payment.type).all():
        totals[payment_type] = int(amount or 0)
    totals["total"] = sum(totals[payment_type] for payment_type in PAYMENT_TYPES)
    totals["date"] = start.date().isoformat()
    return totals


def pending_cash_deposits(shop_id: int | None = None) -> list[Payment]:
    query = db.session.query(Payment).filter(
        Payment.type == PAYMENT_TYPE_CASH,
        Payment.deposited.is_(False),
    )
    if shop_id is not None:
        query = query.filter(Payment.shop_id == shop_id)
    return query.order_by(Payment.created_at.asc(), Payment.id.asc()).all()


def payments_for(related_to: str, related_id: int) -> list[Payment]:
    return (
        db.session.query(Payment)
        .filter(Payment.related_to == related_to, Payment.related_id == related_id)
        .order_by(Payment.id.asc())
        .all()
    )


def total_recorded_for(related_to: str, related_id: int) -> int:
    total = (
        db.session.query(func.coalesce(func.sum(Payment.amount_cents), 0))
        .filter(Payment.related_to == related_to, Payment.related_id == related_id)
        .scalar()
    )
    return int(total or 0)


def list_payments(
    *,
    type: str | None = None,
    shop_id: int | None = None,
    day: date | None = None,
    limit: int = 200,
) -> list[Payment]:
    query = db.session.query(Payment)
    if type is not None:
        query = query.filter(Payment.type == type)
    if shop_id is not None:
        query = query.filter(Payment.shop_id == shop_id)
    if day is not None:
        start, end = day_bounds(day)
        query = query.filter(Payment.created_at >= start, Payment.created_at < end)
    return query.order_by(Payment.id.desc()).limit(limit).all()
