# Overview: Service-layer operations for supplier debts; what the shops owe for outsourced parts.

"""
Supplier Debt Invariants (authoritative)

- A debt is raised for every outsourced part or outsourced sale line.
- cost_per_unit_cents = 0 means "awaiting cost input"; such debts are
  excluded from every payable total and cannot be paid.
- total_cost_cents == cost_per_unit_cents * quantity after every write.
- paid is terminal: paying twice is a no-op, a paid debt cannot be re-costed.
"""
from __future__ import annotations

from datetime import date

from flask import current_app
from sqlalchemy import func

from ..errors import AlreadyProcessed, InvalidStateTransition, NotFound
from ..extensions import db
from ..models import Supplier, SupplierDebt
from ..time_utils import day_bounds, utcnow
from ..validation import require_amount, require_int, require_str
from .activity_service import append_event
from .concurrency import lock_for_update, run_in_transaction
from .policy import Principal, authorize


def add_debt(
    supplier_id: int,
    item_name: str,
    quantity: int,
    repair_id: int | None = None,
    sale_id: int | None = None,
    cost_per_unit_cents: int = 0,
) -> SupplierDebt:
    """
    Raise a debt inside the caller's transaction (flushes, never commits).
    """
    quantity = require_int(quantity, "quantity", minimum=1)
    cost_per_unit_cents = require_amount(cost_per_unit_cents, "cost_per_unit_cents")
    item_name = require_str(item_name, "item_name")

    if db.session.get(Supplier, supplier_id) is None:
        raise NotFound("Supplier", supplier_id)

    debt = SupplierDebt(
        supplier_id=supplier_id,
        item_name=item_name,
        quantity=quantity,
        cost_per_unit_cents=cost_per_unit_cents,
        total_cost_cents=cost_per_unit_cents * quantity,
        paid=False,
        repair_id=repair_id,
        sale_id=sale_id,
    )
    db.session.add(debt)
    db.session.flush()
    return debt


def get_debt(debt_id: int) -> SupplierDebt:
    debt = db.session.get(SupplierDebt, debt_id)
    if debt is None:
        raise NotFound("Supplier debt", debt_id)
    return debt


def _lock_debt(debt_id: int) -> SupplierDebt:
    debt = lock_for_update(
        db.session.query(SupplierDebt).filter_by(id=debt_id)
    ).populate_existing().first()
    if debt is None:
        raise NotFound("Supplier debt", debt_id)
    return debt


def apply_cost(debt: SupplierDebt, cost_per_unit_cents: int, quantity: int | None = None) -> None:
    """Re-price a debt in place; caller holds the transaction."""
    if debt.paid:
        raise InvalidStateTransition(f"Supplier debt {debt.id} is already paid and cannot be re-costed")
    if quantity is not None:
        debt.quantity = quantity
    debt.cost_per_unit_cents = cost_per_unit_cents
    debt.total_cost_cents = cost_per_unit_cents * debt.quantity


def set_cost(debt_id: int, cost_per_unit_cents: int, principal: Principal) -> SupplierDebt:
    authorize(principal, "MANAGE_SUPPLIER_DEBTS")
    cost_per_unit_cents = require_amount(cost_per_unit_cents, "cost_per_unit_cents")

    def _op():
        debt = _lock_debt(debt_id)
        apply_cost(debt, cost_per_unit_cents)
        append_event(
            event_type="supplier_debt.costed",
            entity_type="supplier_debt",
            entity_id=debt.id,
            actor_user_id=principal.user_id,
            payload={"cost_per_unit_cents": cost_per_unit_cents, "total_cost_cents": debt.total_cost_cents},
        )
        return debt

    return run_in_transaction(_op)


def mark_paid(debt_id: int, principal: Principal) -> SupplierDebt:
    """
    Settle a debt.

    Raises:
        InvalidStateTransition: the debt has no cost yet
    """
    authorize(principal, "MANAGE_SUPPLIER_DEBTS")

    def _op():
        debt = _lock_debt(debt_id)
        if debt.paid:
            raise AlreadyProcessed(f"Supplier debt {debt_id} already paid")
        if debt.awaiting_cost:
            raise InvalidStateTransition(f"Supplier debt {debt_id} is awaiting cost input and cannot be paid")

        debt.paid = True
        debt.paid_at = utcnow()
        debt.paid_by_user_id = principal.user_id

        append_event(
            event_type="supplier_debt.paid",
            entity_type="supplier_debt",
            entity_id=debt.id,
            actor_user_id=principal.user_id,
            payload={"supplier_id": debt.supplier_id, "total_cost_cents": debt.total_cost_cents},
        )
        return debt

    try:
        debt = run_in_transaction(_op)
    except AlreadyProcessed:
        current_app.logger.info("Supplier debt %s already paid; nothing to do", debt_id)
        return get_debt(debt_id)

    current_app.logger.info(
        "Supplier debt %s paid: supplier=%s amount_cents=%s",
        debt.id,
        debt.supplier_id,
        debt.total_cost_cents,
    )
    return debt


def _payable_query():
    return db.session.query(func.coalesce(func.sum(SupplierDebt.total_cost_cents), 0)).filter(
        SupplierDebt.paid.is_(False),
        SupplierDebt.cost_per_unit_cents > 0,
    )


def unpaid_total_by_supplier(supplier_id: int) -> int:
    """Sum of costed, unpaid debts for one supplier."""
    return int(_payable_query().filter(SupplierDebt.supplier_id == supplier_id).scalar() or 0)


def todays_unpaid_total_by_supplier(supplier_id: int, day: date | None = None) -> int:
    start, end = day_bounds(day)
    total = (
        _payable_query()
        .filter(
            SupplierDebt.supplier_id == supplier_id,
            SupplierDebt.created_at >= start,
            SupplierDebt.created_at < end,
        )
        .scalar()
    )
    return int(total or 0)


def unpaid_totals_by_supplier() -> list[dict]:
    rows = (
        db.session.query(
            Supplier.id,
            Supplier.name,
            func.coalesce(func.sum(SupplierDebt.total_cost_cents), 0),
            func.count(SupplierDebt.id),
        )
        .join(SupplierDebt, SupplierDebt.supplier_id == Supplier.id)
        .filter(SupplierDebt.paid.is_(False), SupplierDebt.cost_per_unit_cents > 0)
        .group_by(Supplier.id, Supplier.name)
        .order_by(Supplier.name.asc())
        .all()
    )
    return [
        {
            "supplier_id": supplier_id,
            "supplier_name": name,
            "unpaid_total_cents": int(total or 0),
            "debt_count": count,
        }
        for supplier_id, name, total, count in rows
    ]


def list_debts(
    *,
    supplier_id: int | None = None,
    unpaid_only: bool = False,
    repair_id: int | None = None,
    limit: int = 200,
) -> list[SupplierDebt]:
    query = db.session.query(SupplierDebt)
    if supplier_id is not None:
        query = query.filter(SupplierDebt.supplier_id == supplier_id)
    if unpaid_only:
        query = query.filter(SupplierDebt.paid.is_(False))
    if repair_id is not None:
        query = query.filter(SupplierDebt.repair_id == repair_id)
    return query.order_by(SupplierDebt.id.desc()).limit(limit).all()


def list_awaiting_cost() -> list[SupplierDebt]:
    return (
        db.session.query(SupplierDebt)
        .filter(SupplierDebt.paid.is_(False), SupplierDebt.cost_per_unit_cents == 0)
        .order_by(SupplierDebt.created_at.asc(), SupplierDebt.id.asc())
        .all()
    )
