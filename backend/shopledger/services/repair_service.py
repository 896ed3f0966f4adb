# Overview: Service-layer operations for repair tickets; payment, approval and collection state machine.

"""
Repair Ticket Invariants (authoritative)

Money:
- total_cost = sum(part cost x qty) + outsourced cost + labor, fixed at intake.
- effective total = total_agreed_amount when set, else total_cost.
- balance = effective total - amount_paid, rewritten by _recompute() after
  every mutation that touches amount_paid; payment_status follows the balance.
- A pending (submitted, unapproved) payment is not part of amount_paid.

Status:
- Manual transitions are limited to MANUAL_TRANSITIONS.
- FULLY_PAID is reached only when the balance reaches zero.
- COLLECTED is reached only through confirm_collection() and only from a
  fully paid ticket. It is terminal.

Stock and debts:
- In-house parts are taken from the ticket's shop through the stock ledger
  at intake; a shortfall aborts the whole intake.
- Outsourced parts raise a supplier debt awaiting cost input.
"""
from __future__ import annotations

from flask import current_app
from sqlalchemy import func

from ..errors import (
    AlreadyProcessed,
    InvalidStateTransition,
    NotFound,
    ValidationError,
)
from ..extensions import db
from ..models import InventoryItem, Repair, RepairPart, Shop, Supplier, SupplierDebt
from ..time_utils import utcnow
from ..validation import (
    optional_int,
    optional_str,
    require_amount,
    require_choice,
    require_int,
    require_str,
)
from . import payment_service
from .activity_service import append_event
from .concurrency import lock_for_update, run_in_transaction
from .policy import Principal, authorize
from .stock_ledger import REASON_REPAIR_PART, adjust, find_item
from .supplier_debt_service import add_debt, apply_cost


STATUS_RECEIVED = "RECEIVED"
STATUS_IN_PROGRESS = "IN_PROGRESS"
STATUS_WAITING_PARTS = "WAITING_PARTS"
STATUS_REPAIR_COMPLETED = "REPAIR_COMPLETED"
STATUS_PAYMENT_PENDING = "PAYMENT_PENDING"
STATUS_FULLY_PAID = "FULLY_PAID"
STATUS_COLLECTED = "COLLECTED"

REPAIR_STATUSES = (
    STATUS_RECEIVED,
    STATUS_IN_PROGRESS,
    STATUS_WAITING_PARTS,
    STATUS_REPAIR_COMPLETED,
    STATUS_PAYMENT_PENDING,
    STATUS_FULLY_PAID,
    STATUS_COLLECTED,
)

MANUAL_TRANSITIONS = {
    STATUS_RECEIVED: {STATUS_IN_PROGRESS, STATUS_WAITING_PARTS, STATUS_REPAIR_COMPLETED, STATUS_PAYMENT_PENDING},
    STATUS_IN_PROGRESS: {STATUS_WAITING_PARTS, STATUS_REPAIR_COMPLETED, STATUS_PAYMENT_PENDING},
    STATUS_WAITING_PARTS: {STATUS_IN_PROGRESS, STATUS_REPAIR_COMPLETED},
    STATUS_REPAIR_COMPLETED: {STATUS_PAYMENT_PENDING},
    # Paid-upfront tickets still go through the bench
    STATUS_PAYMENT_PENDING: {STATUS_IN_PROGRESS, STATUS_WAITING_PARTS, STATUS_REPAIR_COMPLETED},
    STATUS_FULLY_PAID: {STATUS_IN_PROGRESS, STATUS_WAITING_PARTS, STATUS_REPAIR_COMPLETED},
}

PAYMENT_STATUS_PENDING = "pending"
PAYMENT_STATUS_PARTIAL = "partial"
PAYMENT_STATUS_FULLY_PAID = "fully_paid"

PAYMENT_TIMINGS = ("before", "after")
CUSTOMER_STATUSES = ("waiting", "coming_back")
PART_SOURCE_IN_HOUSE = "in-house"
PART_SOURCE_OUTSOURCED = "outsourced"
PART_SOURCES = (PART_SOURCE_IN_HOUSE, PART_SOURCE_OUTSOURCED)


def _recompute(repair: Repair) -> None:
    """Rewrite balance, payment status and the paid status from amount_paid."""
    repair.balance_cents = repair.effective_total_cents - repair.amount_paid_cents
    if repair.balance_cents <= 0:
        repair.payment_status = PAYMENT_STATUS_FULLY_PAID
        if repair.status != STATUS_COLLECTED:
            repair.status = STATUS_FULLY_PAID
    elif repair.amount_paid_cents > 0:
        repair.payment_status = PAYMENT_STATUS_PARTIAL
    else:
        repair.payment_status = PAYMENT_STATUS_PENDING


def _require_bank_reference(method: str, reference: str | None, field: str) -> None:
    if method == payment_service.PAYMENT_TYPE_BANK_DEPOSIT and reference is None:
        raise ValidationError("A bank deposit needs a reference", field=field)


def get_repair(repair_id: int) -> Repair:
    repair = db.session.get(Repair, repair_id)
    if repair is None:
        raise NotFound("Repair", repair_id)
    return repair


def _lock_repair(repair_id: int) -> Repair:
    repair = lock_for_update(
        db.session.query(Repair).filter_by(id=repair_id)
    ).populate_existing().first()
    if repair is None:
        raise NotFound("Repair", repair_id)
    return repair


def _parse_parts(parts) -> list[dict]:
    if parts is None:
        return []
    if not isinstance(parts, list):
        raise ValidationError("parts must be a list", field="parts")

    parsed = []
    for idx, raw in enumerate(parts):
        if not isinstance(raw, dict):
            raise ValidationError(f"parts[{idx}] must be an object", field="parts")
        source = require_choice(raw.get("source", PART_SOURCE_IN_HOUSE), f"parts[{idx}].source", PART_SOURCES)
        part = {
            "source": source,
            "item_id": optional_int(raw.get("item_id"), f"parts[{idx}].item_id"),
            "name": optional_str(raw.get("name"), f"parts[{idx}].name"),
            "quantity": require_int(raw.get("quantity", 1), f"parts[{idx}].quantity", minimum=1),
            "cost_cents": optional_int(raw.get("cost_cents"), f"parts[{idx}].cost_cents", minimum=0),
            "supplier_id": optional_int(raw.get("supplier_id"), f"parts[{idx}].supplier_id"),
        }
        if source == PART_SOURCE_IN_HOUSE and part["item_id"] is None and part["name"] is None:
            raise ValidationError(f"parts[{idx}] needs an item_id or a name", field="parts")
        if source == PART_SOURCE_OUTSOURCED:
            if part["name"] is None:
                raise ValidationError(f"parts[{idx}].name is required", field="parts")
            if part["supplier_id"] is None:
                raise ValidationError(f"parts[{idx}].supplier_id is required for outsourced parts", field="parts")
        parsed.append(part)
    return parsed


def _resolve_in_house_item(part: dict, shop_id: int) -> InventoryItem:
    if part["item_id"] is not None:
        item = db.session.get(InventoryItem, part["item_id"])
        if item is None:
            raise NotFound("Inventory item", part["item_id"])
    else:
        item = find_item(part["name"], shop_id)
        if item is None:
            raise NotFound("Inventory item", f"{part['name']!r}@{shop_id}")
    if item.shop_id != shop_id or not item.is_active:
        raise ValidationError(f"{item.name} is not an active item of shop {shop_id}", field="parts")
    return item


def create_repair(data: dict, principal: Principal) -> Repair:
    """
    Take a device in for repair.

    Args:
        data: customer fields, "parts", "outsourced_cost_cents",
              "labor_cost_cents", "total_agreed_amount_cents"?,
              "payment_timing", "deposit_amount_cents", "deposit_method"?,
              "deposit_reference"?, "shop_id"? (defaults to the principal's shop)
        principal: acting user (CREATE_REPAIR, shop-scoped)

    Returns:
        Repair: the new ticket

    Raises:
        ValidationError: missing/invalid fields, checked before any mutation
        InsufficientStock: an in-house part is not in stock; nothing is written
        NotFound: referenced shop, item or supplier missing
    """
    shop_id = optional_int(data.get("shop_id"), "shop_id")
    if shop_id is None:
        shop_id = principal.shop_id
    if shop_id is None:
        raise ValidationError("shop_id is required", field="shop_id")
    authorize(principal, "CREATE_REPAIR", shop_id=shop_id)

    customer_name = require_str(data.get("customer_name"), "customer_name")
    phone_number = require_str(data.get("phone_number"), "phone_number", max_length=32)
    imei = optional_str(data.get("imei"), "imei", max_length=64)
    phone_model = optional_str(data.get("phone_model"), "phone_model", max_length=120)
    issue = optional_str(data.get("issue"), "issue", max_length=2000)
    technician = optional_str(data.get("technician"), "technician", max_length=120)
    parts = _parse_parts(data.get("parts"))
    outsourced_cost_cents = require_amount(data.get("outsourced_cost_cents", 0), "outsourced_cost_cents")
    labor_cost_cents = require_amount(data.get("labor_cost_cents", 0), "labor_cost_cents")
    total_agreed = data.get("total_agreed_amount_cents")
    total_agreed = None if total_agreed is None else require_amount(total_agreed, "total_agreed_amount_cents")
    payment_timing = require_choice(data.get("payment_timing", "after"), "payment_timing", PAYMENT_TIMINGS)
    deposit_amount_cents = require_amount(data.get("deposit_amount_cents", 0), "deposit_amount_cents")
    deposit_method = require_choice(
        data.get("deposit_method", payment_service.PAYMENT_TYPE_CASH),
        "deposit_method",
        payment_service.PAYMENT_TYPES,
    )
    deposit_reference = optional_str(data.get("deposit_reference"), "deposit_reference", max_length=128)
    if deposit_amount_cents > 0:
        _require_bank_reference(deposit_method, deposit_reference, "deposit_reference")

    def _op():
        if db.session.get(Shop, shop_id) is None:
            raise NotFound("Shop", shop_id)

        resolved = []
        for part in parts:
            if part["source"] == PART_SOURCE_IN_HOUSE:
                item = _resolve_in_house_item(part, shop_id)
                cost = part["cost_cents"] if part["cost_cents"] is not None else item.price_cents
                resolved.append({**part, "item": item, "name": item.name, "cost_cents": cost})
            else:
                if db.session.get(Supplier, part["supplier_id"]) is None:
                    raise NotFound("Supplier", part["supplier_id"])
                resolved.append({**part, "item": None, "cost_cents": part["cost_cents"] or 0})

        parts_total = sum(p["cost_cents"] * p["quantity"] for p in resolved)
        total_cost_cents = parts_total + outsourced_cost_cents + labor_cost_cents
        effective_total = total_agreed if total_agreed is not None else total_cost_cents
        if deposit_amount_cents > effective_total:
            raise ValidationError(
                f"Deposit {deposit_amount_cents} exceeds the repair total {effective_total}",
                field="deposit_amount_cents",
            )

        repair = Repair(
            shop_id=shop_id,
            customer_name=customer_name,
            phone_number=phone_number,
            imei=imei,
            phone_model=phone_model,
            issue=issue,
            technician=technician,
            outsourced_cost_cents=outsourced_cost_cents,
            labor_cost_cents=labor_cost_cents,
            total_cost_cents=total_cost_cents,
            total_agreed_amount_cents=total_agreed,
            payment_timing=payment_timing,
            deposit_amount_cents=deposit_amount_cents,
            amount_paid_cents=deposit_amount_cents,
            status=STATUS_RECEIVED,
            customer_status="waiting",
            created_by_user_id=principal.user_id,
        )
        _recompute(repair)
        if repair.balance_cents > 0 and payment_timing == "before":
            repair.status = STATUS_PAYMENT_PENDING

        db.session.add(repair)
        db.session.flush()
        repair.ticket_number = f"R{repair.id:06d}"

        for part in resolved:
            item = part["item"]
            if item is not None:
                adjust(
                    item.id,
                    -part["quantity"],
                    reason=REASON_REPAIR_PART,
                    reference_type="repair",
                    reference_id=repair.id,
                    actor_user_id=principal.user_id,
                )
            db.session.add(RepairPart(
                repair_id=repair.id,
                item_id=item.id if item is not None else None,
                item_name=part["name"],
                quantity=part["quantity"],
                cost_cents=part["cost_cents"],
                source=part["source"],
                supplier_id=part["supplier_id"],
            ))
            if part["source"] == PART_SOURCE_OUTSOURCED:
                add_debt(part["supplier_id"], part["name"], part["quantity"], repair_id=repair.id)

        if deposit_amount_cents > 0:
            payment_service.record_payment(
                deposit_method,
                deposit_amount_cents,
                payment_service.RELATED_TO_REPAIR,
                repair.id,
                shop_id=shop_id,
                state=repair.payment_status,
                reference=deposit_reference,
                actor_user_id=principal.user_id,
            )

        db.session.flush()
        append_event(
            event_type="repair.created",
            entity_type="repair",
            entity_id=repair.id,
            shop_id=shop_id,
            actor_user_id=principal.user_id,
            payload={"status": repair.status, "balance_cents": repair.balance_cents},
        )
        return repair

    repair = run_in_transaction(_op)
    current_app.logger.info(
        "Repair %s created at shop %s: status=%s balance_cents=%s",
        repair.ticket_number,
        shop_id,
        repair.status,
        repair.balance_cents,
    )
    return repair


def record_payment(
    repair_id: int,
    amount_cents: int,
    method: str,
    principal: Principal,
    reference: str | None = None,
) -> Repair:
    """Apply a payment collected at the counter straight to the ticket."""
    amount_cents = require_amount(amount_cents, "amount_cents", allow_zero=False)
    method = require_choice(method, "method", payment_service.PAYMENT_TYPES)
    reference = optional_str(reference, "reference", max_length=128)
    _require_bank_reference(method, reference, "reference")

    def _op():
        repair = _lock_repair(repair_id)
        authorize(principal, "COLLECT_PAYMENT", shop_id=repair.shop_id)
        if repair.collected:
            raise InvalidStateTransition(f"Repair {repair.ticket_number} is already collected")
        if amount_cents > repair.balance_cents:
            raise ValidationError(
                f"Payment {amount_cents} exceeds the balance {repair.balance_cents}",
                field="amount_cents",
            )

        repair.amount_paid_cents += amount_cents
        _recompute(repair)
        payment_service.record_payment(
            method,
            amount_cents,
            payment_service.RELATED_TO_REPAIR,
            repair.id,
            shop_id=repair.shop_id,
            state=repair.payment_status,
            reference=reference,
            actor_user_id=principal.user_id,
        )
        append_event(
            event_type="repair.payment_recorded",
            entity_type="repair",
            entity_id=repair.id,
            shop_id=repair.shop_id,
            actor_user_id=principal.user_id,
            payload={"amount_cents": amount_cents, "balance_cents": repair.balance_cents},
        )
        return repair

    return run_in_transaction(_op)


def submit_payment_for_approval(
    repair_id: int,
    method: str,
    reference: str | None,
    principal: Principal,
    amount_cents: int | None = None,
) -> Repair:
    """
    Park a collected payment until an admin approves it.

    A second submission replaces the first. amount_paid is untouched.
    """
    method = require_choice(method, "method", payment_service.PAYMENT_TYPES)
    reference = optional_str(reference, "reference", max_length=128)
    _require_bank_reference(method, reference, "reference")
    if amount_cents is not None:
        amount_cents = require_amount(amount_cents, "amount_cents", allow_zero=False)

    def _op():
        repair = _lock_repair(repair_id)
        authorize(principal, "COLLECT_PAYMENT", shop_id=repair.shop_id)
        if repair.collected:
            raise InvalidStateTransition(f"Repair {repair.ticket_number} is already collected")
        if repair.balance_cents <= 0:
            raise InvalidStateTransition(f"Repair {repair.ticket_number} has no balance to pay")

        amount = repair.balance_cents if amount_cents is None else amount_cents
        if amount > repair.balance_cents:
            raise ValidationError(
                f"Payment {amount} exceeds the balance {repair.balance_cents}",
                field="amount_cents",
            )

        repair.pending_payment_method = method
        repair.pending_payment_reference = reference
        repair.pending_payment_amount_cents = amount
        repair.pending_payment_submitted_by_user_id = principal.user_id
        repair.pending_payment_submitted_at = utcnow()

        append_event(
            event_type="repair.payment_submitted",
            entity_type="repair",
            entity_id=repair.id,
            shop_id=repair.shop_id,
            actor_user_id=principal.user_id,
            payload={"amount_cents": amount, "method": method},
        )
        return repair

    return run_in_transaction(_op)


def approve_payment(repair_id: int, principal: Principal) -> Repair:
    """
    Countersign the pending payment and apply it to the ticket.

    Raises:
        InvalidStateTransition: nothing is pending and nothing was approved before,
            or the pending amount no longer fits the balance
    """
    authorize(principal, "APPROVE_PAYMENT")

    def _op():
        repair = _lock_repair(repair_id)
        if not repair.has_pending_payment:
            if repair.payment_approved:
                raise AlreadyProcessed(f"Repair {repair_id} payment already approved")
            raise InvalidStateTransition(f"Repair {repair.ticket_number} has no payment awaiting approval")
        if repair.collected:
            raise InvalidStateTransition(f"Repair {repair.ticket_number} is already collected")

        amount = repair.pending_payment_amount_cents or 0
        if amount <= 0 or amount > repair.balance_cents:
            raise InvalidStateTransition(
                f"Pending payment {amount} does not fit the balance {repair.balance_cents}; resubmit it"
            )

        method = repair.pending_payment_method
        reference = repair.pending_payment_reference
        submitted_by = repair.pending_payment_submitted_by_user_id

        repair.amount_paid_cents += amount
        repair.pending_payment_method = None
        repair.pending_payment_reference = None
        repair.pending_payment_amount_cents = None
        repair.pending_payment_submitted_by_user_id = None
        repair.pending_payment_submitted_at = None
        repair.payment_approved = True
        _recompute(repair)

        payment_service.record_payment(
            method,
            amount,
            payment_service.RELATED_TO_REPAIR,
            repair.id,
            shop_id=repair.shop_id,
            state=repair.payment_status,
            reference=reference,
            actor_user_id=submitted_by,
        )
        append_event(
            event_type="repair.payment_approved",
            entity_type="repair",
            entity_id=repair.id,
            shop_id=repair.shop_id,
            actor_user_id=principal.user_id,
            payload={"amount_cents": amount, "balance_cents": repair.balance_cents},
        )
        return repair

    try:
        repair = run_in_transaction(_op)
    except AlreadyProcessed:
        current_app.logger.info("Repair %s payment already approved; nothing to do", repair_id)
        return get_repair(repair_id)

    current_app.logger.info(
        "Repair %s payment approved by user %s: balance_cents=%s",
        repair.ticket_number,
        principal.user_id,
        repair.balance_cents,
    )
    return repair


def confirm_collection(repair_id: int, principal: Principal) -> Repair:
    """Hand the device back. Only a fully paid ticket can be collected."""

    def _op():
        repair = _lock_repair(repair_id)
        authorize(principal, "CONFIRM_COLLECTION", shop_id=repair.shop_id)
        if repair.collected:
            raise AlreadyProcessed(f"Repair {repair_id} already collected")
        if repair.payment_status != PAYMENT_STATUS_FULLY_PAID:
            raise InvalidStateTransition(
                f"Repair {repair.ticket_number} is not fully paid (balance {repair.balance_cents})"
            )

        repair.status = STATUS_COLLECTED
        repair.collected = True
        repair.collected_at = utcnow()
        repair.collected_by_user_id = principal.user_id

        append_event(
            event_type="repair.collected",
            entity_type="repair",
            entity_id=repair.id,
            shop_id=repair.shop_id,
            actor_user_id=principal.user_id,
        )
        return repair

    try:
        repair = run_in_transaction(_op)
    except AlreadyProcessed:
        current_app.logger.info("Repair %s already collected; nothing to do", repair_id)
        return get_repair(repair_id)

    current_app.logger.info("Repair %s collected by user %s", repair.ticket_number, principal.user_id)
    return repair


def update_part_cost(
    repair_id: int,
    item_name: str,
    cost_per_unit_cents: int,
    qty: int,
    principal: Principal,
    supplier_id: int | None = None,
) -> Repair:
    """
    Enter the supplier's price for an outsourced part.

    The part row and its supplier debt are re-priced; an untracked part is
    added. The ticket's totals and balance stay as agreed at intake.
    """
    authorize(principal, "COST_PARTS")
    item_name = require_str(item_name, "item_name")
    cost_per_unit_cents = require_amount(cost_per_unit_cents, "cost_per_unit_cents")
    qty = require_int(qty, "qty", minimum=1)
    supplier_id = optional_int(supplier_id, "supplier_id")

    def _op():
        repair = _lock_repair(repair_id)
        part = next(
            (
                p for p in repair.parts
                if p.item_name == item_name and p.source == PART_SOURCE_OUTSOURCED
            ),
            None,
        )
        if part is None:
            part = RepairPart(
                repair_id=repair.id,
                item_name=item_name,
                source=PART_SOURCE_OUTSOURCED,
                supplier_id=supplier_id,
            )
            repair.parts.append(part)
        elif supplier_id is not None:
            if part.supplier_id is None:
                part.supplier_id = supplier_id
            elif part.supplier_id != supplier_id:
                raise ValidationError(
                    f"{item_name} on {repair.ticket_number} is supplied by supplier {part.supplier_id}, not {supplier_id}",
                    field="supplier_id",
                )

        part.quantity = qty
        part.cost_cents = cost_per_unit_cents

        debt = (
            db.session.query(SupplierDebt)
            .filter(SupplierDebt.repair_id == repair.id, SupplierDebt.item_name == item_name)
            .order_by(SupplierDebt.paid.asc(), SupplierDebt.id.asc())
            .first()
        )
        if debt is not None:
            apply_cost(debt, cost_per_unit_cents, quantity=qty)
        elif part.supplier_id is not None:
            add_debt(
                part.supplier_id,
                item_name,
                qty,
                repair_id=repair.id,
                cost_per_unit_cents=cost_per_unit_cents,
            )

        append_event(
            event_type="repair.part_costed",
            entity_type="repair",
            entity_id=repair.id,
            shop_id=repair.shop_id,
            actor_user_id=principal.user_id,
            payload={"item_name": item_name, "cost_per_unit_cents": cost_per_unit_cents, "qty": qty},
        )
        return repair

    return run_in_transaction(_op)


def update_status(repair_id: int, status: str, principal: Principal) -> Repair:
    status = require_choice(status, "status", REPAIR_STATUSES)

    def _op():
        repair = _lock_repair(repair_id)
        authorize(principal, "UPDATE_REPAIR", shop_id=repair.shop_id)
        if repair.status == status:
            raise AlreadyProcessed(f"Repair {repair_id} already {status}")
        allowed = MANUAL_TRANSITIONS.get(repair.status, set())
        if status not in allowed:
            raise InvalidStateTransition(f"Cannot move repair from {repair.status} to {status}")

        previous = repair.status
        repair.status = status
        append_event(
            event_type="repair.status_changed",
            entity_type="repair",
            entity_id=repair.id,
            shop_id=repair.shop_id,
            actor_user_id=principal.user_id,
            payload={"from": previous, "to": status},
        )
        return repair

    try:
        return run_in_transaction(_op)
    except AlreadyProcessed:
        return get_repair(repair_id)


def set_customer_status(repair_id: int, customer_status: str, principal: Principal) -> Repair:
    customer_status = require_choice(customer_status, "customer_status", CUSTOMER_STATUSES)

    def _op():
        repair = _lock_repair(repair_id)
        authorize(principal, "UPDATE_REPAIR", shop_id=repair.shop_id)
        repair.customer_status = customer_status
        return repair

    return run_in_transaction(_op)


def delete_repair(repair_id: int, principal: Principal) -> None:
    """
    Remove a ticket.

    Refused while unpaid supplier debts point at it. Paid debts and payments
    keep their reference to the deleted id; parts are not restocked.
    """
    authorize(principal, "DELETE_REPAIR")

    def _op():
        repair = _lock_repair(repair_id)
        unpaid = (
            db.session.query(func.count(SupplierDebt.id))
            .filter(SupplierDebt.repair_id == repair.id, SupplierDebt.paid.is_(False))
            .scalar()
        )
        if unpaid:
            raise InvalidStateTransition(
                f"Repair {repair.ticket_number} has {unpaid} unpaid supplier debt(s); settle them first"
            )
        append_event(
            event_type="repair.deleted",
            entity_type="repair",
            entity_id=repair.id,
            shop_id=repair.shop_id,
            actor_user_id=principal.user_id,
            payload={"ticket_number": repair.ticket_number},
        )
        db.session.delete(repair)

    run_in_transaction(_op)
    current_app.logger.info("Repair %s deleted by user %s", repair_id, principal.user_id)


def list_repairs(*, shop_id: int | None = None, status: str | None = None, limit: int = 200) -> list[Repair]:
    query = db.session.query(Repair)
    if shop_id is not None:
        query = query.filter(Repair.shop_id == shop_id)
    if status is not None:
        query = query.filter(Repair.status == status)
    return query.order_by(Repair.id.desc()).limit(limit).all()


def list_pending_approvals(shop_id: int | None = None) -> list[Repair]:
    query = db.session.query(Repair).filter(Repair.pending_payment_method.isnot(None))
    if shop_id is not None:
        query = query.filter(Repair.shop_id == shop_id)
    return query.order_by(Repair.pending_payment_submitted_at.asc(), Repair.id.asc()).all()


def list_pending_collections(shop_id: int | None = None) -> list[Repair]:
    """Fully paid devices still waiting for their owner."""
    query = db.session.query(Repair).filter(
        Repair.payment_status == PAYMENT_STATUS_FULLY_PAID,
        Repair.collected.is_(False),
    )
    if shop_id is not None:
        query = query.filter(Repair.shop_id == shop_id)
    return query.order_by(Repair.id.asc()).all()


def list_repairs_needing_costs() -> list[Repair]:
    needing = (
        db.session.query(SupplierDebt.repair_id)
        .filter(
            SupplierDebt.repair_id.isnot(None),
            SupplierDebt.paid.is_(False),
            SupplierDebt.cost_per_unit_cents == 0,
        )
        .distinct()
    )
    return (
        db.session.query(Repair)
        .filter(Repair.id.in_(needing))
        .order_by(Repair.id.asc())
        .all()
    )


def repair_totals(shop_id: int | None = None) -> dict:
    query = db.session.query(
        func.coalesce(func.sum(func.coalesce(Repair.total_agreed_amount_cents, Repair.total_cost_cents)), 0),
        func.coalesce(func.sum(Repair.amount_paid_cents), 0),
        func.coalesce(func.sum(Repair.outsourced_cost_cents), 0),
        func.coalesce(func.sum(Repair.labor_cost_cents), 0),
        func.count(Repair.id),
    )
    if shop_id is not None:
        query = query.filter(Repair.shop_id == shop_id)
    revenue, collected, outsourced, labor, count = query.one()
    return {
        "repair_count": int(count or 0),
        "revenue_cents": int(revenue or 0),
        "amount_paid_cents": int(collected or 0),
        "outsourced_cost_cents": int(outsourced or 0),
        "labor_cost_cents": int(labor or 0),
    }
