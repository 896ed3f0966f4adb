# Overview: Service-layer operations for the per-shop stock ledger; the only writer of InventoryItem.stock.

"""
Stock Ledger Invariants (authoritative)

Quantity model:
- Each (item name, shop) pair has exactly one InventoryItem row; shop_id NULL is the pool.
- InventoryItem.stock is the quantity on hand and is only changed by adjust().

Business invariants:
- Stock never goes negative. adjust() applies the delta with a single
  conditional UPDATE (stock + delta >= 0), so two writers racing for the
  last unit are linearized by the database row: exactly one succeeds and
  the other gets InsufficientStock with nothing written.
- Quantities used for decisions are read back after the write, inside the
  same transaction; request-time reads are advisory only.
- Every successful adjustment appends a StockMovement in the same transaction.
- For a given name, the sum of stock across pool and shops equals total
  purchased minus total consumed/sold; allocation and exchange only move
  quantity between rows.

adjust()/ensure_item() never commit; callers run them inside
run_in_transaction so multi-row operations stay all-or-nothing.
"""
from __future__ import annotations

from sqlalchemy import func, update
from sqlalchemy.exc import IntegrityError

from ..errors import InsufficientStock, NotFound, ValidationError
from ..extensions import db
from ..models import InventoryItem, StockMovement, Shop, Supplier, ITEM_CATEGORIES
from ..validation import require_int, require_str, require_choice, optional_int, require_amount
from .activity_service import append_event
from .concurrency import run_in_transaction
from .policy import Principal, authorize


REASON_PURCHASE = "PURCHASE"
REASON_ALLOCATION_IN = "ALLOCATION_IN"
REASON_ALLOCATION_OUT = "ALLOCATION_OUT"
REASON_EXCHANGE_IN = "EXCHANGE_IN"
REASON_EXCHANGE_OUT = "EXCHANGE_OUT"
REASON_REPAIR_PART = "REPAIR_PART"
REASON_SALE = "SALE"
REASON_ADJUST = "ADJUST"

VALID_REASONS = {
    REASON_PURCHASE,
    REASON_ALLOCATION_IN,
    REASON_ALLOCATION_OUT,
    REASON_EXCHANGE_IN,
    REASON_EXCHANGE_OUT,
    REASON_REPAIR_PART,
    REASON_SALE,
    REASON_ADJUST,
}

# Metadata a new per-shop row inherits from the row it was derived from
_INHERITED_FIELDS = (
    "category",
    "price_cents",
    "reorder_level",
    "cost_price_cents",
    "admin_cost_price_cents",
    "supplier_id",
)


def _reload(item_id: int) -> InventoryItem | None:
    """Fetch the row bypassing stale identity-map state."""
    return (
        db.session.query(InventoryItem)
        .filter_by(id=item_id)
        .populate_existing()
        .first()
    )


def get_item(item_id: int) -> InventoryItem:
    item = db.session.get(InventoryItem, item_id)
    if item is None:
        raise NotFound("Inventory item", item_id)
    return item


def find_item(name: str, shop_id: int | None) -> InventoryItem | None:
    query = db.session.query(InventoryItem).filter(InventoryItem.name == name)
    if shop_id is None:
        query = query.filter(InventoryItem.shop_id.is_(None))
    else:
        query = query.filter(InventoryItem.shop_id == shop_id)
    return query.first()


def adjust(
    item_id: int,
    delta: int,
    *,
    reason: str,
    reference_type: str | None = None,
    reference_id: int | None = None,
    actor_user_id: int | None = None,
    note: str | None = None,
    error_cls: type[InsufficientStock] = InsufficientStock,
) -> int:
    """
    Apply delta to one stock row and return the new quantity.

    Raises:
        ValidationError: delta is zero/not an int or reason is unknown
        NotFound: item does not exist
        InsufficientStock (or error_cls): the result would be negative;
            nothing is written
    """
    delta = require_int(delta, "delta")
    if delta == 0:
        raise ValidationError("delta must be non-zero", field="delta")
    if reason not in VALID_REASONS:
        raise ValidationError(f"Unknown stock movement reason: {reason}", field="reason")

    # Pending ORM changes must reach the row before the reload below overwrites them
    db.session.flush()

    stmt = (
        update(InventoryItem)
        .where(InventoryItem.id == item_id, InventoryItem.stock + delta >= 0)
        .values(stock=InventoryItem.stock + delta)
        .execution_options(synchronize_session=False)
    )
    result = db.session.execute(stmt)

    item = _reload(item_id)
    if item is None:
        raise NotFound("Inventory item", item_id)

    if result.rowcount == 0:
        raise error_cls(item.name, requested=-delta, available=item.stock, shop_id=item.shop_id)

    movement = StockMovement(
        item_id=item.id,
        shop_id=item.shop_id,
        reason=reason,
        delta=delta,
        stock_after=item.stock,
        reference_type=reference_type,
        reference_id=reference_id,
        actor_user_id=actor_user_id,
        note=note,
    )
    db.session.add(movement)
    db.session.flush()

    return item.stock


def adjust_by_name(name: str, shop_id: int | None, delta: int, **kwargs) -> int:
    """adjust() addressed by (name, shop); the row must already exist."""
    item = find_item(name, shop_id)
    if item is None:
        raise NotFound("Inventory item", f"{name!r}@{'pool' if shop_id is None else shop_id}")
    return adjust(item.id, delta, **kwargs)


def ensure_item(name: str, shop_id: int | None, template: InventoryItem | None = None) -> InventoryItem:
    """
    Get or create the row for (name, shop_id).

    New rows start at stock 0 and inherit category/price/reorder level/cost
    prices/supplier from template. A deactivated row is reactivated since it
    is about to hold stock again.
    """
    item = find_item(name, shop_id)
    if item is not None:
        if not item.is_active:
            item.is_active = True
            db.session.flush()
        return item

    item = InventoryItem(name=name, shop_id=shop_id, stock=0, initial_stock=0)
    if template is not None:
        for field in _INHERITED_FIELDS:
            setattr(item, field, getattr(template, field))

    # Another transaction may create the same row concurrently; the unique
    # constraint decides and the loser re-reads the winner's row.
    try:
        with db.session.begin_nested():
            db.session.add(item)
            db.session.flush()
    except IntegrityError:
        item = find_item(name, shop_id)
        if item is None:
            raise
    return item


def get_stock(item_id: int) -> int:
    item = _reload(item_id)
    if item is None:
        raise NotFound("Inventory item", item_id)
    return item.stock


def get_stock_by_name(name: str, shop_id: int | None) -> int:
    item = find_item(name, shop_id)
    if item is None:
        return 0
    db.session.refresh(item)
    return item.stock


def get_total_stock(name: str) -> int:
    """Stock for a name across the pool and every shop."""
    total = (
        db.session.query(func.coalesce(func.sum(InventoryItem.stock), 0))
        .filter(InventoryItem.name == name)
        .scalar()
    )
    return int(total or 0)


def list_items(
    *,
    shop_id: int | None = None,
    pool: bool = False,
    category: str | None = None,
    include_inactive: bool = False,
) -> list[InventoryItem]:
    query = db.session.query(InventoryItem)
    if pool:
        query = query.filter(InventoryItem.shop_id.is_(None))
    elif shop_id is not None:
        query = query.filter(InventoryItem.shop_id == shop_id)
    if category is not None:
        query = query.filter(InventoryItem.category == category)
    if not include_inactive:
        query = query.filter(InventoryItem.is_active.is_(True))
    return query.order_by(InventoryItem.name.asc(), InventoryItem.id.asc()).all()


def low_stock_items(shop_id: int | None = None) -> list[InventoryItem]:
    """Active shop rows at or below their reorder level."""
    query = db.session.query(InventoryItem).filter(
        InventoryItem.is_active.is_(True),
        InventoryItem.shop_id.isnot(None),
        InventoryItem.stock <= InventoryItem.reorder_level,
    )
    if shop_id is not None:
        query = query.filter(InventoryItem.shop_id == shop_id)
    return query.order_by(InventoryItem.stock.asc(), InventoryItem.name.asc()).all()


def list_movements(item_id: int, limit: int = 100) -> list[StockMovement]:
    get_item(item_id)
    return (
        db.session.query(StockMovement)
        .filter_by(item_id=item_id)
        .order_by(StockMovement.id.desc())
        .limit(limit)
        .all()
    )


def create_item(data: dict, principal: Principal) -> InventoryItem:
    """
    Manually add an inventory row (outside a purchase).

    Opening stock is posted as an ADJUST movement so the row's history
    starts from zero like every other row.
    """
    authorize(principal, "ADJUST_STOCK")

    name = require_str(data.get("name"), "name")
    category = require_choice(data.get("category", "Spare"), "category", ITEM_CATEGORIES)
    shop_id = optional_int(data.get("shop_id"), "shop_id")
    opening_stock = require_int(data.get("stock", 0), "stock", minimum=0)
    price_cents = require_amount(data.get("price_cents", 0), "price_cents")
    reorder_level = require_int(data.get("reorder_level", 0), "reorder_level", minimum=0)
    cost_price_cents = optional_int(data.get("cost_price_cents"), "cost_price_cents", minimum=0)
    admin_cost_price_cents = optional_int(data.get("admin_cost_price_cents"), "admin_cost_price_cents", minimum=0)
    supplier_id = optional_int(data.get("supplier_id"), "supplier_id")

    def _op():
        if shop_id is not None and db.session.get(Shop, shop_id) is None:
            raise NotFound("Shop", shop_id)
        if supplier_id is not None and db.session.get(Supplier, supplier_id) is None:
            raise NotFound("Supplier", supplier_id)
        if find_item(name, shop_id) is not None:
            raise ValidationError(f"{name!r} already exists in this shop", field="name")

        item = InventoryItem(
            name=name,
            category=category,
            shop_id=shop_id,
            stock=0,
            initial_stock=opening_stock,
            price_cents=price_cents,
            reorder_level=reorder_level,
            cost_price_cents=cost_price_cents,
            admin_cost_price_cents=admin_cost_price_cents,
            supplier_id=supplier_id,
        )
        db.session.add(item)
        db.session.flush()

        if opening_stock:
            adjust(
                item.id,
                opening_stock,
                reason=REASON_ADJUST,
                actor_user_id=principal.user_id,
                note="Opening stock",
            )

        append_event(
            event_type="inventory.item_created",
            entity_type="inventory_item",
            entity_id=item.id,
            shop_id=shop_id,
            actor_user_id=principal.user_id,
        )
        return item

    return run_in_transaction(_op)


def record_adjustment(item_id: int, delta: int, principal: Principal, note: str | None = None) -> InventoryItem:
    """Manual stock correction (damage, recount)."""
    authorize(principal, "ADJUST_STOCK")
    delta = require_int(delta, "delta")

    def _op():
        adjust(
            item_id,
            delta,
            reason=REASON_ADJUST,
            reference_type="manual",
            actor_user_id=principal.user_id,
            note=note,
        )
        item = get_item(item_id)
        append_event(
            event_type="inventory.adjusted",
            entity_type="inventory_item",
            entity_id=item.id,
            shop_id=item.shop_id,
            actor_user_id=principal.user_id,
            note=note,
            payload={"delta": delta, "stock_after": item.stock},
        )
        return item

    return run_in_transaction(_op)


def deactivate_item(item_id: int, principal: Principal) -> InventoryItem:
    """Soft delete: history keeps pointing at the row, new work cannot."""
    authorize(principal, "ADJUST_STOCK")

    def _op():
        item = get_item(item_id)
        if not item.is_active:
            return item
        item.is_active = False
        append_event(
            event_type="inventory.item_deactivated",
            entity_type="inventory_item",
            entity_id=item.id,
            shop_id=item.shop_id,
            actor_user_id=principal.user_id,
        )
        return item

    return run_in_transaction(_op)
