from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z


ITEM_CATEGORIES = ("Phone", "Spare", "Accessory")


class InventoryItem(db.Model):
    """
    One stock-holding row per (name, shop).

    POOL: shop_id = NULL marks purchased stock not yet distributed to a shop.
    A partial unique index keeps exactly one pool row per item name.

    STOCK: `stock` is only ever changed through stock_ledger.adjust(), which
    applies the delta with a conditional UPDATE so concurrent writers are
    linearized on the row. The CHECK constraint is a last line of defence;
    the ledger rejects a negative result before the database has to.

    Rows are never physically deleted (movements, repairs and sales point at
    them); is_active = False hides them from future use.
    """
    __tablename__ = "inventory_items"
    __table_args__ = (
        db.UniqueConstraint("shop_id", "name", name="uq_inventory_items_shop_name"),
        db.Index(
            "uq_inventory_items_pool_name",
            "name",
            unique=True,
            sqlite_where=db.text("shop_id IS NULL"),
            postgresql_where=db.text("shop_id IS NULL"),
        ),
        db.CheckConstraint("stock >= 0", name="ck_inventory_items_stock_non_negative"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(255), nullable=False, index=True)
    category = db.Column(db.String(16), nullable=False, default="Spare")

    # NULL = pool (unassigned)
    shop_id = db.Column(db.Integer, db.ForeignKey("shops.id"), nullable=True, index=True)
    supplier_id = db.Column(db.Integer, db.ForeignKey("suppliers.id"), nullable=True, index=True)

    stock = db.Column(db.Integer, nullable=False, default=0)
    initial_stock = db.Column(db.Integer, nullable=False, default=0)
    reorder_level = db.Column(db.Integer, nullable=False, default=0)

    price_cents = db.Column(db.Integer, nullable=False, default=0)
    # Admin-only
    cost_price_cents = db.Column(db.Integer, nullable=True)
    admin_cost_price_cents = db.Column(db.Integer, nullable=True)

    pending_allocation = db.Column(db.Boolean, nullable=False, default=False, index=True)
    is_active = db.Column(db.Boolean, nullable=False, default=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    shop = db.relationship("Shop", backref=db.backref("items", lazy=True))
    supplier = db.relationship("Supplier")

    @property
    def is_pool(self) -> bool:
        return self.shop_id is None

    @property
    def is_low_stock(self) -> bool:
        return self.stock <= self.reorder_level

    def __repr__(self) -> str:
        return f"<InventoryItem id={self.id} name={self.name!r} shop_id={self.shop_id} stock={self.stock}>"

    def to_dict(self, include_costs: bool = False) -> dict:
        data = {
            "id": self.id,
            "name": self.name,
            "category": self.category,
            "shop_id": self.shop_id,
            "supplier_id": self.supplier_id,
            "stock": self.stock,
            "initial_stock": self.initial_stock,
            "reorder_level": self.reorder_level,
            "low_stock": self.is_low_stock,
            "price_cents": self.price_cents,
            "pending_allocation": self.pending_allocation,
            "is_active": self.is_active,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }
        if include_costs:
            data["cost_price_cents"] = self.cost_price_cents
            data["admin_cost_price_cents"] = self.admin_cost_price_cents
        return data


class StockMovement(db.Model):
    """
    Append-only history of every stock adjustment.

    One row per successful stock_ledger.adjust() call, written in the same
    transaction. stock_after is the row's quantity immediately after the
    delta, which makes per-item movement reports a simple ordered read.
    """
    __tablename__ = "stock_movements"
    __table_args__ = (
        db.Index("ix_stock_movements_item_occurred", "item_id", "occurred_at"),
        db.Index("ix_stock_movements_reference", "reference_type", "reference_id"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    item_id = db.Column(db.Integer, db.ForeignKey("inventory_items.id"), nullable=False, index=True)
    shop_id = db.Column(db.Integer, db.ForeignKey("shops.id"), nullable=True, index=True)

    # PURCHASE, ALLOCATION_IN, ALLOCATION_OUT, EXCHANGE_IN, EXCHANGE_OUT, REPAIR_PART, SALE, ADJUST
    reason = db.Column(db.String(32), nullable=False, index=True)
    delta = db.Column(db.Integer, nullable=False)
    stock_after = db.Column(db.Integer, nullable=False)

    reference_type = db.Column(db.String(32), nullable=True)
    reference_id = db.Column(db.Integer, nullable=True)
    actor_user_id = db.Column(db.Integer, nullable=True)
    note = db.Column(db.String(255), nullable=True)

    occurred_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), index=True)

    item = db.relationship("InventoryItem", backref=db.backref("movements", lazy="dynamic"))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "item_id": self.item_id,
            "shop_id": self.shop_id,
            "reason": self.reason,
            "delta": self.delta,
            "stock_after": self.stock_after,
            "reference_type": self.reference_type,
            "reference_id": self.reference_id,
            "actor_user_id": self.actor_user_id,
            "note": self.note,
            "occurred_at": to_utc_z(self.occurred_at),
        }


class Purchase(db.Model):
    """
    Stock bought from a supplier. Immutable once recorded.

    Without a shop_id the goods land in the pool and wait for an approved
    StockAllocation; with a shop_id they go straight to that shop.
    """
    __tablename__ = "purchases"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    supplier_id = db.Column(db.Integer, db.ForeignKey("suppliers.id"), nullable=False, index=True)
    shop_id = db.Column(db.Integer, db.ForeignKey("shops.id"), nullable=True, index=True)
    total_cents = db.Column(db.Integer, nullable=False, default=0)
    note = db.Column(db.String(255), nullable=True)

    created_by_user_id = db.Column(db.Integer, nullable=False)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), index=True)

    supplier = db.relationship("Supplier")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "supplier_id": self.supplier_id,
            "shop_id": self.shop_id,
            "total_cents": self.total_cents,
            "note": self.note,
            "created_by_user_id": self.created_by_user_id,
            "created_at": to_utc_z(self.created_at),
            "lines": [line.to_dict() for line in self.lines],
        }


class PurchaseLine(db.Model):
    __tablename__ = "purchase_lines"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    purchase_id = db.Column(db.Integer, db.ForeignKey("purchases.id"), nullable=False, index=True)
    item_id = db.Column(db.Integer, db.ForeignKey("inventory_items.id"), nullable=False, index=True)
    item_name = db.Column(db.String(255), nullable=False)
    quantity = db.Column(db.Integer, nullable=False)
    cost_price_cents = db.Column(db.Integer, nullable=False, default=0)

    purchase = db.relationship("Purchase", backref=db.backref("lines", lazy=True, order_by="PurchaseLine.id"))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "purchase_id": self.purchase_id,
            "item_id": self.item_id,
            "item_name": self.item_name,
            "quantity": self.quantity,
            "cost_price_cents": self.cost_price_cents,
        }
