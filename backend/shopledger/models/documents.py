from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z


class StockAllocation(db.Model):
    """
    Request to distribute pool stock across shops.

    LIFECYCLE:
    1. pending: requested, no ledger effect
    2. approved: pool decremented by total_qty and every line's shop
       incremented by its qty, exactly once (terminal)
    3. rejected: closed without ledger effect (terminal)

    version_id turns a concurrent second approval into a StaleDataError
    that is retried and then observed as already approved.
    """
    __tablename__ = "stock_allocations"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)

    # The pool row being distributed
    item_id = db.Column(db.Integer, db.ForeignKey("inventory_items.id"), nullable=False, index=True)
    total_qty = db.Column(db.Integer, nullable=False)

    # pending, approved, rejected
    status = db.Column(db.String(16), nullable=False, default="pending", index=True)

    requested_by_user_id = db.Column(db.Integer, nullable=False)
    approved_by_user_id = db.Column(db.Integer, nullable=True)
    rejected_by_user_id = db.Column(db.Integer, nullable=True)
    rejection_reason = db.Column(db.String(255), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    approved_at = db.Column(db.DateTime(timezone=True), nullable=True)
    rejected_at = db.Column(db.DateTime(timezone=True), nullable=True)

    version_id = db.Column(db.Integer, nullable=False, default=1)

    item = db.relationship("InventoryItem")
    __mapper_args__ = {"version_id_col": version_id}

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "item_id": self.item_id,
            "item_name": self.item.name if self.item else None,
            "total_qty": self.total_qty,
            "status": self.status,
            "requested_by_user_id": self.requested_by_user_id,
            "approved_by_user_id": self.approved_by_user_id,
            "rejected_by_user_id": self.rejected_by_user_id,
            "rejection_reason": self.rejection_reason,
            "created_at": to_utc_z(self.created_at),
            "approved_at": to_utc_z(self.approved_at),
            "rejected_at": to_utc_z(self.rejected_at),
            "version_id": self.version_id,
            "lines": [line.to_dict() for line in self.lines],
        }


class AllocationLine(db.Model):
    __tablename__ = "allocation_lines"
    __table_args__ = (
        db.UniqueConstraint("allocation_id", "shop_id", name="uq_allocation_lines_shop"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    allocation_id = db.Column(db.Integer, db.ForeignKey("stock_allocations.id"), nullable=False, index=True)
    shop_id = db.Column(db.Integer, db.ForeignKey("shops.id"), nullable=False)
    quantity = db.Column(db.Integer, nullable=False)

    allocation = db.relationship(
        "StockAllocation", backref=db.backref("lines", lazy=True, order_by="AllocationLine.id")
    )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "allocation_id": self.allocation_id,
            "shop_id": self.shop_id,
            "quantity": self.quantity,
        }


class Exchange(db.Model):
    """
    Stock handoff between two shops.

    LIFECYCLE:
    1. pending: requested; source stock checked but not deducted
    2. confirmed: receiving shop attested physical receipt (no ledger effect)
    3. completed: admin completed; source debited, destination credited (terminal)
    4. rejected: closed manually from pending or confirmed (terminal)
    """
    __tablename__ = "exchanges"
    __table_args__ = (
        db.CheckConstraint("from_shop_id <> to_shop_id", name="ck_exchanges_distinct_shops"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)

    from_shop_id = db.Column(db.Integer, db.ForeignKey("shops.id"), nullable=False, index=True)
    to_shop_id = db.Column(db.Integer, db.ForeignKey("shops.id"), nullable=False, index=True)

    # pending, confirmed, completed, rejected
    status = db.Column(db.String(16), nullable=False, default="pending", index=True)
    note = db.Column(db.String(255), nullable=True)

    requested_by_user_id = db.Column(db.Integer, nullable=False)
    confirmed_by_user_id = db.Column(db.Integer, nullable=True)
    completed_by_user_id = db.Column(db.Integer, nullable=True)
    rejected_by_user_id = db.Column(db.Integer, nullable=True)
    rejection_reason = db.Column(db.String(255), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    confirmed_at = db.Column(db.DateTime(timezone=True), nullable=True)
    completed_at = db.Column(db.DateTime(timezone=True), nullable=True)
    rejected_at = db.Column(db.DateTime(timezone=True), nullable=True)

    version_id = db.Column(db.Integer, nullable=False, default=1)

    from_shop = db.relationship("Shop", foreign_keys=[from_shop_id])
    to_shop = db.relationship("Shop", foreign_keys=[to_shop_id])
    __mapper_args__ = {"version_id_col": version_id}

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "from_shop_id": self.from_shop_id,
            "to_shop_id": self.to_shop_id,
            "status": self.status,
            "note": self.note,
            "requested_by_user_id": self.requested_by_user_id,
            "confirmed_by_user_id": self.confirmed_by_user_id,
            "completed_by_user_id": self.completed_by_user_id,
            "rejected_by_user_id": self.rejected_by_user_id,
            "rejection_reason": self.rejection_reason,
            "created_at": to_utc_z(self.created_at),
            "confirmed_at": to_utc_z(self.confirmed_at),
            "completed_at": to_utc_z(self.completed_at),
            "rejected_at": to_utc_z(self.rejected_at),
            "version_id": self.version_id,
            "lines": [line.to_dict() for line in self.lines],
        }


class ExchangeLine(db.Model):
    __tablename__ = "exchange_lines"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    exchange_id = db.Column(db.Integer, db.ForeignKey("exchanges.id"), nullable=False, index=True)

    # Source-shop inventory row
    item_id = db.Column(db.Integer, db.ForeignKey("inventory_items.id"), nullable=False)
    item_name = db.Column(db.String(255), nullable=False)
    quantity = db.Column(db.Integer, nullable=False)

    exchange = db.relationship("Exchange", backref=db.backref("lines", lazy=True, order_by="ExchangeLine.id"))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "exchange_id": self.exchange_id,
            "item_id": self.item_id,
            "item_name": self.item_name,
            "quantity": self.quantity,
        }
