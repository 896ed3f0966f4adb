from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z


class Payment(db.Model):
    """
    Money received against a repair or a sale.

    APPEND-ONLY: rows are never updated except for cash settlement
    (deposited, deposit_date, deposit_reference, bank). Non-cash payments
    are born deposited.

    state is a snapshot of the related ticket's payment status right after
    this payment was applied.
    """
    __tablename__ = "payments"
    __table_args__ = (
        db.Index("ix_payments_related", "related_to", "related_id"),
        db.Index("ix_payments_type_created", "type", "created_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)

    # cash, mpesa, bank_deposit
    type = db.Column(db.String(16), nullable=False, index=True)
    amount_cents = db.Column(db.Integer, nullable=False)
    state = db.Column(db.String(16), nullable=False)
    reference = db.Column(db.String(128), nullable=True)
    bank = db.Column(db.String(64), nullable=True)

    deposited = db.Column(db.Boolean, nullable=False, default=True, index=True)
    deposit_date = db.Column(db.DateTime(timezone=True), nullable=True)
    deposit_reference = db.Column(db.String(128), nullable=True)

    shop_id = db.Column(db.Integer, db.ForeignKey("shops.id"), nullable=True, index=True)

    # repair, sale
    related_to = db.Column(db.String(16), nullable=False)
    related_id = db.Column(db.Integer, nullable=False)

    created_by_user_id = db.Column(db.Integer, nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), index=True)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "type": self.type,
            "amount_cents": self.amount_cents,
            "state": self.state,
            "reference": self.reference,
            "bank": self.bank,
            "deposited": self.deposited,
            "deposit_date": to_utc_z(self.deposit_date),
            "deposit_reference": self.deposit_reference,
            "shop_id": self.shop_id,
            "related_to": self.related_to,
            "related_id": self.related_id,
            "created_by_user_id": self.created_by_user_id,
            "created_at": to_utc_z(self.created_at),
        }


class SupplierDebt(db.Model):
    """
    Amount owed to a supplier for an outsourced part.

    AWAITING COST: cost_per_unit_cents = 0 until an admin enters the
    supplier's invoice price; such debts are excluded from payable totals.
    total_cost_cents is rewritten whenever the unit cost changes.

    repair_id / sale_id are weak references (no FK) so the debt outlives
    the ticket it was raised for.
    """
    __tablename__ = "supplier_debts"
    __table_args__ = (
        db.Index("ix_supplier_debts_supplier_paid", "supplier_id", "paid"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    supplier_id = db.Column(db.Integer, db.ForeignKey("suppliers.id"), nullable=False, index=True)
    item_name = db.Column(db.String(255), nullable=False)
    quantity = db.Column(db.Integer, nullable=False, default=1)
    cost_per_unit_cents = db.Column(db.Integer, nullable=False, default=0)
    total_cost_cents = db.Column(db.Integer, nullable=False, default=0)

    paid = db.Column(db.Boolean, nullable=False, default=False)
    paid_at = db.Column(db.DateTime(timezone=True), nullable=True)
    paid_by_user_id = db.Column(db.Integer, nullable=True)

    repair_id = db.Column(db.Integer, nullable=True, index=True)
    sale_id = db.Column(db.Integer, nullable=True, index=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), index=True)

    supplier = db.relationship("Supplier", backref=db.backref("debts", lazy="dynamic"))

    @property
    def awaiting_cost(self) -> bool:
        return self.cost_per_unit_cents == 0

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "supplier_id": self.supplier_id,
            "supplier_name": self.supplier.name if self.supplier else None,
            "item_name": self.item_name,
            "quantity": self.quantity,
            "cost_per_unit_cents": self.cost_per_unit_cents,
            "total_cost_cents": self.total_cost_cents,
            "awaiting_cost": self.awaiting_cost,
            "paid": self.paid,
            "paid_at": to_utc_z(self.paid_at),
            "paid_by_user_id": self.paid_by_user_id,
            "repair_id": self.repair_id,
            "sale_id": self.sale_id,
            "created_at": to_utc_z(self.created_at),
        }
