from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z


class Repair(db.Model):
    """
    Repair ticket.

    PAYMENT FIELDS: total_cost_cents is fixed at intake. The effective total
    is total_agreed_amount_cents when set, else total_cost_cents.
    balance_cents and payment_status are always rewritten together from
    effective total and amount_paid_cents (see repair_service._recompute);
    nothing else writes them.

    PENDING APPROVAL: pending_payment_* hold a payment staff collected but
    an admin has not countersigned. It is not part of amount_paid_cents
    until approved.
    """
    __tablename__ = "repairs"
    __table_args__ = (
        db.UniqueConstraint("ticket_number", name="uq_repairs_ticket_number"),
        db.Index("ix_repairs_shop_status", "shop_id", "status"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    ticket_number = db.Column(db.String(32), nullable=True)
    shop_id = db.Column(db.Integer, db.ForeignKey("shops.id"), nullable=False, index=True)

    customer_name = db.Column(db.String(255), nullable=False)
    phone_number = db.Column(db.String(32), nullable=False)
    imei = db.Column(db.String(64), nullable=True)
    phone_model = db.Column(db.String(120), nullable=True)
    issue = db.Column(db.Text, nullable=True)
    technician = db.Column(db.String(120), nullable=True)

    outsourced_cost_cents = db.Column(db.Integer, nullable=False, default=0)
    labor_cost_cents = db.Column(db.Integer, nullable=False, default=0)
    total_cost_cents = db.Column(db.Integer, nullable=False, default=0)
    total_agreed_amount_cents = db.Column(db.Integer, nullable=True)

    # before, after
    payment_timing = db.Column(db.String(16), nullable=False, default="after")
    deposit_amount_cents = db.Column(db.Integer, nullable=False, default=0)

    # RECEIVED, IN_PROGRESS, WAITING_PARTS, REPAIR_COMPLETED, PAYMENT_PENDING, FULLY_PAID, COLLECTED
    status = db.Column(db.String(32), nullable=False, default="RECEIVED", index=True)

    # pending, partial, fully_paid
    payment_status = db.Column(db.String(16), nullable=False, default="pending", index=True)
    amount_paid_cents = db.Column(db.Integer, nullable=False, default=0)
    balance_cents = db.Column(db.Integer, nullable=False, default=0)
    payment_approved = db.Column(db.Boolean, nullable=False, default=False)

    pending_payment_method = db.Column(db.String(16), nullable=True)
    pending_payment_reference = db.Column(db.String(128), nullable=True)
    pending_payment_amount_cents = db.Column(db.Integer, nullable=True)
    pending_payment_submitted_by_user_id = db.Column(db.Integer, nullable=True)
    pending_payment_submitted_at = db.Column(db.DateTime(timezone=True), nullable=True)

    # waiting, coming_back
    customer_status = db.Column(db.String(16), nullable=False, default="waiting")
    collected = db.Column(db.Boolean, nullable=False, default=False)
    collected_at = db.Column(db.DateTime(timezone=True), nullable=True)
    collected_by_user_id = db.Column(db.Integer, nullable=True)

    created_by_user_id = db.Column(db.Integer, nullable=False)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), index=True)
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    version_id = db.Column(db.Integer, nullable=False, default=1)

    shop = db.relationship("Shop")
    __mapper_args__ = {"version_id_col": version_id}

    @property
    def effective_total_cents(self) -> int:
        if self.total_agreed_amount_cents is not None:
            return self.total_agreed_amount_cents
        return self.total_cost_cents

    @property
    def has_pending_payment(self) -> bool:
        return self.pending_payment_method is not None

    def __repr__(self) -> str:
        return f"<Repair id={self.id} ticket={self.ticket_number!r} status={self.status}>"

    def to_dict(self) -> dict:
        pending = None
        if self.has_pending_payment:
            pending = {
                "method": self.pending_payment_method,
                "reference": self.pending_payment_reference,
                "amount_cents": self.pending_payment_amount_cents,
                "submitted_by_user_id": self.pending_payment_submitted_by_user_id,
                "submitted_at": to_utc_z(self.pending_payment_submitted_at),
            }
        return {
            "id": self.id,
            "ticket_number": self.ticket_number,
            "shop_id": self.shop_id,
            "customer_name": self.customer_name,
            "phone_number": self.phone_number,
            "imei": self.imei,
            "phone_model": self.phone_model,
            "issue": self.issue,
            "technician": self.technician,
            "parts": [part.to_dict() for part in self.parts],
            "outsourced_cost_cents": self.outsourced_cost_cents,
            "labor_cost_cents": self.labor_cost_cents,
            "total_cost_cents": self.total_cost_cents,
            "total_agreed_amount_cents": self.total_agreed_amount_cents,
            "effective_total_cents": self.effective_total_cents,
            "payment_timing": self.payment_timing,
            "deposit_amount_cents": self.deposit_amount_cents,
            "status": self.status,
            "payment_status": self.payment_status,
            "amount_paid_cents": self.amount_paid_cents,
            "balance_cents": self.balance_cents,
            "payment_approved": self.payment_approved,
            "pending_transaction": pending,
            "customer_status": self.customer_status,
            "collected": self.collected,
            "collected_at": to_utc_z(self.collected_at),
            "collected_by_user_id": self.collected_by_user_id,
            "created_by_user_id": self.created_by_user_id,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
            "version_id": self.version_id,
        }


class RepairPart(db.Model):
    """
    Part used on a repair.

    in-house parts were taken from the shop's stock row item_id;
    outsourced parts were bought from supplier_id and carry a SupplierDebt.
    """
    __tablename__ = "repair_parts"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    repair_id = db.Column(db.Integer, db.ForeignKey("repairs.id", ondelete="CASCADE"), nullable=False, index=True)
    item_id = db.Column(db.Integer, db.ForeignKey("inventory_items.id"), nullable=True)
    item_name = db.Column(db.String(255), nullable=False)
    quantity = db.Column(db.Integer, nullable=False, default=1)
    cost_cents = db.Column(db.Integer, nullable=False, default=0)

    # in-house, outsourced
    source = db.Column(db.String(16), nullable=False, default="in-house")
    supplier_id = db.Column(db.Integer, db.ForeignKey("suppliers.id"), nullable=True)

    repair = db.relationship(
        "Repair",
        backref=db.backref("parts", lazy=True, order_by="RepairPart.id", cascade="all, delete-orphan"),
    )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "repair_id": self.repair_id,
            "item_id": self.item_id,
            "item_name": self.item_name,
            "quantity": self.quantity,
            "cost_cents": self.cost_cents,
            "source": self.source,
            "supplier_id": self.supplier_id,
        }
