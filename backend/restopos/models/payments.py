from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z
from ..validation import money_str

PAYMENT_CASH = "cash"
PAYMENT_CARD = "card"

VALID_PAYMENT_METHODS = (PAYMENT_CASH, PAYMENT_CARD)


class Payment(db.Model):
    """
    Money received against an order.

    Append-only: rows are never updated or deleted except when the whole
    order is deleted. Split payments are several rows for one order.
    """
    __tablename__ = "payments"
    __table_args__ = (
        db.CheckConstraint("amount > 0", name="ck_payments_amount_positive"),
        db.Index("ix_payments_order_payment_date", "order_id", "payment_date"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    order_id = db.Column(db.Integer, db.ForeignKey("orders.id", ondelete="CASCADE"), nullable=False, index=True)
    payment_date = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), index=True)
    payment_method = db.Column(db.String(50), nullable=False, index=True)
    amount = db.Column(db.Numeric(10, 2), nullable=False)

    # Card reader / external processor reference
    transaction_id = db.Column(db.String(100), nullable=True)

    cashier_id = db.Column(db.Integer, db.ForeignKey("users.id", ondelete="SET NULL"), nullable=True, index=True)
    notes = db.Column(db.Text, nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    cashier = db.relationship("User", foreign_keys=[cashier_id])

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "order_id": self.order_id,
            "payment_date": to_utc_z(self.payment_date),
            "payment_method": self.payment_method,
            "amount": money_str(self.amount),
            "transaction_id": self.transaction_id,
            "cashier_id": self.cashier_id,
            "cashier_name": self.cashier.full_name if self.cashier else None,
            "notes": self.notes,
        }
