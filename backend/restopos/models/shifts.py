from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z
from ..validation import money_str


class CashierShift(db.Model):
    """
    Cashier shift and cash drawer accountability.

    LIFECYCLE:
    - active: shift_end is NULL; payments by this cashier add to the sales totals
    - closed: shift_end set by end_shift; closing_cash counted

    At most one active shift per user, enforced by a partial unique index so
    that two concurrent starts cannot both succeed.
    """
    __tablename__ = "cashier_shifts"
    __table_args__ = (
        db.Index(
            "uq_cashier_shifts_one_open_per_user",
            "user_id",
            unique=True,
            sqlite_where=db.text("shift_end IS NULL"),
            postgresql_where=db.text("shift_end IS NULL"),
        ),
        db.Index("ix_cashier_shifts_user_start", "user_id", "shift_start"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id", ondelete="RESTRICT"), nullable=False)

    shift_start = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    shift_end = db.Column(db.DateTime(timezone=True), nullable=True)

    # Drawer counts
    opening_cash = db.Column(db.Numeric(10, 2), nullable=False, default=0)
    closing_cash = db.Column(db.Numeric(10, 2), nullable=True)

    # Manual drawer adjustments
    cash_in = db.Column(db.Numeric(10, 2), nullable=False, default=0)
    cash_out = db.Column(db.Numeric(10, 2), nullable=False, default=0)

    # Running totals maintained by the payment ledger
    sales_amount_cash = db.Column(db.Numeric(10, 2), nullable=False, default=0)
    sales_amount_card = db.Column(db.Numeric(10, 2), nullable=False, default=0)

    notes = db.Column(db.Text, nullable=True)
    reconciled = db.Column(db.Boolean, nullable=False, default=False)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())

    user = db.relationship("User", backref=db.backref("shifts", lazy=True))

    @property
    def is_active(self) -> bool:
        return self.shift_end is None

    def to_dict(self) -> dict:
        from ..services.shift_service import compute_discrepancy, compute_expected_cash_balance

        return {
            "id": self.id,
            "user_id": self.user_id,
            "cashier_name": self.user.full_name if self.user else None,
            "shift_start": to_utc_z(self.shift_start),
            "shift_end": to_utc_z(self.shift_end),
            "is_active": self.is_active,
            "opening_cash": money_str(self.opening_cash),
            "closing_cash": money_str(self.closing_cash),
            "cash_in": money_str(self.cash_in),
            "cash_out": money_str(self.cash_out),
            "sales_amount_cash": money_str(self.sales_amount_cash),
            "sales_amount_card": money_str(self.sales_amount_card),
            "expected_cash_balance": money_str(compute_expected_cash_balance(self)),
            "discrepancy": money_str(compute_discrepancy(self)),
            "notes": self.notes,
            "reconciled": self.reconciled,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }
