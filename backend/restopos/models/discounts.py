from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z
from ..validation import money_str

DISCOUNT_PERCENTAGE = "percentage"
DISCOUNT_FIXED_AMOUNT = "fixed_amount"

VALID_DISCOUNT_TYPES = (DISCOUNT_PERCENTAGE, DISCOUNT_FIXED_AMOUNT)


class Discount(db.Model):
    """
    Discount definition.

    value is a percent (e.g. 10 for 10%) for percentage discounts, or a
    money amount for fixed_amount discounts. The optional window and
    threshold are checked when the discount is applied, not when it is saved.
    """
    __tablename__ = "discounts"
    __table_args__ = (
        db.CheckConstraint("value >= 0", name="ck_discounts_value_non_negative"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    discount_name = db.Column(db.String(100), nullable=False, unique=True)
    discount_type = db.Column(db.String(20), nullable=False)
    value = db.Column(db.Numeric(10, 2), nullable=False)
    is_active = db.Column(db.Boolean, nullable=False, default=True)
    applies_to = db.Column(db.String(20), nullable=False, default="total_bill")

    min_amount_threshold = db.Column(db.Numeric(10, 2), nullable=True)
    valid_from = db.Column(db.DateTime(timezone=True), nullable=True)
    valid_until = db.Column(db.DateTime(timezone=True), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "discount_name": self.discount_name,
            "discount_type": self.discount_type,
            "value": money_str(self.value),
            "is_active": self.is_active,
            "applies_to": self.applies_to,
            "min_amount_threshold": money_str(self.min_amount_threshold),
            "valid_from": to_utc_z(self.valid_from),
            "valid_until": to_utc_z(self.valid_until),
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }


class OrderDiscount(db.Model):
    """
    A discount as applied to one order.

    applied_value is the amount actually deducted, frozen at application
    time; later edits to the Discount do not change it.
    """
    __tablename__ = "order_discounts"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    order_id = db.Column(db.Integer, db.ForeignKey("orders.id", ondelete="CASCADE"), nullable=False, index=True)
    discount_id = db.Column(db.Integer, db.ForeignKey("discounts.id", ondelete="RESTRICT"), nullable=False, index=True)
    applied_value = db.Column(db.Numeric(10, 2), nullable=False)
    applied_by_user_id = db.Column(db.Integer, db.ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    applied_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    discount = db.relationship("Discount")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "order_id": self.order_id,
            "discount_id": self.discount_id,
            "discount_name": self.discount.discount_name if self.discount else None,
            "applied_value": money_str(self.applied_value),
            "applied_by_user_id": self.applied_by_user_id,
            "applied_at": to_utc_z(self.applied_at),
        }
