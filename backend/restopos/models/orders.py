from __future__ import annotations

from enum import Enum

from ..extensions import db
from ..time_utils import to_utc_z
from ..validation import money_str


class OrderStatus(str, Enum):
    PENDING = "pending"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


# Manual transitions (set_status). PENDING -> COMPLETED is reserved for the
# payment ledger's completion check; COMPLETED is terminal.
MANUAL_TRANSITIONS: dict[OrderStatus, set[OrderStatus]] = {
    OrderStatus.PENDING: {OrderStatus.CANCELLED},
    OrderStatus.CANCELLED: {OrderStatus.PENDING},
    OrderStatus.COMPLETED: set(),
}


class Order(db.Model):
    """
    One customer transaction: line items, at most one applied discount, and
    the payments made against it.

    TOTALS (kept in step by order_service):
    - total_amount = sum of order_items.item_total
    - final_amount = total_amount - discount_amount
    """
    __tablename__ = "orders"
    __table_args__ = (
        db.Index("ix_orders_status_order_date", "status", "order_date"),
        db.CheckConstraint("final_amount >= 0", name="ck_orders_final_amount_non_negative"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    order_date = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), index=True)
    table_number = db.Column(db.String(20), nullable=True)

    status = db.Column(db.String(50), nullable=False, default=OrderStatus.PENDING.value, index=True)

    total_amount = db.Column(db.Numeric(10, 2), nullable=False, default=0)
    discount_amount = db.Column(db.Numeric(10, 2), nullable=False, default=0)
    final_amount = db.Column(db.Numeric(10, 2), nullable=False, default=0)

    cashier_id = db.Column(db.Integer, db.ForeignKey("users.id", ondelete="SET NULL"), nullable=True, index=True)
    notes = db.Column(db.Text, nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())

    cashier = db.relationship("User", foreign_keys=[cashier_id])

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "order_date": to_utc_z(self.order_date),
            "table_number": self.table_number,
            "status": self.status,
            "total_amount": money_str(self.total_amount),
            "discount_amount": money_str(self.discount_amount),
            "final_amount": money_str(self.final_amount),
            "cashier_id": self.cashier_id,
            "cashier_name": self.cashier.full_name if self.cashier else None,
            "notes": self.notes,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }


class OrderItem(db.Model):
    """
    Snapshot of one ordered menu item.

    item_name and unit_price are copied at order time. Lines are never
    patched: an items update deletes them all and inserts the new set.
    """
    __tablename__ = "order_items"
    __table_args__ = (
        db.CheckConstraint("quantity > 0", name="ck_order_items_quantity_positive"),
        db.CheckConstraint("unit_price >= 0", name="ck_order_items_unit_price_non_negative"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    order_id = db.Column(db.Integer, db.ForeignKey("orders.id", ondelete="CASCADE"), nullable=False, index=True)
    item_id = db.Column(db.Integer, db.ForeignKey("menu_items.id"), nullable=True, index=True)

    item_name = db.Column(db.String(255), nullable=False)
    quantity = db.Column(db.Integer, nullable=False)
    unit_price = db.Column(db.Numeric(10, 2), nullable=False)
    item_total = db.Column(db.Numeric(10, 2), nullable=False)
    notes = db.Column(db.Text, nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "order_id": self.order_id,
            "item_id": self.item_id,
            "item_name": self.item_name,
            "quantity": self.quantity,
            "unit_price": money_str(self.unit_price),
            "item_total": money_str(self.item_total),
            "notes": self.notes,
            "created_at": to_utc_z(self.created_at),
        }
