# Overview: Service-layer operations for payments; records tenders and completes paid orders.

"""
Payment Ledger

WHY: Orders are paid with cash or card, possibly split across several
payments. Recording a payment has three effects that must land together
or not at all:

1. the Payment row is inserted
2. the cashier's active shift running total (cash or card) is increased
3. the order is marked completed once payments cover its final amount

DESIGN PRINCIPLES:
- One transaction for all three steps; any failure rolls back everything
- The order row is locked before the insert, so two concurrent payments
  serialize and exactly one of them observes the sum crossing final_amount
- The shift row is locked for its increment
- A missing active shift never blocks a payment (the increment is skipped)
- Payments are append-only
"""

from __future__ import annotations

from decimal import Decimal

from sqlalchemy import func

from ..models import Order, OrderStatus, Payment
from ..models.payments import VALID_PAYMENT_METHODS
from ..time_utils import utcnow
from ..validation import (
    ConflictError,
    NotFoundError,
    ValidationError,
    money,
    optional_text,
    parse_positive_money,
)
from .concurrency import atomic, lock_for_update
from .order_service import get_order, mark_completed, require_user
from .shift_service import add_sale_to_active_shift


def _parse_method(payment_method) -> str:
    method = str(payment_method or "").strip().lower()
    if method not in VALID_PAYMENT_METHODS:
        raise ValidationError(f"payment_method must be one of {list(VALID_PAYMENT_METHODS)}")
    return method


def total_paid(session, order_id: int) -> Decimal:
    """Sum of all payments recorded for an order."""
    paid = session.query(func.coalesce(func.sum(Payment.amount), 0)).filter(
        Payment.order_id == order_id
    ).scalar()
    return money(paid)


def record_payment(
    session,
    order_id: int,
    *,
    payment_method: str,
    amount,
    transaction_ref: str | None = None,
    cashier_id: int | None = None,
    notes: str | None = None,
) -> Payment:
    """
    Record a payment against an order.

    Raises:
        ValidationError: amount not > 0 or unknown payment method
        NotFoundError: order or cashier does not exist
        ConflictError: order is cancelled
    """
    amount = parse_positive_money(amount, "amount")
    method = _parse_method(payment_method)
    transaction_ref = optional_text(transaction_ref, "transaction_id", max_length=100)
    notes = optional_text(notes, "notes")

    with atomic(session):
        # Lock first: serializes concurrent payments and order updates
        order = lock_for_update(session.query(Order).filter_by(id=order_id)).first()
        if order is None:
            raise NotFoundError("Order not found for payment")
        if order.status == OrderStatus.CANCELLED.value:
            raise ConflictError("Cannot record a payment against a cancelled order")
        require_user(session, cashier_id)

        payment = Payment(
            order_id=order.id,
            payment_date=utcnow(),
            payment_method=method,
            amount=amount,
            transaction_id=transaction_ref,
            cashier_id=cashier_id,
            notes=notes,
        )
        session.add(payment)
        session.flush()

        if cashier_id is not None:
            add_sale_to_active_shift(session, cashier_id, method, amount)

        if total_paid(session, order.id) >= money(order.final_amount):
            mark_completed(order)

    return payment


# =============================================================================
# QUERIES
# =============================================================================

def list_payments(
    session,
    *,
    order_id: int | None = None,
    cashier_id: int | None = None,
    payment_method: str | None = None,
) -> list[Payment]:
    """Payments newest-first, optionally filtered."""
    q = session.query(Payment)
    if order_id is not None:
        q = q.filter(Payment.order_id == order_id)
    if cashier_id is not None:
        q = q.filter(Payment.cashier_id == cashier_id)
    if payment_method:
        q = q.filter(Payment.payment_method == _parse_method(payment_method))
    return q.order_by(Payment.payment_date.desc(), Payment.id.desc()).all()


def list_payments_for_order(session, order_id: int) -> list[Payment]:
    get_order(session, order_id)
    return list_payments(session, order_id=order_id)


def get_payment_summary(session, order_id: int) -> dict:
    """Final amount, amount paid so far, and what remains."""
    order = get_order(session, order_id)
    paid = total_paid(session, order_id)
    final = money(order.final_amount)
    remaining = final - paid
    return {
        "order_id": order.id,
        "status": order.status,
        "final_amount": str(final),
        "total_paid": str(paid),
        "remaining_balance": str(money(max(remaining, Decimal("0")))),
        "overpaid": str(money(max(-remaining, Decimal("0")))),
    }
