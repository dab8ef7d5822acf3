# Overview: Service-layer operations for orders; keeps order totals, lines and discounts consistent.

"""
Order Aggregate Manager

WHY: An order's money figures are derived data. Every write that touches
items or discounts recomputes them in the same transaction, so readers
never see totals that disagree with the lines.

DESIGN PRINCIPLES:
- total_amount = sum(order_items.item_total), rounded to cents
- final_amount = total_amount - discount_amount, never negative
- Lines snapshot item_name/unit_price; an items update replaces all lines
- At most one OrderDiscount per order, replaced on every update
- The order row is locked before any write so concurrent updates serialize
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal

from sqlalchemy import func

from ..models import Discount, Order, OrderDiscount, OrderItem, OrderStatus, Payment, User
from ..models.orders import MANUAL_TRANSITIONS
from ..time_utils import utcnow
from ..validation import (
    MAX_MONEY,
    ConflictError,
    ConsistencyError,
    DiscountNotApplicable,
    NotFoundError,
    ValidationError,
    money,
    optional_text,
    parse_items,
)
from .concurrency import atomic, lock_for_update
from .discount_service import compute_discount
from .menu_service import MenuLookup, SqlMenuLookup

ZERO = Decimal("0.00")


@dataclass
class OrderUpdateResult:
    """
    Outcome of update_order.

    discount_outcome is set when a discount was requested but did not apply;
    the order was still updated, with no discount.
    """
    order: Order
    discount_outcome: DiscountNotApplicable | None = None

    @property
    def discount_applied(self) -> bool:
        return self.discount_outcome is None and self.order.discount_amount > 0


def parse_status(value) -> OrderStatus:
    try:
        return OrderStatus(str(value or "").strip().lower())
    except ValueError:
        raise ValidationError(f"status must be one of {[s.value for s in OrderStatus]}")


def _get_order_locked(session, order_id: int) -> Order:
    order = lock_for_update(session.query(Order).filter_by(id=order_id)).first()
    if order is None:
        raise NotFoundError("Order not found")
    return order


def _build_lines(order_id: int, items, menu: MenuLookup) -> tuple[list[OrderItem], Decimal]:
    """
    Resolve each requested item and build its snapshot line.

    Raises NotFoundError on unknown ids and ValidationError when a line total
    or the order total would not fit a money column.
    """
    lines = []
    total = ZERO
    for index, item in enumerate(items):
        resolved = menu.resolve_item(item.item_id)
        unit_price = money(item.unit_price if item.unit_price is not None else resolved.price)
        item_total = money(unit_price * item.quantity)
        if item_total > MAX_MONEY:
            raise ValidationError(f"items[{index}] total cannot exceed {MAX_MONEY}")
        if total + item_total > MAX_MONEY:
            raise ValidationError(f"Order total cannot exceed {MAX_MONEY}")
        lines.append(OrderItem(
            order_id=order_id,
            item_id=resolved.item_id,
            item_name=resolved.item_name,
            quantity=item.quantity,
            unit_price=unit_price,
            item_total=item_total,
            notes=item.notes,
        ))
        total += item_total
    return lines, money(total)


def require_user(session, user_id: int | None) -> None:
    """NotFoundError unless user_id is None or names an existing user."""
    if user_id is not None and session.get(User, user_id) is None:
        raise NotFoundError(f"User {user_id} not found")


def _stored_items_total(session, order_id: int) -> Decimal:
    total = session.query(func.coalesce(func.sum(OrderItem.item_total), 0)).filter(
        OrderItem.order_id == order_id
    ).scalar()
    return money(total)


def _assert_totals(session, order: Order) -> None:
    """Verify the order's invariants against what was actually written."""
    session.flush()
    items_total = _stored_items_total(session, order.id)
    if money(order.total_amount) != items_total:
        raise ConsistencyError(
            f"Order {order.id} total {money(order.total_amount)} does not match its items ({items_total})"
        )
    applied = session.query(func.coalesce(func.sum(OrderDiscount.applied_value), 0)).filter(
        OrderDiscount.order_id == order.id
    ).scalar()
    if money(order.final_amount) != money(items_total - money(applied)):
        raise ConsistencyError(f"Order {order.id} final amount does not match its applied discounts")


# =============================================================================
# ORDER CREATION / UPDATE
# =============================================================================

def create_order(
    session,
    *,
    items,
    table_number: str | None = None,
    cashier_id: int | None = None,
    notes: str | None = None,
    menu: MenuLookup | None = None,
) -> Order:
    """
    Create a pending order with its item snapshots.

    Any unknown item id or cashier id raises NotFoundError and nothing is
    written.
    """
    requested = parse_items(items)
    table_number = optional_text(table_number, "table_number", max_length=20)
    notes = optional_text(notes, "notes")

    with atomic(session):
        require_user(session, cashier_id)
        lookup = menu or SqlMenuLookup(session)
        lines, total = _build_lines(None, requested, lookup)

        order = Order(
            order_date=utcnow(),
            table_number=table_number,
            status=OrderStatus.PENDING.value,
            total_amount=total,
            discount_amount=ZERO,
            final_amount=total,
            cashier_id=cashier_id,
            notes=notes,
        )
        session.add(order)
        session.flush()

        for line in lines:
            line.order_id = order.id
            session.add(line)

        _assert_totals(session, order)

    return order


def update_order(
    session,
    order_id: int,
    *,
    table_number: str | None = None,
    notes: str | None = None,
    items=None,
    discount_id: int | None = None,
    applied_by_user_id: int | None = None,
    menu: MenuLookup | None = None,
) -> OrderUpdateResult:
    """
    Replace items and/or reapply a discount, then recompute totals.

    - items given: all existing lines are deleted and the new set inserted
    - items omitted (or empty): total recomputed from the stored lines
    - any existing discount is removed; discount_id, if given, is re-run
      against the new total. An inapplicable discount leaves the order with
      no discount and is reported in the result.
    - table_number/notes keep their stored values when omitted
    """
    requested = parse_items(items) if items else None
    table_number = optional_text(table_number, "table_number", max_length=20)
    notes = optional_text(notes, "notes")

    with atomic(session):
        order = _get_order_locked(session, order_id)
        require_user(session, applied_by_user_id)

        if requested is not None:
            session.query(OrderItem).filter_by(order_id=order.id).delete(synchronize_session=False)
            lines, total = _build_lines(order.id, requested, menu or SqlMenuLookup(session))
            session.add_all(lines)
        else:
            total = _stored_items_total(session, order.id)

        session.query(OrderDiscount).filter_by(order_id=order.id).delete(synchronize_session=False)

        discount_amount = ZERO
        outcome = None
        if discount_id is not None:
            discount = lock_for_update(session.query(Discount).filter_by(id=discount_id), read=True).first()
            if discount is None:
                raise NotFoundError(f"Discount {discount_id} not found")
            try:
                discount_amount = compute_discount(total, discount)
            except DiscountNotApplicable as exc:
                outcome = exc
            else:
                session.add(OrderDiscount(
                    order_id=order.id,
                    discount_id=discount.id,
                    applied_value=discount_amount,
                    applied_by_user_id=applied_by_user_id,
                    applied_at=utcnow(),
                ))

        order.total_amount = total
        order.discount_amount = discount_amount
        order.final_amount = money(total - discount_amount)
        if table_number is not None:
            order.table_number = table_number
        if notes is not None:
            order.notes = notes
        order.updated_at = utcnow()

        _assert_totals(session, order)

    return OrderUpdateResult(order=order, discount_outcome=outcome)


# =============================================================================
# STATUS
# =============================================================================

def set_status(session, order_id: int, new_status) -> Order:
    """
    Manually change an order's status.

    Same-status writes are no-ops. Only transitions in MANUAL_TRANSITIONS
    are allowed; completion happens through recorded payments.
    """
    target = parse_status(new_status)

    with atomic(session):
        order = _get_order_locked(session, order_id)
        current = OrderStatus(order.status)
        if current == target:
            return order

        if target not in MANUAL_TRANSITIONS[current]:
            if target == OrderStatus.COMPLETED:
                raise ConflictError("Orders are completed by recording payments that cover the final amount")
            raise ConflictError(f"Cannot change order status from {current.value} to {target.value}")

        order.status = target.value
        order.updated_at = utcnow()

    return order


def mark_completed(order: Order) -> bool:
    """
    Flip a pending order to completed (payment ledger only; caller holds the row lock).

    Returns True if the status changed.
    """
    if order.status != OrderStatus.PENDING.value:
        return False
    order.status = OrderStatus.COMPLETED.value
    order.updated_at = utcnow()
    return True


# =============================================================================
# READS / DELETE
# =============================================================================

def get_order(session, order_id: int) -> Order:
    order = session.get(Order, order_id)
    if order is None:
        raise NotFoundError("Order not found")
    return order


def get_order_items(session, order_id: int) -> list[OrderItem]:
    return session.query(OrderItem).filter_by(order_id=order_id).order_by(OrderItem.id).all()


def get_order_discounts(session, order_id: int) -> list[OrderDiscount]:
    return session.query(OrderDiscount).filter_by(order_id=order_id).order_by(OrderDiscount.id).all()


def get_order_detail(session, order_id: int) -> dict:
    """Order with its lines and applied discounts."""
    order = get_order(session, order_id)
    detail = order.to_dict()
    detail["items"] = [item.to_dict() for item in get_order_items(session, order_id)]
    detail["discounts_applied"] = [d.to_dict() for d in get_order_discounts(session, order_id)]
    return detail


def list_orders(session, *, status=None) -> list[Order]:
    q = session.query(Order)
    if status:
        q = q.filter(Order.status == parse_status(status).value)
    return q.order_by(Order.order_date.desc(), Order.id.desc()).all()


def delete_order(session, order_id: int) -> None:
    """
    Delete an order together with its payments, discounts and lines.

    The cascade is done here rather than left to ON DELETE CASCADE, which
    SQLite only honours with foreign keys enabled.
    """
    with atomic(session):
        order = _get_order_locked(session, order_id)
        session.query(Payment).filter_by(order_id=order.id).delete(synchronize_session=False)
        session.query(OrderDiscount).filter_by(order_id=order.id).delete(synchronize_session=False)
        session.query(OrderItem).filter_by(order_id=order.id).delete(synchronize_session=False)
        session.delete(order)
