# Overview: Cashier shift lifecycle and cash drawer reconciliation.

"""
Shift Cash Ledger

WHY: Cashier accountability. A shift records the drawer's opening count,
the cash and card sales taken during it, manual cash in/out, and the
closing count, so the expected balance can be compared with what was
actually in the drawer.

LIFECYCLE:
- active (shift_end NULL): created by start_shift, one per user at a time
- closed: set by end_shift; never reopened
- adjust_shift (supervisor correction) works in either state

RECONCILIATION:
- expected = opening_cash + sales_amount_cash + cash_in - cash_out
- discrepancy = closing_cash - expected (None while closing_cash is unset)
"""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal

from sqlalchemy.exc import IntegrityError

from ..models import CashierShift, User
from ..models.payments import PAYMENT_CASH
from ..time_utils import utcnow
from ..validation import (
    ConflictError,
    NotFoundError,
    money,
    optional_text,
    parse_bool,
    parse_money,
)
from .concurrency import atomic, lock_for_update


# =============================================================================
# RECONCILIATION ARITHMETIC
# =============================================================================

def compute_expected_cash_balance(shift: CashierShift) -> Decimal:
    """Cash that should be in the drawer given the recorded activity."""
    return money(
        money(shift.opening_cash or 0)
        + money(shift.sales_amount_cash or 0)
        + money(shift.cash_in or 0)
        - money(shift.cash_out or 0)
    )


def compute_discrepancy(shift: CashierShift) -> Decimal | None:
    """Counted minus expected; positive means the drawer is over."""
    if shift.closing_cash is None:
        return None
    return money(money(shift.closing_cash) - compute_expected_cash_balance(shift))


# =============================================================================
# SHIFT LIFECYCLE
# =============================================================================

def get_active_shift(session, user_id: int, *, lock: bool = False) -> CashierShift | None:
    """The user's open shift, if any (locked FOR UPDATE when lock=True)."""
    q = session.query(CashierShift).filter(
        CashierShift.user_id == user_id,
        CashierShift.shift_end.is_(None),
    )
    if lock:
        q = lock_for_update(q)
    return q.first()


def start_shift(session, user_id: int, opening_cash) -> CashierShift:
    """
    Open a shift for a user.

    Raises:
        ConflictError: the user already has an active shift. The partial
            unique index catches the race where two starts pass the
            pre-check at the same time.
        NotFoundError: the user does not exist
    """
    opening_cash = parse_money(opening_cash, "opening_cash")

    try:
        with atomic(session):
            if session.get(User, user_id) is None:
                raise NotFoundError(f"User {user_id} not found")

            existing = get_active_shift(session, user_id, lock=True)
            if existing is not None:
                raise ConflictError(f"User already has an active shift (shift {existing.id})")

            now = utcnow()
            shift = CashierShift(
                user_id=user_id,
                shift_start=now,
                opening_cash=opening_cash,
                cash_in=Decimal("0.00"),
                cash_out=Decimal("0.00"),
                sales_amount_cash=Decimal("0.00"),
                sales_amount_card=Decimal("0.00"),
                reconciled=False,
                created_at=now,
                updated_at=now,
            )
            session.add(shift)
            session.flush()
    except IntegrityError:
        raise ConflictError("User already has an active shift")

    return shift


def end_shift(session, shift_id: int, closing_cash, notes: str | None = None) -> CashierShift:
    """
    Close an active shift with the counted drawer cash.

    Raises NotFoundError when no active shift has this id, which includes
    ending a shift twice.
    """
    closing_cash = parse_money(closing_cash, "closing_cash")
    notes = optional_text(notes, "notes")

    with atomic(session):
        shift = lock_for_update(session.query(CashierShift).filter(
            CashierShift.id == shift_id,
            CashierShift.shift_end.is_(None),
        )).first()
        if shift is None:
            raise NotFoundError("Active shift not found or already ended")

        now = utcnow()
        shift.shift_end = now
        shift.closing_cash = closing_cash
        if notes is not None:
            shift.notes = notes
        shift.updated_at = now

    return shift


def adjust_shift(
    session,
    shift_id: int,
    *,
    opening_cash=None,
    closing_cash=None,
    cash_in=None,
    cash_out=None,
    reconciled=None,
    notes: str | None = None,
) -> CashierShift:
    """
    Supervisor correction. Each field is optional; omitted fields keep their
    stored value.
    """
    updates = {
        "opening_cash": parse_money(opening_cash, "opening_cash", required=False),
        "closing_cash": parse_money(closing_cash, "closing_cash", required=False),
        "cash_in": parse_money(cash_in, "cash_in", required=False),
        "cash_out": parse_money(cash_out, "cash_out", required=False),
        "reconciled": parse_bool(reconciled, "reconciled"),
        "notes": optional_text(notes, "notes"),
    }

    with atomic(session):
        shift = lock_for_update(session.query(CashierShift).filter_by(id=shift_id)).first()
        if shift is None:
            raise NotFoundError("Shift not found")

        for field, value in updates.items():
            if value is not None:
                setattr(shift, field, value)
        shift.updated_at = utcnow()

    return shift


def add_sale_to_active_shift(session, cashier_id: int, payment_method: str, amount: Decimal) -> CashierShift | None:
    """
    Add a payment to the cashier's active shift running totals.

    Must run inside the caller's transaction; the shift row is locked for
    the increment. Returns None (and changes nothing) when the cashier has
    no active shift.
    """
    shift = get_active_shift(session, cashier_id, lock=True)
    if shift is None:
        return None

    if payment_method == PAYMENT_CASH:
        shift.sales_amount_cash = money(money(shift.sales_amount_cash or 0) + amount)
    else:
        shift.sales_amount_card = money(money(shift.sales_amount_card or 0) + amount)
    shift.updated_at = utcnow()
    return shift


# =============================================================================
# QUERIES
# =============================================================================

def get_shift(session, shift_id: int) -> CashierShift:
    shift = session.get(CashierShift, shift_id)
    if shift is None:
        raise NotFoundError("Shift not found")
    return shift


def list_shifts(
    session,
    *,
    user_id: int | None = None,
    start_date: datetime | None = None,
    end_date: datetime | None = None,
    active_only: bool = False,
) -> list[CashierShift]:
    """Shifts newest-first; start/end bound shift_start inclusively."""
    q = session.query(CashierShift)
    if user_id is not None:
        q = q.filter(CashierShift.user_id == user_id)
    if start_date is not None:
        q = q.filter(CashierShift.shift_start >= start_date)
    if end_date is not None:
        q = q.filter(CashierShift.shift_start <= end_date)
    if active_only:
        q = q.filter(CashierShift.shift_end.is_(None))
    return q.order_by(CashierShift.shift_start.desc(), CashierShift.id.desc()).all()
