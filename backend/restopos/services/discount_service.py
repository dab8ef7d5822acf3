# Overview: Discount arithmetic and discount catalogue management.

"""
Discount Application Engine

compute_discount() is pure: given an order subtotal and a Discount it
returns the amount to deduct, or raises DiscountNotApplicable when the
discount fails its applicability check. Callers decide what an
inapplicable discount means for them (order_service records it as a
named outcome and applies no discount).

RULES:
- percentage:   subtotal * value / 100
- fixed_amount: value, capped at the subtotal (final amount never negative)
- Rounded to 2 places exactly once, here.
"""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal

from sqlalchemy.exc import IntegrityError

from ..models import Discount, OrderDiscount
from ..models.discounts import DISCOUNT_FIXED_AMOUNT, DISCOUNT_PERCENTAGE, VALID_DISCOUNT_TYPES
from ..time_utils import utcnow, within_window
from ..validation import (
    ConflictError,
    DiscountNotApplicable,
    NotFoundError,
    ValidationError,
    money,
    optional_text,
    parse_bool,
    parse_datetime,
    parse_money,
)
from .concurrency import atomic

HUNDRED = Decimal("100")


# =============================================================================
# APPLICATION ENGINE
# =============================================================================

def check_applicability(subtotal: Decimal, discount: Discount, *, now: datetime | None = None) -> None:
    """Raise DiscountNotApplicable unless the discount may reduce this subtotal now."""
    if not discount.is_active:
        raise DiscountNotApplicable(discount.id, f"Discount '{discount.discount_name}' is not active")

    if not within_window(now or utcnow(), discount.valid_from, discount.valid_until):
        raise DiscountNotApplicable(discount.id, f"Discount '{discount.discount_name}' is outside its validity window")

    threshold = discount.min_amount_threshold
    if threshold is not None and subtotal < threshold:
        raise DiscountNotApplicable(
            discount.id,
            f"Order subtotal {money(subtotal)} is below the minimum of {money(threshold)} for '{discount.discount_name}'",
        )


def compute_discount(subtotal: Decimal, discount: Discount, *, now: datetime | None = None) -> Decimal:
    """Return the discount amount for a subtotal, rounded to the minor unit."""
    subtotal = money(subtotal)
    check_applicability(subtotal, discount, now=now)

    value = Decimal(discount.value)
    if discount.discount_type == DISCOUNT_PERCENTAGE:
        amount = subtotal * value / HUNDRED
    elif discount.discount_type == DISCOUNT_FIXED_AMOUNT:
        amount = min(value, subtotal)
    else:
        raise ValidationError(f"Unknown discount type: {discount.discount_type}")

    return money(amount)


# =============================================================================
# DISCOUNT CATALOGUE
# =============================================================================

def list_discounts(session, *, active_only: bool = False) -> list[Discount]:
    q = session.query(Discount)
    if active_only:
        q = q.filter(Discount.is_active.is_(True))
    return q.order_by(Discount.discount_name).all()


def get_discount(session, discount_id: int) -> Discount:
    discount = session.get(Discount, discount_id)
    if discount is None:
        raise NotFoundError(f"Discount {discount_id} not found")
    return discount


def _validated_fields(data: dict, *, partial: bool) -> dict:
    fields = {}

    if "discount_name" in data or not partial:
        name = optional_text(data.get("discount_name"), "discount_name", max_length=100)
        if not name:
            raise ValidationError("discount_name is required")
        fields["discount_name"] = name

    if "discount_type" in data or not partial:
        discount_type = (data.get("discount_type") or "").strip().lower()
        if discount_type not in VALID_DISCOUNT_TYPES:
            raise ValidationError(f"discount_type must be one of {list(VALID_DISCOUNT_TYPES)}")
        fields["discount_type"] = discount_type

    if "value" in data or not partial:
        fields["value"] = parse_money(data.get("value"), "value")

    if "is_active" in data:
        fields["is_active"] = parse_bool(data.get("is_active"), "is_active")
    if "applies_to" in data:
        fields["applies_to"] = optional_text(data.get("applies_to"), "applies_to", max_length=20) or "total_bill"
    if "min_amount_threshold" in data:
        fields["min_amount_threshold"] = parse_money(data.get("min_amount_threshold"), "min_amount_threshold", required=False)
    if "valid_from" in data:
        fields["valid_from"] = parse_datetime(data.get("valid_from"), "valid_from")
    if "valid_until" in data:
        fields["valid_until"] = parse_datetime(data.get("valid_until"), "valid_until", end_of_day=True)

    return fields


def _check_rules(discount: Discount) -> None:
    if discount.discount_type == DISCOUNT_PERCENTAGE and discount.value > HUNDRED:
        raise ValidationError("percentage discount value cannot exceed 100")
    if discount.valid_from and discount.valid_until and discount.valid_from > discount.valid_until:
        raise ValidationError("valid_from must be before valid_until")


def create_discount(session, data: dict) -> Discount:
    fields = _validated_fields(data, partial=False)
    discount = Discount(**fields)
    if discount.is_active is None:
        discount.is_active = True
    _check_rules(discount)

    try:
        with atomic(session):
            session.add(discount)
            session.flush()
    except IntegrityError:
        raise ConflictError(f"Discount '{fields['discount_name']}' already exists")
    return discount


def update_discount(session, discount_id: int, data: dict) -> Discount:
    fields = _validated_fields(data, partial=True)
    try:
        with atomic(session):
            discount = get_discount(session, discount_id)
            for key, value in fields.items():
                setattr(discount, key, value)
            _check_rules(discount)
            session.flush()
    except IntegrityError:
        raise ConflictError(f"Discount '{fields.get('discount_name')}' already exists")
    return discount


def delete_discount(session, discount_id: int) -> None:
    """Delete a discount that no order references (applied snapshots keep their FK)."""
    with atomic(session):
        discount = get_discount(session, discount_id)
        in_use = session.query(OrderDiscount.id).filter_by(discount_id=discount_id).first()
        if in_use:
            raise ConflictError("Discount has been applied to orders; deactivate it instead")
        session.delete(discount)
