from __future__ import annotations

from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any

from flask import jsonify

from .time_utils import parse_iso_datetime


CENT = Decimal("0.01")

# Largest value a NUMERIC(10, 2) column can hold
MAX_MONEY = Decimal("99999999.99")


class ServiceError(Exception):
    """Base for errors the services surface to callers."""

    kind = "ServiceError"
    http_status = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def to_dict(self) -> dict:
        return {"error": self.kind, "message": self.message}


class ValidationError(ServiceError):
    """400-level input problem."""

    kind = "ValidationError"
    http_status = 400


class NotFoundError(ServiceError):
    """404-level missing order, item, discount, or shift."""

    kind = "NotFoundError"
    http_status = 404


class ConflictError(ServiceError):
    """409-level business rule conflict (e.g., duplicate active shift)."""

    kind = "ConflictError"
    http_status = 409


class ConsistencyError(ServiceError):
    """Internal invariant broken mid-transaction; the transaction is rolled back."""

    kind = "ConsistencyError"
    http_status = 500


class DiscountNotApplicable(ValidationError):
    """A discount failed its applicability check (inactive, out of window, below threshold)."""

    kind = "DiscountNotApplicable"

    def __init__(self, discount_id: int | None, reason: str):
        super().__init__(reason)
        self.discount_id = discount_id
        self.reason = reason

    def to_dict(self) -> dict:
        body = super().to_dict()
        body.update(discount_id=self.discount_id, reason=self.reason)
        return body


def error_response(exc: ServiceError):
    """JSON body and status for a service error."""
    return jsonify(exc.to_dict()), exc.http_status


# =============================================================================
# MONEY
# =============================================================================

def money(value: Any) -> Decimal:
    """Round to the currency's minor unit (2 places, half-up)."""
    if not isinstance(value, Decimal):
        value = Decimal(str(value))
    return value.quantize(CENT, rounding=ROUND_HALF_UP)


def money_str(value: Decimal | None) -> str | None:
    """Serialize a money value for JSON (strings keep exact cents)."""
    if value is None:
        return None
    return str(money(value))


def parse_money(value: Any, field: str, *, required: bool = True, allow_zero: bool = True) -> Decimal | None:
    """
    Coerce client input into a non-negative money Decimal.

    Accepts Decimal, int, numeric strings, and floats (via their repr, so 12.15
    stays 12.15). Rejects booleans, NaN/Infinity, and more than 2 decimal places.
    """
    if value is None or (isinstance(value, str) and not value.strip()):
        if required:
            raise ValidationError(f"{field} is required")
        return None

    if isinstance(value, bool):
        raise ValidationError(f"{field} must be a number")

    try:
        amount = Decimal(str(value).strip())
    except (InvalidOperation, ValueError):
        raise ValidationError(f"{field} must be a number")

    if not amount.is_finite():
        raise ValidationError(f"{field} must be a finite number")
    if amount != amount.quantize(CENT):
        raise ValidationError(f"{field} cannot have more than 2 decimal places")
    if amount < 0:
        raise ValidationError(f"{field} must be >= 0")
    if not allow_zero and amount == 0:
        raise ValidationError(f"{field} must be greater than 0")
    if amount > MAX_MONEY:
        raise ValidationError(f"{field} cannot exceed {MAX_MONEY}")

    return money(amount)


def parse_positive_money(value: Any, field: str) -> Decimal:
    return parse_money(value, field, required=True, allow_zero=False)


def parse_int(value: Any, field: str, *, required: bool = True, minimum: int | None = None) -> int | None:
    """Strict integer coercion: rejects floats, decimals, and scientific notation."""
    if value is None or (isinstance(value, str) and not value.strip()):
        if required:
            raise ValidationError(f"{field} is required")
        return None

    if isinstance(value, bool):
        raise ValidationError(f"{field} must be an integer")

    if isinstance(value, int):
        result = value
    elif isinstance(value, str):
        stripped = value.strip()
        if "e" in stripped.lower() or "." in stripped:
            raise ValidationError(f"{field} must be a plain integer")
        try:
            result = int(stripped)
        except ValueError:
            raise ValidationError(f"{field} must be an integer")
    else:
        raise ValidationError(f"{field} must be an integer")

    if minimum is not None and result < minimum:
        raise ValidationError(f"{field} must be >= {minimum}")
    return result


def parse_bool(value: Any, field: str) -> bool | None:
    if value is None:
        return None
    if isinstance(value, bool):
        return value
    if isinstance(value, str) and value.strip().lower() in ("true", "1", "yes"):
        return True
    if isinstance(value, str) and value.strip().lower() in ("false", "0", "no"):
        return False
    raise ValidationError(f"{field} must be a boolean")


def parse_datetime(value: Any, field: str, *, end_of_day: bool = False):
    """ISO-8601 date or datetime; end_of_day makes a bare date cover that whole day."""
    if value is None or value == "":
        return None
    try:
        return parse_iso_datetime(str(value), end_of_day=end_of_day)
    except ValueError:
        raise ValidationError(f"{field} must be an ISO-8601 datetime")


def optional_text(value: Any, field: str, max_length: int | None = None) -> str | None:
    if value is None:
        return None
    text = str(value).strip()
    if max_length is not None and len(text) > max_length:
        raise ValidationError(f"{field} exceeds max length {max_length}")
    return text


@dataclass(frozen=True)
class ItemInput:
    """One requested order line, validated but not yet resolved against the menu."""
    item_id: int
    quantity: int
    unit_price: Decimal | None = None
    notes: str | None = None


def parse_items(raw_items: Any) -> list[ItemInput]:
    """Validate an order's items payload; raises ValidationError on the first bad line."""
    if not isinstance(raw_items, (list, tuple)) or not raw_items:
        raise ValidationError("items must be a non-empty list")

    items = []
    for index, raw in enumerate(raw_items):
        if not isinstance(raw, dict):
            raise ValidationError(f"items[{index}] must be an object")
        items.append(ItemInput(
            item_id=parse_int(raw.get("item_id"), f"items[{index}].item_id", minimum=1),
            quantity=parse_int(raw.get("quantity"), f"items[{index}].quantity", minimum=1),
            unit_price=parse_money(raw.get("unit_price"), f"items[{index}].unit_price", required=False),
            notes=optional_text(raw.get("notes"), f"items[{index}].notes"),
        ))
    return items
