"""
Discount engine tests.

Verifies:
- Percentage and fixed-amount arithmetic, rounded half-up to cents
- Fixed discounts are capped at the subtotal
- Inactive, out-of-window and below-threshold discounts are not applicable
- Discount catalogue validation and delete protection
- A date-only valid_until runs to the end of that day
"""

from datetime import datetime, timedelta
from decimal import Decimal

import pytest

from restopos.models import Discount
from restopos.services import discount_service, order_service
from restopos.validation import ConflictError, DiscountNotApplicable, NotFoundError, ValidationError


def make_discount(discount_type="percentage", value="10", **kwargs) -> Discount:
    fields = {
        "id": 1,
        "discount_name": "Test Discount",
        "discount_type": discount_type,
        "value": Decimal(value),
        "is_active": True,
        "min_amount_threshold": None,
        "valid_from": None,
        "valid_until": None,
    }
    fields.update(kwargs)
    return Discount(**fields)


# =============================================================================
# ARITHMETIC
# =============================================================================


class TestComputeDiscount:

    def test_percentage_of_subtotal(self):
        assert discount_service.compute_discount(Decimal("13.50"), make_discount("percentage", "10")) == Decimal("1.35")

    def test_percentage_rounds_half_up(self):
        # 10% of 0.05 = 0.005
        assert discount_service.compute_discount(Decimal("0.05"), make_discount("percentage", "10")) == Decimal("0.01")

    def test_hundred_percent_zeroes_the_bill(self):
        assert discount_service.compute_discount(Decimal("42.10"), make_discount("percentage", "100")) == Decimal("42.10")

    def test_fixed_amount_below_subtotal(self):
        assert discount_service.compute_discount(Decimal("15.00"), make_discount("fixed_amount", "5.00")) == Decimal("5.00")

    def test_fixed_amount_capped_at_subtotal(self):
        amount = discount_service.compute_discount(Decimal("15.00"), make_discount("fixed_amount", "20.00"))
        assert amount == Decimal("15.00")
        assert Decimal("15.00") - amount == Decimal("0.00")

    def test_unknown_type_is_validation_error(self):
        with pytest.raises(ValidationError) as exc_info:
            discount_service.compute_discount(Decimal("10.00"), make_discount("bogo", "1"))
        assert not isinstance(exc_info.value, DiscountNotApplicable)


# =============================================================================
# APPLICABILITY
# =============================================================================


class TestApplicability:

    def test_inactive_discount_not_applicable(self):
        with pytest.raises(DiscountNotApplicable) as exc_info:
            discount_service.compute_discount(Decimal("20.00"), make_discount(is_active=False))
        assert "not active" in exc_info.value.reason
        assert exc_info.value.discount_id == 1

    def test_below_threshold_not_applicable(self):
        discount = make_discount(min_amount_threshold=Decimal("20.00"))
        with pytest.raises(DiscountNotApplicable):
            discount_service.compute_discount(Decimal("19.99"), discount)

    def test_threshold_is_inclusive(self):
        discount = make_discount(min_amount_threshold=Decimal("20.00"))
        assert discount_service.compute_discount(Decimal("20.00"), discount) == Decimal("2.00")

    def test_before_window_not_applicable(self):
        now = datetime(2024, 6, 1, 12, 0)
        discount = make_discount(valid_from=now + timedelta(days=1))
        with pytest.raises(DiscountNotApplicable):
            discount_service.compute_discount(Decimal("10.00"), discount, now=now)

    def test_after_window_not_applicable(self):
        now = datetime(2024, 6, 1, 12, 0)
        discount = make_discount(valid_until=now - timedelta(seconds=1))
        with pytest.raises(DiscountNotApplicable):
            discount_service.compute_discount(Decimal("10.00"), discount, now=now)

    def test_inside_window_applies(self):
        now = datetime(2024, 6, 1, 12, 0)
        discount = make_discount(valid_from=now - timedelta(hours=1), valid_until=now + timedelta(hours=1))
        assert discount_service.compute_discount(Decimal("10.00"), discount, now=now) == Decimal("1.00")

    def test_not_applicable_keeps_error_shape(self):
        discount = make_discount(is_active=False)
        with pytest.raises(DiscountNotApplicable) as exc_info:
            discount_service.compute_discount(Decimal("10.00"), discount)

        body = exc_info.value.to_dict()
        assert body["error"] == "DiscountNotApplicable"
        assert body["message"] == body["reason"]
        assert body["discount_id"] == 1


# =============================================================================
# CATALOGUE
# =============================================================================


class TestDiscountCatalogue:

    def test_create_and_list(self, db_session):
        discount_service.create_discount(db_session, {
            "discount_name": "Happy Hour",
            "discount_type": "percentage",
            "value": "10",
        })
        discount_service.create_discount(db_session, {
            "discount_name": "Closed Promo",
            "discount_type": "fixed_amount",
            "value": "2.00",
            "is_active": False,
        })

        assert len(discount_service.list_discounts(db_session)) == 2
        active = discount_service.list_discounts(db_session, active_only=True)
        assert [d.discount_name for d in active] == ["Happy Hour"]

    def test_percentage_over_100_rejected(self, db_session):
        with pytest.raises(ValidationError):
            discount_service.create_discount(db_session, {
                "discount_name": "Too Much",
                "discount_type": "percentage",
                "value": "150",
            })

    def test_window_must_be_ordered(self, db_session):
        with pytest.raises(ValidationError):
            discount_service.create_discount(db_session, {
                "discount_name": "Backwards",
                "discount_type": "fixed_amount",
                "value": "1.00",
                "valid_from": "2024-02-01T00:00:00Z",
                "valid_until": "2024-01-01T00:00:00Z",
            })

    def test_duplicate_name_conflicts(self, db_session):
        data = {"discount_name": "Staff", "discount_type": "percentage", "value": "20"}
        discount_service.create_discount(db_session, data)
        with pytest.raises(ConflictError):
            discount_service.create_discount(db_session, data)

    def test_update_is_partial(self, db_session):
        discount = discount_service.create_discount(db_session, {
            "discount_name": "Lunch",
            "discount_type": "fixed_amount",
            "value": "3.00",
        })
        updated = discount_service.update_discount(db_session, discount.id, {"is_active": False})
        assert updated.is_active is False
        assert updated.value == Decimal("3.00")
        assert updated.discount_name == "Lunch"

    def test_date_only_valid_until_covers_that_day(self, db_session):
        discount = discount_service.create_discount(db_session, {
            "discount_name": "June First",
            "discount_type": "percentage",
            "value": "10",
            "valid_from": "2024-06-01",
            "valid_until": "2024-06-01",
        })

        assert discount.valid_from == datetime(2024, 6, 1, 0, 0)
        assert discount.valid_until == datetime(2024, 6, 1, 23, 59, 59, 999999)
        evening = datetime(2024, 6, 1, 21, 30)
        assert discount_service.compute_discount(Decimal("10.00"), discount, now=evening) == Decimal("1.00")
        with pytest.raises(DiscountNotApplicable):
            discount_service.compute_discount(Decimal("10.00"), discount, now=datetime(2024, 6, 2, 0, 0))

    def test_delete_unused_discount(self, db_session):
        discount = discount_service.create_discount(db_session, {
            "discount_name": "Temp",
            "discount_type": "percentage",
            "value": "5",
        })
        discount_id = discount.id
        discount_service.delete_discount(db_session, discount_id)
        with pytest.raises(NotFoundError):
            discount_service.get_discount(db_session, discount_id)

    def test_delete_applied_discount_conflicts(self, db_session, scenario_items):
        discount = discount_service.create_discount(db_session, {
            "discount_name": "Applied",
            "discount_type": "percentage",
            "value": "10",
        })
        order = order_service.create_order(db_session, items=scenario_items)
        order_service.update_order(db_session, order.id, discount_id=discount.id)

        with pytest.raises(ConflictError):
            discount_service.delete_discount(db_session, discount.id)
        assert discount_service.get_discount(db_session, discount.id) is not None
