"""
Payment ledger tests.

Verifies:
- A payment that covers final_amount completes the order
- Split payments complete the order only once the sum covers it
- The cashier's active shift sales totals move with each payment
- Missing shifts never block a payment
- Invalid input, unknown cashiers and cancelled orders are rejected with nothing written
- Payment, shift increment and completion commit or roll back together
"""

from decimal import Decimal

import pytest

from restopos.models import CashierShift, Payment
from restopos.services import discount_service, order_service, payment_service, shift_service
from restopos.validation import ConflictError, NotFoundError, ValidationError


@pytest.fixture
def discounted_order(db_session, scenario_items, cashier):
    """Pending order: 13.50 less 10% = 12.15."""
    order = order_service.create_order(db_session, items=scenario_items, cashier_id=cashier.id)
    discount = discount_service.create_discount(db_session, {
        "discount_name": "Ten Percent",
        "discount_type": "percentage",
        "value": "10",
    })
    order_service.update_order(db_session, order.id, discount_id=discount.id)
    return order_service.get_order(db_session, order.id)


@pytest.fixture
def open_shift(db_session, cashier):
    return shift_service.start_shift(db_session, cashier.id, "100.00")


class TestRecordPayment:

    def test_full_cash_payment_completes_order_and_updates_shift(self, db_session, discounted_order, open_shift, cashier):
        assert discounted_order.final_amount == Decimal("12.15")

        payment = payment_service.record_payment(
            db_session,
            discounted_order.id,
            payment_method="cash",
            amount="12.15",
            cashier_id=cashier.id,
        )

        assert payment.amount == Decimal("12.15")
        assert payment.payment_method == "cash"
        assert order_service.get_order(db_session, discounted_order.id).status == "completed"

        shift = shift_service.get_shift(db_session, open_shift.id)
        assert shift.sales_amount_cash == Decimal("12.15")
        assert shift.sales_amount_card == Decimal("0.00")

    def test_split_payment_completes_on_covering_payment(self, db_session, discounted_order, open_shift, cashier):
        payment_service.record_payment(db_session, discounted_order.id, payment_method="card", amount="5.00", cashier_id=cashier.id)
        assert order_service.get_order(db_session, discounted_order.id).status == "pending"

        payment_service.record_payment(db_session, discounted_order.id, payment_method="cash", amount="7.15", cashier_id=cashier.id)
        assert order_service.get_order(db_session, discounted_order.id).status == "completed"

        shift = shift_service.get_shift(db_session, open_shift.id)
        assert shift.sales_amount_card == Decimal("5.00")
        assert shift.sales_amount_cash == Decimal("7.15")

    def test_method_is_case_insensitive(self, db_session, discounted_order):
        payment = payment_service.record_payment(db_session, discounted_order.id, payment_method=" CARD ", amount="1.00")
        assert payment.payment_method == "card"

    def test_no_active_shift_still_records(self, db_session, discounted_order, cashier):
        payment_service.record_payment(db_session, discounted_order.id, payment_method="cash", amount="12.15", cashier_id=cashier.id)

        assert db_session.query(Payment).count() == 1
        assert db_session.query(CashierShift).count() == 0
        assert order_service.get_order(db_session, discounted_order.id).status == "completed"

    def test_ended_shift_not_incremented(self, db_session, discounted_order, open_shift, cashier):
        shift_service.end_shift(db_session, open_shift.id, "100.00")

        payment_service.record_payment(db_session, discounted_order.id, payment_method="cash", amount="12.15", cashier_id=cashier.id)

        assert shift_service.get_shift(db_session, open_shift.id).sales_amount_cash == Decimal("0.00")

    def test_other_cashiers_shift_untouched(self, db_session, discounted_order, open_shift, cashier_b):
        payment_service.record_payment(db_session, discounted_order.id, payment_method="cash", amount="2.00", cashier_id=cashier_b.id)
        assert shift_service.get_shift(db_session, open_shift.id).sales_amount_cash == Decimal("0.00")

    def test_overpayment_completes_and_reports_overpaid(self, db_session, discounted_order):
        payment_service.record_payment(db_session, discounted_order.id, payment_method="cash", amount="20.00")

        summary = payment_service.get_payment_summary(db_session, discounted_order.id)
        assert summary["status"] == "completed"
        assert summary["total_paid"] == "20.00"
        assert summary["remaining_balance"] == "0.00"
        assert summary["overpaid"] == "7.85"

    def test_payment_after_completion_keeps_completed(self, db_session, discounted_order):
        payment_service.record_payment(db_session, discounted_order.id, payment_method="card", amount="12.15")
        payment_service.record_payment(db_session, discounted_order.id, payment_method="cash", amount="1.00")

        assert order_service.get_order(db_session, discounted_order.id).status == "completed"
        assert payment_service.total_paid(db_session, discounted_order.id) == Decimal("13.15")

    @pytest.mark.parametrize("amount", ["0", "0.00", "-5.00", "abc", "1.001", None, True])
    def test_invalid_amount_rejected(self, db_session, discounted_order, amount):
        with pytest.raises(ValidationError):
            payment_service.record_payment(db_session, discounted_order.id, payment_method="cash", amount=amount)
        assert db_session.query(Payment).count() == 0

    def test_invalid_method_rejected(self, db_session, discounted_order):
        with pytest.raises(ValidationError):
            payment_service.record_payment(db_session, discounted_order.id, payment_method="crypto", amount="12.15")
        assert db_session.query(Payment).count() == 0

    def test_unknown_order(self, db_session):
        with pytest.raises(NotFoundError) as exc_info:
            payment_service.record_payment(db_session, 999999, payment_method="cash", amount="1.00")
        assert exc_info.value.message == "Order not found for payment"

    def test_unknown_cashier_records_nothing(self, db_session, discounted_order, open_shift):
        with pytest.raises(NotFoundError) as exc_info:
            payment_service.record_payment(
                db_session, discounted_order.id, payment_method="cash", amount="12.15", cashier_id=999999,
            )

        assert exc_info.value.message == "User 999999 not found"
        assert db_session.query(Payment).count() == 0
        assert order_service.get_order(db_session, discounted_order.id).status == "pending"
        assert shift_service.get_shift(db_session, open_shift.id).sales_amount_cash == Decimal("0.00")

    def test_cancelled_order_rejected(self, db_session, discounted_order):
        order_service.set_status(db_session, discounted_order.id, "cancelled")

        with pytest.raises(ConflictError):
            payment_service.record_payment(db_session, discounted_order.id, payment_method="cash", amount="12.15")
        assert db_session.query(Payment).count() == 0
        assert order_service.get_order(db_session, discounted_order.id).status == "cancelled"

    def test_failure_after_insert_rolls_back_everything(self, db_session, discounted_order, open_shift, cashier, monkeypatch):
        def broken_increment(*args, **kwargs):
            raise RuntimeError("shift store unavailable")

        monkeypatch.setattr(payment_service, "add_sale_to_active_shift", broken_increment)

        with pytest.raises(RuntimeError):
            payment_service.record_payment(db_session, discounted_order.id, payment_method="cash", amount="12.15", cashier_id=cashier.id)

        assert db_session.query(Payment).count() == 0
        assert order_service.get_order(db_session, discounted_order.id).status == "pending"
        assert shift_service.get_shift(db_session, open_shift.id).sales_amount_cash == Decimal("0.00")


class TestPaymentQueries:

    def test_list_newest_first_with_filters(self, db_session, discounted_order, cashier):
        first = payment_service.record_payment(db_session, discounted_order.id, payment_method="card", amount="2.00", cashier_id=cashier.id)
        second = payment_service.record_payment(db_session, discounted_order.id, payment_method="cash", amount="3.00")

        assert [p.id for p in payment_service.list_payments(db_session)] == [second.id, first.id]
        assert [p.id for p in payment_service.list_payments(db_session, payment_method="card")] == [first.id]
        assert [p.id for p in payment_service.list_payments(db_session, cashier_id=cashier.id)] == [first.id]

    def test_list_for_order(self, db_session, discounted_order):
        payment_service.record_payment(db_session, discounted_order.id, payment_method="cash", amount="2.00")
        assert len(payment_service.list_payments_for_order(db_session, discounted_order.id)) == 1

    def test_list_for_unknown_order(self, db_session):
        with pytest.raises(NotFoundError):
            payment_service.list_payments_for_order(db_session, 999999)

    def test_summary_before_payment(self, db_session, discounted_order):
        summary = payment_service.get_payment_summary(db_session, discounted_order.id)
        assert summary == {
            "order_id": discounted_order.id,
            "status": "pending",
            "final_amount": "12.15",
            "total_paid": "0.00",
            "remaining_balance": "12.15",
            "overpaid": "0.00",
        }
