"""
Concurrency tests.

Runs competing writers on separate threads, each with its own app context
and therefore its own database session, against the shared SQLite file.

Verifies:
- Two payments that together cover an order complete it exactly once
- Concurrent shift starts for one user leave exactly one active shift
- Concurrent item replacements serialize: one item set survives, totals match it
- A discount update racing a payment leaves completion consistent with the
  final amount the payment saw
"""

import threading
from decimal import Decimal

from restopos.extensions import db
from restopos.models import CashierShift, Order, Payment
from restopos.services import discount_service, order_service, payment_service, shift_service
from restopos.validation import ConflictError


def run_concurrently(app, targets):
    """Start every target at once (behind a barrier) and wait for all of them."""
    barrier = threading.Barrier(len(targets))
    results = []
    lock = threading.Lock()

    def runner(target):
        with app.app_context():
            barrier.wait()
            try:
                outcome = ("ok", target())
            except Exception as exc:
                outcome = ("error", exc)
            with lock:
                results.append(outcome)

    threads = [threading.Thread(target=runner, args=(t,)) for t in targets]
    for t in threads:
        t.start()
    for t in threads:
        t.join(timeout=60)
    return results


def test_concurrent_payments_complete_order_once(app, db_session, scenario_items, cashier, monkeypatch):
    order = order_service.create_order(db_session, items=scenario_items, cashier_id=cashier.id)
    discount = discount_service.create_discount(db_session, {
        "discount_name": "Ten Percent",
        "discount_type": "percentage",
        "value": "10",
    })
    order_service.update_order(db_session, order.id, discount_id=discount.id)
    shift = shift_service.start_shift(db_session, cashier.id, "0.00")
    order_id, cashier_id, shift_id = order.id, cashier.id, shift.id
    # Release this thread's connection before the workers start
    db_session.close()

    transitions = []
    original_mark_completed = payment_service.mark_completed

    def counting_mark_completed(order):
        changed = original_mark_completed(order)
        if changed:
            transitions.append(order.id)
        return changed

    monkeypatch.setattr(payment_service, "mark_completed", counting_mark_completed)

    def pay(amount):
        return lambda: payment_service.record_payment(
            db.session, order_id, payment_method="cash", amount=amount, cashier_id=cashier_id,
        ).id

    results = run_concurrently(app, [pay("6.08"), pay("6.07")])

    assert [kind for kind, _ in results] == ["ok", "ok"], results
    assert transitions == [order_id]

    assert order_service.get_order(db_session, order_id).status == "completed"
    assert payment_service.total_paid(db_session, order_id) == Decimal("12.15")
    assert db_session.query(Payment).filter_by(order_id=order_id).count() == 2
    assert shift_service.get_shift(db_session, shift_id).sales_amount_cash == Decimal("12.15")


def test_concurrent_shift_starts_leave_one_active(app, db_session, cashier):
    cashier_id = cashier.id
    db_session.close()

    def start():
        return shift_service.start_shift(db.session, cashier_id, "100.00").id

    results = run_concurrently(app, [start for _ in range(5)])

    successes = [value for kind, value in results if kind == "ok"]
    failures = [value for kind, value in results if kind == "error"]
    assert len(successes) == 1
    assert len(failures) == 4
    assert all(isinstance(exc, ConflictError) for exc in failures), failures

    active = db_session.query(CashierShift).filter(
        CashierShift.user_id == cashier_id,
        CashierShift.shift_end.is_(None),
    ).all()
    assert [s.id for s in active] == successes


def test_concurrent_item_updates_keep_one_item_set(app, db_session, scenario_items, menu):
    order = order_service.create_order(db_session, items=scenario_items)
    order_id = order.id
    espresso, muffin = menu["espresso"], menu["muffin"]
    db_session.close()

    def replace_items(quantity):
        items = [
            {"item_id": espresso, "quantity": quantity, "unit_price": "5.00"},
            {"item_id": muffin, "quantity": quantity, "unit_price": "3.50"},
        ]
        return lambda: order_service.update_order(db.session, order_id, items=items).order.total_amount

    quantities = [3, 4, 5, 6, 7, 8]
    results = run_concurrently(app, [replace_items(q) for q in quantities])

    assert [kind for kind, _ in results] == ["ok"] * len(quantities), results

    order = order_service.get_order(db_session, order_id)
    lines = order_service.get_order_items(db_session, order_id)
    assert len(lines) == 2
    surviving = {line.quantity for line in lines}
    assert len(surviving) == 1
    (quantity,) = surviving
    assert quantity in quantities
    assert order.total_amount == sum(line.item_total for line in lines)
    assert order.total_amount == Decimal("8.50") * quantity
    assert order.final_amount == order.total_amount


def test_discount_update_racing_payment(app, db_session, scenario_items, cashier, monkeypatch):
    order = order_service.create_order(db_session, items=scenario_items, cashier_id=cashier.id)
    discount = discount_service.create_discount(db_session, {
        "discount_name": "Ten Percent",
        "discount_type": "percentage",
        "value": "10",
    })
    shift = shift_service.start_shift(db_session, cashier.id, "0.00")
    order_id, discount_id, cashier_id, shift_id = order.id, discount.id, cashier.id, shift.id
    db_session.close()

    # The final amount the payment transaction compared against
    observed = []
    original_total_paid = payment_service.total_paid

    def recording_total_paid(session, oid):
        paid = original_total_paid(session, oid)
        observed.append((paid, session.get(Order, oid).final_amount))
        return paid

    monkeypatch.setattr(payment_service, "total_paid", recording_total_paid)

    def apply_discount():
        return order_service.update_order(db.session, order_id, discount_id=discount_id).order.final_amount

    def pay():
        return payment_service.record_payment(
            db.session, order_id, payment_method="cash", amount="12.15", cashier_id=cashier_id,
        ).id

    results = run_concurrently(app, [apply_discount, pay])

    assert [kind for kind, _ in results] == ["ok", "ok"], results
    assert len(observed) == 1
    paid_seen, final_seen = observed[0]
    assert paid_seen == Decimal("12.15")
    assert final_seen in (Decimal("13.50"), Decimal("12.15"))

    order = order_service.get_order(db_session, order_id)
    assert order.total_amount == Decimal("13.50")
    assert order.discount_amount == Decimal("1.35")
    assert order.final_amount == Decimal("12.15")
    assert payment_service.total_paid(db_session, order_id) == Decimal("12.15")
    # Completion is decided against the final amount committed when the payment ran
    expected_status = "completed" if paid_seen >= final_seen else "pending"
    assert order.status == expected_status
    assert shift_service.get_shift(db_session, shift_id).sales_amount_cash == Decimal("12.15")
