# Overview: Flask API routes for payments; parses input and returns JSON responses.

"""
Payment API Routes

DESIGN:
- Record a cash or card payment against an order (split payments allowed)
- The payment, the cashier's shift totals and order completion commit together
- List payments newest-first, overall or per order

SECURITY:
- cashier, supervisor, owner for all payment routes
- cashier: may only record payments under their own cashier_id, so a
  payment can only credit the caller's own shift
"""

from flask import Blueprint, request, jsonify, g, current_app

from ..extensions import db
from ..models.auth import VALID_ROLES
from ..services import payment_service
from ..validation import ServiceError, error_response, parse_int
from ..decorators import forbid_other_user, require_auth, require_role


payments_bp = Blueprint("payments", __name__, url_prefix="/api/payments")


@payments_bp.post("")
@require_auth
@require_role(*VALID_ROLES)
def record_payment_route():
    """
    Record a payment.

    Request body:
    {
        "order_id": 12,
        "payment_method": "cash",        cash | card
        "amount": "12.15",
        "transaction_id": "AUTH-123",    (optional)
        "cashier_id": 3,                 (optional, defaults to the caller)
        "notes": "..."                   (optional)
    }

    Returns:
        201: {"payment", "summary"}
        400: invalid amount or method
        403: cashier recording under another user's id
        404: order or cashier not found
        409: order cancelled
    """
    try:
        data = request.get_json(silent=True) or {}
        order_id = parse_int(data.get("order_id"), "order_id", minimum=1)
        cashier_id = parse_int(data.get("cashier_id", g.current_user.id), "cashier_id", required=False)
        denied = forbid_other_user(cashier_id, "Cashiers can only record payments under their own id")
        if denied:
            return denied

        payment = payment_service.record_payment(
            db.session,
            order_id,
            payment_method=data.get("payment_method"),
            amount=data.get("amount"),
            transaction_ref=data.get("transaction_id"),
            cashier_id=cashier_id,
            notes=data.get("notes"),
        )
        current_app.logger.info(
            "Payment %s of %s (%s) recorded for order %s",
            payment.id, payment.amount, payment.payment_method, order_id,
        )

        return jsonify({
            "payment": payment.to_dict(),
            "summary": payment_service.get_payment_summary(db.session, order_id),
        }), 201

    except ServiceError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to record payment")
        return jsonify({"error": "Internal server error"}), 500


@payments_bp.get("")
@require_auth
@require_role(*VALID_ROLES)
def list_payments_route():
    """All payments newest-first; optional ?cashier_id= and ?payment_method= filters."""
    try:
        payments = payment_service.list_payments(
            db.session,
            cashier_id=parse_int(request.args.get("cashier_id"), "cashier_id", required=False),
            payment_method=request.args.get("payment_method"),
        )
        return jsonify([p.to_dict() for p in payments]), 200
    except ServiceError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to list payments")
        return jsonify({"error": "Internal server error"}), 500


@payments_bp.get("/order/<int:order_id>")
@require_auth
@require_role(*VALID_ROLES)
def list_order_payments_route(order_id: int):
    try:
        payments = payment_service.list_payments_for_order(db.session, order_id)
        return jsonify({
            "order_id": order_id,
            "payments": [p.to_dict() for p in payments],
            "summary": payment_service.get_payment_summary(db.session, order_id),
        }), 200
    except ServiceError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to list order payments")
        return jsonify({"error": "Internal server error"}), 500
