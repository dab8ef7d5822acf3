# Overview: Flask API routes for orders; parses input and returns JSON responses.

"""
Order API Routes

DESIGN:
- Create orders from menu item ids (item names/prices snapshotted)
- Update items and discount in one call; totals recomputed server-side
- Manual status changes follow the order status transition table
- Delete removes the order with its lines, discounts and payments

SECURITY:
- cashier, supervisor, owner: create, view, change status
- cashier: only under their own cashier_id
- supervisor, owner: update items/discount
- owner: delete
"""

from flask import Blueprint, request, jsonify, g, current_app

from ..extensions import db
from ..models.auth import MANAGER_ROLES, ROLE_OWNER, VALID_ROLES
from ..services import order_service
from ..validation import ServiceError, error_response, parse_int
from ..decorators import forbid_other_user, require_auth, require_role


orders_bp = Blueprint("orders", __name__, url_prefix="/api/orders")


@orders_bp.post("")
@require_auth
@require_role(*VALID_ROLES)
def create_order_route():
    """
    Create a new order.

    Request body:
    {
        "table_number": "T4",      (optional)
        "cashier_id": 3,           (optional, defaults to the caller)
        "notes": "no onions",      (optional)
        "items": [{"item_id": 1, "quantity": 2, "unit_price": "5.00", "notes": null}]
    }

    Returns:
        201: {"order_id", "order_date", "order"}
        400: invalid input or totals too large
        403: cashier creating an order under another user's id
        404: unknown menu item or cashier (nothing is created)
    """
    try:
        data = request.get_json(silent=True) or {}
        cashier_id = parse_int(data.get("cashier_id", g.current_user.id), "cashier_id", required=False)
        denied = forbid_other_user(cashier_id, "Cashiers can only create orders under their own id")
        if denied:
            return denied

        order = order_service.create_order(
            db.session,
            items=data.get("items"),
            table_number=data.get("table_number"),
            cashier_id=cashier_id,
            notes=data.get("notes"),
        )
        current_app.logger.info("Order %s created by user %s (total %s)", order.id, g.current_user.id, order.total_amount)

        return jsonify({
            "message": "Order created successfully",
            "order_id": order.id,
            "order_date": order.to_dict()["order_date"],
            "order": order.to_dict(),
        }), 201

    except ServiceError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to create order")
        return jsonify({"error": "Internal server error"}), 500


@orders_bp.get("")
@require_auth
@require_role(*VALID_ROLES)
def list_orders_route():
    """List orders newest-first; ?status=pending filters by status."""
    try:
        orders = order_service.list_orders(db.session, status=request.args.get("status"))
        return jsonify([o.to_dict() for o in orders]), 200
    except ServiceError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to list orders")
        return jsonify({"error": "Internal server error"}), 500


@orders_bp.get("/<int:order_id>")
@require_auth
@require_role(*VALID_ROLES)
def get_order_route(order_id: int):
    """Order with its items and applied discounts."""
    try:
        return jsonify(order_service.get_order_detail(db.session, order_id)), 200
    except ServiceError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to get order")
        return jsonify({"error": "Internal server error"}), 500


@orders_bp.put("/<int:order_id>")
@require_auth
@require_role(*MANAGER_ROLES)
def update_order_route(order_id: int):
    """
    Update an order's items, discount, table number or notes.

    Request body (all optional):
    {
        "table_number": "T5",
        "notes": "...",
        "items": [...],                 replaces all lines when non-empty
        "discount_id": 2,               re-applied against the new total
        "applied_by_user_id": 1         defaults to the caller
    }

    An inapplicable discount does not fail the update; the response carries
    "discount_not_applicable" with the reason and the order has no discount.
    """
    try:
        data = request.get_json(silent=True) or {}
        discount_id = parse_int(data.get("discount_id"), "discount_id", required=False)
        applied_by = parse_int(data.get("applied_by_user_id", g.current_user.id), "applied_by_user_id", required=False)

        result = order_service.update_order(
            db.session,
            order_id,
            table_number=data.get("table_number"),
            notes=data.get("notes"),
            items=data.get("items"),
            discount_id=discount_id,
            applied_by_user_id=applied_by,
        )

        body = result.order.to_dict()
        body["discount_not_applicable"] = result.discount_outcome.to_dict() if result.discount_outcome else None
        if result.discount_outcome:
            current_app.logger.info("Discount %s skipped on order %s: %s", discount_id, order_id, result.discount_outcome.reason)
        return jsonify(body), 200

    except ServiceError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to update order")
        return jsonify({"error": "Internal server error"}), 500


@orders_bp.put("/<int:order_id>/status")
@require_auth
@require_role(*VALID_ROLES)
def set_order_status_route(order_id: int):
    """Change status: {"status": "cancelled"}."""
    try:
        data = request.get_json(silent=True) or {}
        order = order_service.set_status(db.session, order_id, data.get("status"))
        return jsonify(order.to_dict()), 200
    except ServiceError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to update order status")
        return jsonify({"error": "Internal server error"}), 500


@orders_bp.delete("/<int:order_id>")
@require_auth
@require_role(ROLE_OWNER)
def delete_order_route(order_id: int):
    try:
        order_service.delete_order(db.session, order_id)
        current_app.logger.info("Order %s deleted by user %s", order_id, g.current_user.id)
        return jsonify({"message": "Order deleted successfully"}), 200
    except ServiceError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to delete order")
        return jsonify({"error": "Internal server error"}), 500
