# Overview: Flask API routes for discounts; parses input and returns JSON responses.

"""
Discount API Routes

SECURITY:
- cashier, supervisor, owner: list and view
- supervisor, owner: create and update
- owner: delete (only discounts never applied to an order)
"""

from flask import Blueprint, request, jsonify, g, current_app

from ..extensions import db
from ..models.auth import MANAGER_ROLES, ROLE_OWNER, VALID_ROLES
from ..services import discount_service
from ..validation import ServiceError, error_response, parse_bool
from ..decorators import require_auth, require_role


discounts_bp = Blueprint("discounts", __name__, url_prefix="/api/discounts")


@discounts_bp.get("")
@require_auth
@require_role(*VALID_ROLES)
def list_discounts_route():
    try:
        active_only = parse_bool(request.args.get("active"), "active") or False
        discounts = discount_service.list_discounts(db.session, active_only=active_only)
        return jsonify([d.to_dict() for d in discounts]), 200
    except ServiceError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to list discounts")
        return jsonify({"error": "Internal server error"}), 500


@discounts_bp.get("/<int:discount_id>")
@require_auth
@require_role(*VALID_ROLES)
def get_discount_route(discount_id: int):
    try:
        return jsonify(discount_service.get_discount(db.session, discount_id).to_dict()), 200
    except ServiceError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to get discount")
        return jsonify({"error": "Internal server error"}), 500


@discounts_bp.post("")
@require_auth
@require_role(*MANAGER_ROLES)
def create_discount_route():
    """
    Create a discount.

    Request body:
    {
        "discount_name": "Happy Hour",
        "discount_type": "percentage",          percentage | fixed_amount
        "value": "10",
        "min_amount_threshold": "20.00",        (optional)
        "valid_from": "2024-01-01T00:00:00Z",   (optional)
        "valid_until": "2024-12-31T23:59:59Z",  (optional)
        "is_active": true                       (optional)
    }
    """
    try:
        discount = discount_service.create_discount(db.session, request.get_json(silent=True) or {})
        current_app.logger.info("Discount %s created by user %s", discount.id, g.current_user.id)
        return jsonify(discount.to_dict()), 201
    except ServiceError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to create discount")
        return jsonify({"error": "Internal server error"}), 500


@discounts_bp.put("/<int:discount_id>")
@require_auth
@require_role(*MANAGER_ROLES)
def update_discount_route(discount_id: int):
    """Partial update; only the fields present in the body change."""
    try:
        discount = discount_service.update_discount(db.session, discount_id, request.get_json(silent=True) or {})
        return jsonify(discount.to_dict()), 200
    except ServiceError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to update discount")
        return jsonify({"error": "Internal server error"}), 500


@discounts_bp.delete("/<int:discount_id>")
@require_auth
@require_role(ROLE_OWNER)
def delete_discount_route(discount_id: int):
    try:
        discount_service.delete_discount(db.session, discount_id)
        current_app.logger.info("Discount %s deleted by user %s", discount_id, g.current_user.id)
        return jsonify({"message": "Discount deleted successfully"}), 200
    except ServiceError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to delete discount")
        return jsonify({"error": "Internal server error"}), 500
