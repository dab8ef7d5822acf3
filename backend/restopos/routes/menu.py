# Overview: Flask API routes for the menu catalog; parses input and returns JSON responses.

"""
Menu API Routes

SECURITY:
- any authenticated user: list and view items and categories
- supervisor, owner: create, update and delete items; create categories
"""

from flask import Blueprint, request, jsonify, g, current_app

from ..extensions import db
from ..models.auth import MANAGER_ROLES
from ..services import menu_service
from ..validation import ServiceError, error_response, parse_bool
from ..decorators import require_auth, require_role


menu_bp = Blueprint("menu", __name__, url_prefix="/api/menu")


@menu_bp.get("")
@require_auth
def list_menu_route():
    """List menu items by name; ?available=true hides unavailable items."""
    try:
        available_only = parse_bool(request.args.get("available"), "available") or False
        items = menu_service.list_menu_items(db.session, available_only=available_only)
        return jsonify([i.to_dict() for i in items]), 200
    except ServiceError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to list menu")
        return jsonify({"error": "Internal server error"}), 500


@menu_bp.get("/<int:item_id>")
@require_auth
def get_menu_item_route(item_id: int):
    try:
        return jsonify(menu_service.get_menu_item(db.session, item_id).to_dict()), 200
    except ServiceError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to get menu item")
        return jsonify({"error": "Internal server error"}), 500


@menu_bp.post("")
@require_auth
@require_role(*MANAGER_ROLES)
def create_menu_item_route():
    """
    Create a menu item.

    Request body:
    {
        "category_id": 1,
        "item_name": "Latte",
        "price": "4.50",
        "description": "...",     (optional)
        "is_available": true      (optional)
    }
    """
    try:
        data = request.get_json(silent=True) or {}
        item = menu_service.create_menu_item(db.session, data)
        current_app.logger.info("Menu item %s created by user %s", item.id, g.current_user.id)
        return jsonify(item.to_dict()), 201
    except ServiceError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to create menu item")
        return jsonify({"error": "Internal server error"}), 500


@menu_bp.put("/<int:item_id>")
@require_auth
@require_role(*MANAGER_ROLES)
def update_menu_item_route(item_id: int):
    """
    Update a menu item; only the fields present change.

    Request body (all optional): category_id, item_name, price,
    description, is_available.
    """
    try:
        data = request.get_json(silent=True) or {}
        item = menu_service.update_menu_item(db.session, item_id, data)
        current_app.logger.info("Menu item %s updated by user %s", item.id, g.current_user.id)
        return jsonify(item.to_dict()), 200
    except ServiceError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to update menu item")
        return jsonify({"error": "Internal server error"}), 500


@menu_bp.delete("/<int:item_id>")
@require_auth
@require_role(*MANAGER_ROLES)
def delete_menu_item_route(item_id: int):
    """
    Delete a menu item.

    Returns:
        200: deleted
        404: no such item
        409: item appears on orders (mark it unavailable instead)
    """
    try:
        menu_service.delete_menu_item(db.session, item_id)
        current_app.logger.info("Menu item %s deleted by user %s", item_id, g.current_user.id)
        return jsonify({"message": "Menu item deleted successfully"}), 200
    except ServiceError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to delete menu item")
        return jsonify({"error": "Internal server error"}), 500


@menu_bp.get("/categories")
@require_auth
def list_categories_route():
    try:
        return jsonify([c.to_dict() for c in menu_service.list_categories(db.session)]), 200
    except Exception:
        current_app.logger.exception("Failed to list categories")
        return jsonify({"error": "Internal server error"}), 500


@menu_bp.post("/categories")
@require_auth
@require_role(*MANAGER_ROLES)
def create_category_route():
    """Create a category: {"category_name": "Tea", "description": "..."}."""
    try:
        data = request.get_json(silent=True) or {}
        category = menu_service.create_category(db.session, data)
        current_app.logger.info("Category %s created by user %s", category.id, g.current_user.id)
        return jsonify(category.to_dict()), 201
    except ServiceError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to create category")
        return jsonify({"error": "Internal server error"}), 500
