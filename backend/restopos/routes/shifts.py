# Overview: Flask API routes for cashier shifts; parses input and returns JSON responses.

"""
Cashier Shift API Routes

DESIGN:
- One active shift per user; starting a second one is a 409
- Ending records closing cash; expected balance and discrepancy are derived
- Sales totals are maintained by payment recording, never by these routes

SECURITY:
- cashier: start/end/view own shift
- supervisor, owner: any shift, list and adjust
"""

from flask import Blueprint, request, jsonify, g, current_app

from ..extensions import db
from ..models.auth import MANAGER_ROLES, VALID_ROLES
from ..services import shift_service
from ..validation import ServiceError, error_response, parse_bool, parse_datetime, parse_int
from ..decorators import forbid_other_user, require_auth, require_role


shifts_bp = Blueprint("shifts", __name__, url_prefix="/api/shifts")

OWN_SHIFT_ONLY = "Cashiers can only manage their own shift"


@shifts_bp.post("/start")
@require_auth
@require_role(*VALID_ROLES)
def start_shift_route():
    """
    Start a shift.

    Request body:
    {
        "user_id": 3,             (optional, defaults to the caller)
        "opening_cash": "100.00"
    }

    Returns:
        201: shift
        409: user already has an active shift
    """
    try:
        data = request.get_json(silent=True) or {}
        user_id = parse_int(data.get("user_id", g.current_user.id), "user_id", minimum=1)

        denied = forbid_other_user(user_id, OWN_SHIFT_ONLY)
        if denied:
            return denied

        shift = shift_service.start_shift(db.session, user_id, data.get("opening_cash"))
        current_app.logger.info("Shift %s started for user %s (opening %s)", shift.id, user_id, shift.opening_cash)
        return jsonify(shift.to_dict()), 201

    except ServiceError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to start shift")
        return jsonify({"error": "Internal server error"}), 500


@shifts_bp.put("/end/<int:shift_id>")
@require_auth
@require_role(*VALID_ROLES)
def end_shift_route(shift_id: int):
    """End an active shift: {"closing_cash": "150.00", "notes": "..."}."""
    try:
        data = request.get_json(silent=True) or {}

        denied = forbid_other_user(shift_service.get_shift(db.session, shift_id).user_id, OWN_SHIFT_ONLY)
        if denied:
            return denied

        shift = shift_service.end_shift(db.session, shift_id, data.get("closing_cash"), notes=data.get("notes"))
        body = shift.to_dict()
        current_app.logger.info(
            "Shift %s ended (expected %s, closing %s, discrepancy %s)",
            shift.id, body["expected_cash_balance"], body["closing_cash"], body["discrepancy"],
        )
        return jsonify(body), 200

    except ServiceError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to end shift")
        return jsonify({"error": "Internal server error"}), 500


@shifts_bp.get("/<int:shift_id>")
@require_auth
@require_role(*VALID_ROLES)
def get_shift_route(shift_id: int):
    try:
        shift = shift_service.get_shift(db.session, shift_id)
        denied = forbid_other_user(shift.user_id, OWN_SHIFT_ONLY)
        if denied:
            return denied
        return jsonify(shift.to_dict()), 200
    except ServiceError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to get shift")
        return jsonify({"error": "Internal server error"}), 500


@shifts_bp.get("")
@require_auth
@require_role(*MANAGER_ROLES)
def list_shifts_route():
    """List shifts newest-first; filters: ?user_id=, ?start_date=, ?end_date=, ?active=true."""
    try:
        shifts = shift_service.list_shifts(
            db.session,
            user_id=parse_int(request.args.get("user_id"), "user_id", required=False),
            start_date=parse_datetime(request.args.get("start_date"), "start_date"),
            end_date=parse_datetime(request.args.get("end_date"), "end_date", end_of_day=True),
            active_only=parse_bool(request.args.get("active"), "active") or False,
        )
        return jsonify([s.to_dict() for s in shifts]), 200
    except ServiceError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to list shifts")
        return jsonify({"error": "Internal server error"}), 500


@shifts_bp.put("/<int:shift_id>")
@require_auth
@require_role(*MANAGER_ROLES)
def adjust_shift_route(shift_id: int):
    """
    Supervisor correction of a shift.

    Request body (all optional): opening_cash, closing_cash, cash_in,
    cash_out, reconciled, notes.
    """
    try:
        data = request.get_json(silent=True) or {}
        shift = shift_service.adjust_shift(
            db.session,
            shift_id,
            opening_cash=data.get("opening_cash"),
            closing_cash=data.get("closing_cash"),
            cash_in=data.get("cash_in"),
            cash_out=data.get("cash_out"),
            reconciled=data.get("reconciled"),
            notes=data.get("notes"),
        )
        current_app.logger.info("Shift %s adjusted by user %s", shift_id, g.current_user.id)
        return jsonify(shift.to_dict()), 200
    except ServiceError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to adjust shift")
        return jsonify({"error": "Internal server error"}), 500
