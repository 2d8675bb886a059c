# Overview: Flask API routes for account moderation, vendor requests, coupons, categories and the security log; admin only.

from flask import Blueprint, request, jsonify, current_app

from ..decorators import require_auth, require_admin
from ..errors import MarketplaceError
from ..services import (
    catalog_service,
    coupon_service,
    moderation_service,
    security_service,
    vendor_request_service,
)


admin_bp = Blueprint("admin", __name__, url_prefix="/api/admin")


@admin_bp.get("/users")
@require_auth
@require_admin
def list_users_route(identity):
    """Query: role, banned (true/false)"""
    try:
        banned = request.args.get("banned")
        users = moderation_service.list_users(
            role=request.args.get("role"),
            banned=None if banned is None else banned.lower() == "true",
        )
        return jsonify({"users": [u.to_dict() for u in users]}), 200

    except MarketplaceError as e:
        return jsonify(e.to_dict()), e.status_code


@admin_bp.post("/users/<int:user_id>/ban")
@require_auth
@require_admin
def ban_user_route(user_id: int, identity):
    try:
        data = request.get_json(silent=True) or {}
        user = moderation_service.ban_user(user_id, identity.user_id, data.get("reason"))
        return jsonify({"user": user.to_dict()}), 200

    except MarketplaceError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to ban user")
        return jsonify({"error": "Internal server error"}), 500


@admin_bp.post("/users/<int:user_id>/unban")
@require_auth
@require_admin
def unban_user_route(user_id: int, identity):
    try:
        user = moderation_service.unban_user(user_id, identity.user_id)
        return jsonify({"user": user.to_dict()}), 200

    except MarketplaceError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to unban user")
        return jsonify({"error": "Internal server error"}), 500


@admin_bp.post("/users/<int:user_id>/role")
@require_auth
@require_admin
def change_role_route(user_id: int, identity):
    """Body: role (client | vendor | admin)"""
    try:
        data = request.get_json(silent=True) or {}
        user = moderation_service.change_role(user_id, data.get("role"), identity.user_id)
        return jsonify({"user": user.to_dict()}), 200

    except MarketplaceError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to change user role")
        return jsonify({"error": "Internal server error"}), 500


@admin_bp.post("/users/<int:user_id>/revoke-sessions")
@require_auth
@require_admin
def revoke_sessions_route(user_id: int, identity):
    try:
        count = moderation_service.revoke_user_sessions(user_id, identity.user_id)
        return jsonify({"revoked": count}), 200

    except MarketplaceError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to revoke user sessions")
        return jsonify({"error": "Internal server error"}), 500


@admin_bp.post("/coupons")
@require_auth
@require_admin
def create_coupon_route(identity):
    """Body: code, discount_type, discount_value, min_subtotal_cents, starts_at, expires_at"""
    try:
        coupon = coupon_service.create_coupon(request.get_json(silent=True) or {})
        return jsonify({"coupon": coupon.to_dict()}), 201

    except MarketplaceError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to create coupon")
        return jsonify({"error": "Internal server error"}), 500


@admin_bp.post("/categories")
@require_auth
@require_admin
def create_category_route(identity):
    """Body: title. Returns the existing category when the title is taken."""
    try:
        data = request.get_json(silent=True) or {}
        category = catalog_service.create_category(data.get("title"))
        return jsonify({"category": category.to_dict()}), 201

    except MarketplaceError as e:
        return jsonify(e.to_dict()), e.status_code


@admin_bp.get("/security-events")
@require_auth
@require_admin
def list_security_events_route(identity):
    """Query: user_id, event_type, limit (max 500)"""
    try:
        limit = min(request.args.get("limit", 100, type=int), 500)
        events = security_service.get_security_events(
            user_id=request.args.get("user_id", type=int),
            event_type=request.args.get("event_type"),
            limit=limit,
        )
        return jsonify({"events": [e.to_dict() for e in events]}), 200

    except Exception:
        current_app.logger.exception("Failed to list security events")
        return jsonify({"error": "Internal server error"}), 500


@admin_bp.get("/vendor-requests")
@require_auth
@require_admin
def list_vendor_requests_route(identity):
    """Query: status (PENDING by default, empty for all)"""
    try:
        requests = vendor_request_service.list_requests(status=request.args.get("status", "PENDING"))
        return jsonify({"requests": [r.to_dict() for r in requests]}), 200

    except MarketplaceError as e:
        return jsonify(e.to_dict()), e.status_code


@admin_bp.post("/vendor-requests/<int:request_id>/approve")
@require_auth
@require_admin
def approve_vendor_request_route(request_id: int, identity):
    """Body: note (optional). Promotes the requesting client to vendor."""
    try:
        data = request.get_json(silent=True)
        note = vendor_request_service.parse_review_note(data if isinstance(data, dict) else {})
        vendor_request = vendor_request_service.approve_request(request_id, identity.user_id, note)
        return jsonify({"request": vendor_request.to_dict()}), 200

    except MarketplaceError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to approve vendor request")
        return jsonify({"error": "Internal server error"}), 500


@admin_bp.post("/vendor-requests/<int:request_id>/reject")
@require_auth
@require_admin
def reject_vendor_request_route(request_id: int, identity):
    """Body: note (optional)"""
    try:
        data = request.get_json(silent=True)
        note = vendor_request_service.parse_review_note(data if isinstance(data, dict) else {})
        vendor_request = vendor_request_service.reject_request(request_id, identity.user_id, note)
        return jsonify({"request": vendor_request.to_dict()}), 200

    except MarketplaceError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to reject vendor request")
        return jsonify({"error": "Internal server error"}), 500
