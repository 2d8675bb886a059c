# Overview: Flask API routes for the caller's in-app notifications.

from flask import Blueprint, request, jsonify

from ..decorators import require_auth
from ..errors import MarketplaceError
from ..services import notification_service


notifications_bp = Blueprint("notifications", __name__, url_prefix="/api/notifications")


@notifications_bp.get("")
@require_auth
def list_notifications_route(identity):
    """Query: unread (true/false), limit (max 200)"""
    unread_only = request.args.get("unread", "").lower() == "true"
    limit = max(1, min(request.args.get("limit", 50, type=int), 200))
    notes = notification_service.list_notifications(identity.user_id, unread_only=unread_only, limit=limit)
    return jsonify({"notifications": [n.to_dict() for n in notes]}), 200


@notifications_bp.post("/<int:notification_id>/read")
@require_auth
def mark_read_route(notification_id: int, identity):
    try:
        note = notification_service.mark_read(identity.user_id, notification_id)
        return jsonify({"notification": note.to_dict()}), 200

    except MarketplaceError as e:
        return jsonify(e.to_dict()), e.status_code


@notifications_bp.post("/read-all")
@require_auth
def mark_all_read_route(identity):
    count = notification_service.mark_all_read(identity.user_id)
    return jsonify({"marked": count}), 200
