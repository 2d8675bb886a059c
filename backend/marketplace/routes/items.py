# Overview: Flask API routes for vendor items; parses input and returns JSON responses.

from flask import Blueprint, request, jsonify, current_app

from ..decorators import require_auth, require_role
from ..errors import MarketplaceError
from ..models import Role
from ..services import catalog_service, inventory_service


items_bp = Blueprint("items", __name__, url_prefix="/api/items")


@items_bp.post("")
@require_auth
@require_role(Role.VENDOR)
def create_item_route(identity):
    """
    List a new item owned by the calling vendor.

    Body: name, price_cents, stock (optional), description, category_id
    """
    try:
        item = catalog_service.create_item(identity.user_id, request.get_json(silent=True) or {})
        return jsonify({"item": item.to_dict()}), 201

    except MarketplaceError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to create item")
        return jsonify({"error": "Internal server error"}), 500


@items_bp.get("/<int:item_id>")
def get_item_route(item_id: int):
    try:
        return jsonify({"item": catalog_service.get_item(item_id).to_dict()}), 200
    except MarketplaceError as e:
        return jsonify(e.to_dict()), e.status_code


@items_bp.post("/<int:item_id>/restock")
@require_auth
@require_role(Role.VENDOR, Role.ADMIN)
def restock_item_route(item_id: int, identity):
    """Body: quantity (> 0). Owning vendor or admin."""
    try:
        data = request.get_json(silent=True) or {}
        item = inventory_service.restock(item_id, data.get("quantity"), identity)
        return jsonify({"item": item.to_dict()}), 200

    except MarketplaceError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to restock item")
        return jsonify({"error": "Internal server error"}), 500
