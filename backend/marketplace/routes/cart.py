# Overview: Flask API routes for the shopping cart; parses input and returns JSON responses.

from flask import Blueprint, request, jsonify, current_app

from ..decorators import require_auth
from ..errors import MarketplaceError
from ..services import cart_service


cart_bp = Blueprint("cart", __name__, url_prefix="/api/cart")


@cart_bp.get("")
@require_auth
def get_cart_route(identity):
    return jsonify(cart_service.cart_summary(identity.user_id)), 200


@cart_bp.post("")
@require_auth
def set_cart_line_route(identity):
    """Body: item_id, quantity (replaces the current quantity)"""
    try:
        data = request.get_json(silent=True) or {}
        item_id = data.get("item_id")
        quantity = data.get("quantity")

        if item_id is None or quantity is None:
            return jsonify({"error": True, "kind": "ValidationFailed",
                            "message": "item_id and quantity required"}), 400

        cart_service.set_cart_quantity(identity.user_id, item_id, quantity)
        return jsonify(cart_service.cart_summary(identity.user_id)), 200

    except MarketplaceError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to update cart")
        return jsonify({"error": "Internal server error"}), 500


@cart_bp.delete("/<int:item_id>")
@require_auth
def remove_cart_line_route(item_id: int, identity):
    removed = cart_service.remove_from_cart(identity.user_id, item_id)
    if not removed:
        return jsonify({"error": True, "kind": "NotFound",
                        "message": "Item is not in the cart"}), 404
    return jsonify(cart_service.cart_summary(identity.user_id)), 200
