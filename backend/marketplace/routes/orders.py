# Overview: Flask API routes for orders; parses input and returns JSON responses.

# backend/marketplace/routes/orders.py
"""Order API routes. Every route runs behind the access guard."""

from flask import Blueprint, request, jsonify, current_app

from ..decorators import require_auth, require_role, log_access_denied
from ..errors import Forbidden, MarketplaceError
from ..models import Role
from ..services import order_service


orders_bp = Blueprint("orders", __name__, url_prefix="/api/orders")


def _error(e: MarketplaceError, identity):
    if isinstance(e, Forbidden):
        log_access_denied(identity, e.message)
    return jsonify(e.to_dict()), e.status_code


@orders_bp.get("")
@require_auth
def list_orders_route(identity):
    """
    Orders visible to the caller, newest first.

    Query: page, limit, status
    """
    try:
        result = order_service.get_orders(identity, request.args.to_dict())
        orders = [o.to_dict() for o in result["orders"]]
        return jsonify({
            "length": len(orders),
            "total": result["total"],
            "remaining": result["remaining"],
            "pagination": result["pagination"],
            "orders": orders,
        }), 200

    except MarketplaceError as e:
        return _error(e, identity)
    except Exception:
        current_app.logger.exception("Failed to list orders")
        return jsonify({"error": "Internal server error"}), 500


@orders_bp.get("/<int:order_id>")
@require_auth
def get_order_route(order_id: int, identity):
    try:
        order = order_service.get_order(order_id, identity)
        return jsonify({"order": order.to_dict()}), 200

    except MarketplaceError as e:
        return _error(e, identity)
    except Exception:
        current_app.logger.exception("Failed to load order")
        return jsonify({"error": "Internal server error"}), 500


@orders_bp.get("/<int:order_id>/history")
@require_auth
def order_history_route(order_id: int, identity):
    try:
        events = order_service.get_order_history(order_id, identity)
        return jsonify({"events": [e.to_dict() for e in events]}), 200

    except MarketplaceError as e:
        return _error(e, identity)
    except Exception:
        current_app.logger.exception("Failed to load order history")
        return jsonify({"error": "Internal server error"}), 500


@orders_bp.post("/checkout")
@require_auth
def checkout_route(identity):
    """
    Place an order from the caller's cart.

    Body: paymentMethod, contactPhone, address {city, street, ...}, coupon (optional)
    """
    try:
        data = request.get_json(silent=True) or {}
        order = order_service.checkout(
            identity,
            payment_method=data.get("paymentMethod"),
            contact_phone=data.get("contactPhone"),
            address=data.get("address"),
            coupon_code=data.get("coupon"),
        )
        return jsonify({"order": order.to_dict(), "create": True}), 201

    except MarketplaceError as e:
        return _error(e, identity)
    except Exception:
        current_app.logger.exception("Failed to checkout")
        return jsonify({"error": "Internal server error"}), 500


@orders_bp.post("/<int:order_id>/cancel")
@require_auth
def cancel_order_route(order_id: int, identity):
    """Owner only. PENDING or CONFIRMED orders."""
    try:
        order = order_service.cancel_order(order_id, identity)
        return jsonify({"order": order.to_dict(), "cancelled": True}), 200

    except MarketplaceError as e:
        return _error(e, identity)
    except Exception:
        current_app.logger.exception("Failed to cancel order")
        return jsonify({"error": "Internal server error"}), 500


@orders_bp.patch("/<int:order_id>/status")
@require_auth
@require_role(Role.VENDOR, Role.ADMIN)
def edit_order_status_route(order_id: int, identity):
    """
    Body: status

    Vendor with a line in the order, or admin.
    """
    try:
        data = request.get_json(silent=True) or {}
        order = order_service.edit_order_status(order_id, identity, data.get("status"))
        return jsonify({"order": order.to_dict(), "update": True}), 200

    except MarketplaceError as e:
        return _error(e, identity)
    except Exception:
        current_app.logger.exception("Failed to edit order status")
        return jsonify({"error": "Internal server error"}), 500


@orders_bp.post("/<int:order_id>/confirm")
@require_auth
@require_role(Role.VENDOR, Role.ADMIN)
def confirm_order_route(order_id: int, identity):
    try:
        order = order_service.confirm_order(order_id, identity)
        return jsonify({
            "order": order.to_dict(),
            "update": True,
            "message": "Order confirmed",
        }), 200

    except MarketplaceError as e:
        return _error(e, identity)
    except Exception:
        current_app.logger.exception("Failed to confirm order")
        return jsonify({"error": "Internal server error"}), 500


@orders_bp.post("/<int:order_id>/ship")
@require_auth
@require_role(Role.VENDOR, Role.ADMIN)
def ship_order_route(order_id: int, identity):
    try:
        order = order_service.order_shipped(order_id, identity)
        return jsonify({
            "order": order.to_dict(),
            "update": True,
            "message": "Order shipped",
        }), 200

    except MarketplaceError as e:
        return _error(e, identity)
    except Exception:
        current_app.logger.exception("Failed to ship order")
        return jsonify({"error": "Internal server error"}), 500
