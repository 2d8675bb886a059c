# Overview: Order lifecycle engine; checkout and guarded status transitions.

"""
Order Lifecycle Service

================================================================================
STATE MACHINE
================================================================================

    PENDING -> CONFIRMED -> SHIPPED -> DELIVERED
       |           |
       +-----------+--> CANCELLED

    PENDING:    placed at checkout, stock reserved
    CONFIRMED:  a vendor on the order acknowledged it, stock still held
    SHIPPED:    in transit; can no longer be cancelled
    DELIVERED:  terminal
    CANCELLED:  terminal, stock released

RULES:
1. Only adjacent forward moves (PENDING -> SHIPPED is rejected).
2. Terminal states never change again.
3. Prices, discount and totals are frozen at checkout.
4. Every status change is "read, check, write" on one locked row, decided by a
   conditional UPDATE on (id, status). The loser of a race re-reads: if the
   order already sits where the loser wanted it, the call is a no-op;
   otherwise it gets Conflict.
5. Authorization (owner / vendor-on-order / admin) is checked on the same
   locked row that the transition check reads.

Notifications are sent after commit and never block or fail a transition.
================================================================================
"""

from __future__ import annotations

import math
import re
from typing import Callable

from flask import current_app
from sqlalchemy import or_

from ..extensions import db
from ..errors import (
    Conflict,
    InvalidTransition,
    MarketplaceError,
    NotFound,
    ValidationFailed,
)
from ..guard import (
    Identity,
    authorize_order_fulfiller,
    authorize_order_owner,
    authorize_order_viewer,
)
from ..models import Order, OrderEvent, OrderLine, Role
from ..models.orders import (
    PENDING,
    CONFIRMED,
    SHIPPED,
    DELIVERED,
    CANCELLED,
    VALID_STATUSES,
    TERMINAL_STATUSES,
    PAYMENT_METHODS,
)
from ..time_utils import utcnow
from . import cart_service, coupon_service, inventory_service, notification_service
from .concurrency import conditional_update, lock_for_update, run_with_retry


ALLOWED_TRANSITIONS: dict[str, set[str]] = {
    PENDING: {CONFIRMED, CANCELLED},
    CONFIRMED: {SHIPPED, CANCELLED},
    SHIPPED: {DELIVERED},
    DELIVERED: set(),
    CANCELLED: set(),
}

TIMESTAMP_FIELDS = {
    CONFIRMED: "confirmed_at",
    SHIPPED: "shipped_at",
    DELIVERED: "delivered_at",
    CANCELLED: "cancelled_at",
}

NOTIFY_EVENTS = {
    CONFIRMED: notification_service.ORDER_CONFIRMED,
    SHIPPED: notification_service.ORDER_SHIPPED,
    DELIVERED: notification_service.ORDER_DELIVERED,
    CANCELLED: notification_service.ORDER_CANCELLED,
}

PHONE_RE = re.compile(r"^\+?\d{10,15}$")
ADDRESS_REQUIRED_FIELDS = ("city", "street")


def validate_status(status: str | None) -> str:
    """Normalize a status string; ValidationFailed if it is not a known state."""
    if status is not None and not isinstance(status, str):
        raise ValidationFailed("status must be a string")
    normalized = (status or "").strip().upper()
    if normalized not in VALID_STATUSES:
        raise ValidationFailed(
            f"Invalid status '{status}'. Must be one of: {', '.join(sorted(VALID_STATUSES))}"
        )
    return normalized


def can_transition(from_status: str, to_status: str) -> bool:
    """True when to_status is directly reachable from from_status."""
    return to_status in ALLOWED_TRANSITIONS.get(from_status, set())


def validate_checkout_input(
    payment_method, contact_phone, address, coupon_code=None
) -> tuple[str, str, dict, str | None]:
    """
    Shape checks done before anything touches the cart or inventory.

    Returns normalized (payment_method, contact_phone, address, coupon_code).
    """
    method = (payment_method or "").strip().lower() if isinstance(payment_method, str) else ""
    if method not in PAYMENT_METHODS:
        raise ValidationFailed(
            f"paymentMethod must be one of: {', '.join(sorted(PAYMENT_METHODS))}"
        )

    phone = re.sub(r"[\s-]", "", contact_phone) if isinstance(contact_phone, str) else ""
    if not PHONE_RE.match(phone):
        raise ValidationFailed("contactPhone must be 10 to 15 digits")

    if not isinstance(address, dict):
        raise ValidationFailed("address must be an object")
    cleaned = {}
    for key, value in address.items():
        if value is None:
            continue
        if isinstance(value, bool) or not isinstance(value, (str, int)):
            raise ValidationFailed(f"address.{key} must be a string")
        cleaned[str(key)] = str(value).strip()
    missing = [f for f in ADDRESS_REQUIRED_FIELDS if not cleaned.get(f)]
    if missing:
        raise ValidationFailed(f"address is missing: {', '.join(missing)}")

    if coupon_code is not None and not isinstance(coupon_code, str):
        raise ValidationFailed("coupon must be a string")
    code = coupon_code.strip() if coupon_code else None

    return method, phone, cleaned, code or None


# ==============================================================================
# CHECKOUT
# ==============================================================================

def checkout(
    identity: Identity,
    payment_method: str,
    contact_phone: str,
    address: dict,
    coupon_code: str | None = None,
) -> Order:
    """
    Turn the caller's cart into a PENDING order.

    Steps, all in one transaction:
    1. validate payment method / phone / address (400, nothing read yet)
    2. snapshot item name, vendor and unit price from the cart lines
    3. resolve the coupon against the subtotal (400 if unusable)
    4. reserve stock for every line (InsufficientStock aborts everything)
    5. insert order + lines + history row, empty the cart, commit

    On any error the transaction is rolled back: no stock moves, no order
    exists, the cart is unchanged. Vendors are notified after commit.
    """
    method, phone, shipping_address, coupon_code = validate_checkout_input(
        payment_method, contact_phone, address, coupon_code
    )
    owner_id = identity.user_id

    def _op():
        cart = cart_service.get_cart(owner_id)
        if not cart:
            raise ValidationFailed("Cart is empty")

        lines: list[OrderLine] = []
        for cart_line in cart:
            item = cart_line.item
            if item is None or not item.is_active:
                raise ValidationFailed(f"Item {cart_line.item_id} is no longer available")
            lines.append(OrderLine(
                item_id=item.id,
                vendor_id=item.vendor_id,
                item_name=item.name,
                quantity=cart_line.quantity,
                unit_price_cents=item.price_cents,
                line_total_cents=item.price_cents * cart_line.quantity,
            ))

        subtotal = sum(line.line_total_cents for line in lines)

        applied_code = None
        discount = 0
        if coupon_code:
            coupon, discount = coupon_service.resolve_coupon(coupon_code, subtotal)
            applied_code = coupon.code

        inventory_service.reserve(lines)

        now = utcnow()
        order = Order(
            owner_id=owner_id,
            status=PENDING,
            shipping_address=shipping_address,
            contact_phone=phone,
            payment_method=method,
            coupon_code=applied_code,
            subtotal_cents=subtotal,
            discount_cents=discount,
            total_cents=subtotal - discount,
            placed_at=now,
            lines=lines,
        )
        db.session.add(order)
        db.session.flush()

        db.session.add(OrderEvent(
            order_id=order.id,
            from_status=None,
            to_status=PENDING,
            actor_user_id=owner_id,
            occurred_at=now,
        ))
        cart_service.clear_cart(owner_id, commit=False)

        db.session.commit()
        return order

    try:
        order = run_with_retry(_op)
    except MarketplaceError:
        db.session.rollback()
        raise

    current_app.logger.info("Order %s placed by user %s (total %s cents)", order.id, owner_id, order.total_cents)
    notification_service.notify(notification_service.ORDER_PLACED, order.id, order.vendor_ids)
    return order


# ==============================================================================
# READS
# ==============================================================================

def _positive_int(value, default: int, name: str) -> int:
    if value is None or value == "":
        return default
    try:
        number = int(value)
    except (TypeError, ValueError):
        raise ValidationFailed(f"{name} must be a positive integer")
    if number < 1:
        raise ValidationFailed(f"{name} must be a positive integer")
    return number


def get_orders(identity: Identity, query: dict | None = None) -> dict:
    """
    Page through the orders visible to the caller.

    client -> orders they placed
    vendor -> orders they placed plus orders containing one of their lines
    admin  -> every order

    query: page (default 1), limit (default ORDERS_PAGE_SIZE, capped at
    ORDERS_MAX_PAGE_SIZE), status (optional filter).
    """
    query = query or {}
    page = _positive_int(query.get("page"), 1, "page")
    limit = min(
        _positive_int(query.get("limit"), current_app.config.get("ORDERS_PAGE_SIZE", 10), "limit"),
        current_app.config.get("ORDERS_MAX_PAGE_SIZE", 100),
    )

    q = db.session.query(Order)
    if identity.role is Role.VENDOR:
        sold = db.session.query(OrderLine.order_id).filter(OrderLine.vendor_id == identity.user_id)
        q = q.filter(or_(Order.owner_id == identity.user_id, Order.id.in_(sold)))
    elif identity.role is not Role.ADMIN:
        q = q.filter(Order.owner_id == identity.user_id)

    if query.get("status"):
        q = q.filter(Order.status == validate_status(query.get("status")))

    total = q.count()
    orders = (
        q.order_by(Order.placed_at.desc(), Order.id.desc())
        .offset((page - 1) * limit)
        .limit(limit)
        .all()
    )
    remaining = max(total - page * limit, 0)

    return {
        "orders": orders,
        "total": total,
        "remaining": remaining,
        "pagination": {
            "page": page,
            "limit": limit,
            "pages": math.ceil(total / limit) if total else 0,
            "next": page + 1 if remaining else None,
            "prev": page - 1 if page > 1 else None,
        },
    }


def get_order(order_id: int, identity: Identity) -> Order:
    """The order with its lines, if the caller may see it."""
    order = db.session.get(Order, order_id)
    if order is None:
        raise NotFound(f"Order {order_id} not found")
    authorize_order_viewer(identity, order)
    return order


def get_order_history(order_id: int, identity: Identity) -> list[OrderEvent]:
    get_order(order_id, identity)
    return (
        db.session.query(OrderEvent)
        .filter_by(order_id=order_id)
        .order_by(OrderEvent.id.asc())
        .all()
    )


# ==============================================================================
# TRANSITIONS
# ==============================================================================

def _transition(
    order_id: int,
    identity: Identity,
    target: str,
    *,
    authorize: Callable[[Identity, Order], None],
    allowed_from: set[str],
    idempotent: bool,
) -> Order:
    """
    Move one order to target under a row lock.

    Check order: order exists -> caller authorized on this order -> status
    precondition. With idempotent=True a call that finds the order already in
    target (non-terminal) returns it untouched: no history row, no
    notification.
    """
    def _op():
        order = lock_for_update(
            db.session.query(Order).filter_by(id=order_id).populate_existing()
        ).first()
        if order is None:
            raise NotFound(f"Order {order_id} not found")

        authorize(identity, order)

        current = order.status
        if idempotent and current == target and current not in TERMINAL_STATUSES:
            return order, None

        if current not in allowed_from or not can_transition(current, target):
            raise InvalidTransition(
                f"Cannot move order {order_id} from {current} to {target}",
                details={"status": current, "target": target},
            )

        if target == CANCELLED:
            inventory_service.release(order)

        now = utcnow()
        won = conditional_update(
            Order,
            Order.id == order_id,
            Order.status == current,
            values={Order.status: target, getattr(Order, TIMESTAMP_FIELDS[target]): now},
        )
        if not won:
            db.session.rollback()
            fresh = db.session.get(Order, order_id, populate_existing=True)
            if idempotent and fresh is not None and fresh.status == target:
                return fresh, None
            raise Conflict(
                f"Order {order_id} was changed by another request",
                details={"status": fresh.status if fresh else None},
            )

        db.session.add(OrderEvent(
            order_id=order_id,
            from_status=current,
            to_status=target,
            actor_user_id=identity.user_id,
            occurred_at=now,
        ))
        db.session.commit()
        return order, current

    try:
        order, previous = run_with_retry(_op)
    except MarketplaceError:
        db.session.rollback()
        raise

    if previous is not None:
        current_app.logger.info(
            "Order %s %s -> %s by user %s", order_id, previous, target, identity.user_id
        )
        _notify_transition(order, target, identity)
    return order


def _notify_transition(order: Order, target: str, identity: Identity) -> None:
    event = NOTIFY_EVENTS.get(target)
    if event is None:
        return
    if target == CANCELLED:
        audience = ({order.owner_id} | order.vendor_ids) - {identity.user_id}
    else:
        audience = {order.owner_id}
    notification_service.notify(event, order.id, audience)


def cancel_order(order_id: int, identity: Identity) -> Order:
    """
    Owner cancels a PENDING or CONFIRMED order; reserved stock is restored.

    A second cancel finds CANCELLED and raises InvalidTransition, so stock is
    never restored twice.
    """
    return _transition(
        order_id,
        identity,
        CANCELLED,
        authorize=authorize_order_owner,
        allowed_from={PENDING, CONFIRMED},
        idempotent=False,
    )


def confirm_order(order_id: int, identity: Identity) -> Order:
    """Vendor on the order (or admin) acknowledges a PENDING order."""
    return _transition(
        order_id,
        identity,
        CONFIRMED,
        authorize=authorize_order_fulfiller,
        allowed_from={PENDING},
        idempotent=True,
    )


def order_shipped(order_id: int, identity: Identity) -> Order:
    """Vendor on the order (or admin acting as delivery) ships a CONFIRMED order."""
    return _transition(
        order_id,
        identity,
        SHIPPED,
        authorize=authorize_order_fulfiller,
        allowed_from={CONFIRMED},
        idempotent=True,
    )


def edit_order_status(order_id: int, identity: Identity, target_status: str) -> Order:
    """
    Generic status edit for vendors on the order and admins.

    Only the next adjacent state (or CANCELLED from PENDING / CONFIRMED, which
    releases stock) is accepted. Setting the current non-terminal status again
    is a no-op.
    """
    target = validate_status(target_status)
    return _transition(
        order_id,
        identity,
        target,
        authorize=authorize_order_fulfiller,
        allowed_from=VALID_STATUSES - TERMINAL_STATUSES,
        idempotent=True,
    )
