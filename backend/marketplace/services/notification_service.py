# Overview: Fire-and-forget dispatcher for order lifecycle notifications.

"""
Notification Dispatcher

The order engine calls notify() after its transaction has committed. Delivery
is best effort: it runs on a small worker pool (NOTIFICATIONS_ASYNC=True) or
inline (False, for tests and CLI use), writes one Notification row per
recipient and logs the event. A failed delivery is logged and dropped; it
never reaches the caller and never undoes an order transition.
"""

from __future__ import annotations

import threading
from concurrent.futures import ThreadPoolExecutor
from typing import Iterable

from flask import Flask, current_app

from ..extensions import db
from ..errors import NotFound
from ..models import Notification
from ..time_utils import utcnow


ORDER_PLACED = "order.placed"
ORDER_CONFIRMED = "order.confirmed"
ORDER_SHIPPED = "order.shipped"
ORDER_DELIVERED = "order.delivered"
ORDER_CANCELLED = "order.cancelled"

MESSAGES = {
    ORDER_PLACED: "New order #{order_id} includes items you sell",
    ORDER_CONFIRMED: "Your order #{order_id} was confirmed",
    ORDER_SHIPPED: "Your order #{order_id} has shipped",
    ORDER_DELIVERED: "Your order #{order_id} was delivered",
    ORDER_CANCELLED: "Order #{order_id} was cancelled",
}

_executor: ThreadPoolExecutor | None = None
_executor_lock = threading.Lock()


def _get_executor() -> ThreadPoolExecutor:
    global _executor
    with _executor_lock:
        if _executor is None:
            _executor = ThreadPoolExecutor(max_workers=2, thread_name_prefix="order-notify")
        return _executor


def notify(event: str, order_id: int, audience_user_ids: Iterable[int]) -> None:
    """Queue a notification for each recipient. Never raises on delivery failure."""
    audience = sorted({uid for uid in audience_user_ids if uid is not None})
    if not audience:
        return

    app = current_app._get_current_object()
    if app.config.get("NOTIFICATIONS_ASYNC", True):
        _get_executor().submit(_deliver_in_context, app, event, order_id, audience)
    else:
        _deliver(event, order_id, audience)


def _deliver_in_context(app: Flask, event: str, order_id: int, audience: list[int]) -> None:
    with app.app_context():
        _deliver(event, order_id, audience)


def _deliver(event: str, order_id: int, audience: list[int]) -> None:
    try:
        message = MESSAGES.get(event, "Order #{order_id} updated").format(order_id=order_id)
        for user_id in audience:
            db.session.add(Notification(
                user_id=user_id,
                order_id=order_id,
                event=event,
                message=message,
            ))
        db.session.commit()
        current_app.logger.info("Delivered %s for order %s to users %s", event, order_id, audience)
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Failed to deliver %s notification for order %s", event, order_id)


def list_notifications(user_id: int, *, unread_only: bool = False, limit: int = 50) -> list[Notification]:
    q = db.session.query(Notification).filter_by(user_id=user_id)
    if unread_only:
        q = q.filter(Notification.read_at.is_(None))
    return q.order_by(Notification.created_at.desc(), Notification.id.desc()).limit(limit).all()


def mark_read(user_id: int, notification_id: int) -> Notification:
    """
    Mark one of the user's notifications as read. Idempotent.

    Another user's notification is reported as NotFound.
    """
    note = db.session.query(Notification).filter_by(id=notification_id, user_id=user_id).first()
    if note is None:
        raise NotFound(f"Notification {notification_id} not found")
    if note.read_at is None:
        note.read_at = utcnow()
        db.session.commit()
    return note


def mark_all_read(user_id: int) -> int:
    count = (
        db.session.query(Notification)
        .filter(Notification.user_id == user_id, Notification.read_at.is_(None))
        .update({Notification.read_at: utcnow()}, synchronize_session="fetch")
    )
    db.session.commit()
    return count
