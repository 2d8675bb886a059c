# Overview: Shopping cart; the source of line items for checkout.

from __future__ import annotations

from ..extensions import db
from ..errors import NotFound, ValidationFailed
from ..models import CartLine, Item


MAX_LINE_QUANTITY = 1000


def get_cart(user_id: int) -> list[CartLine]:
    return (
        db.session.query(CartLine)
        .filter_by(user_id=user_id)
        .order_by(CartLine.id.asc())
        .all()
    )


def cart_summary(user_id: int) -> dict:
    lines = get_cart(user_id)
    subtotal = sum(line.item.price_cents * line.quantity for line in lines if line.item)
    return {
        "lines": [line.to_dict() for line in lines],
        "subtotal_cents": subtotal,
    }


def set_cart_quantity(user_id: int, item_id: int, quantity: int) -> CartLine:
    """
    Put quantity units of an item in the cart, replacing any previous quantity.

    The cart holds no stock; availability is only checked at checkout.
    """
    if isinstance(quantity, bool) or not isinstance(quantity, int):
        raise ValidationFailed("quantity must be an integer")
    if quantity <= 0 or quantity > MAX_LINE_QUANTITY:
        raise ValidationFailed(f"quantity must be between 1 and {MAX_LINE_QUANTITY}")

    item = db.session.query(Item).filter_by(id=item_id).first()
    if not item or not item.is_active:
        raise NotFound(f"Item {item_id} not found")

    line = db.session.query(CartLine).filter_by(user_id=user_id, item_id=item_id).first()
    if line:
        line.quantity = quantity
    else:
        line = CartLine(user_id=user_id, item_id=item_id, quantity=quantity)
        db.session.add(line)

    db.session.commit()
    return line


def remove_from_cart(user_id: int, item_id: int) -> bool:
    deleted = db.session.query(CartLine).filter_by(user_id=user_id, item_id=item_id).delete()
    db.session.commit()
    return deleted > 0


def clear_cart(user_id: int, *, commit: bool = True) -> int:
    deleted = db.session.query(CartLine).filter_by(user_id=user_id).delete(synchronize_session="fetch")
    if commit:
        db.session.commit()
    return deleted
