# Overview: Vendor item listings and categories.

from __future__ import annotations

from ..extensions import db
from ..errors import NotFound, ValidationFailed
from ..models import Category, Item


def _non_negative_int(data: dict, key: str, *, required: bool) -> int | None:
    value = data.get(key)
    if value is None:
        if required:
            raise ValidationFailed(f"{key} is required")
        return None
    if isinstance(value, bool) or not isinstance(value, int) or value < 0:
        raise ValidationFailed(f"{key} must be a non-negative integer")
    return value


def create_category(title: str) -> Category:
    title = (title or "").strip()
    if not title:
        raise ValidationFailed("title is required")
    existing = db.session.query(Category).filter_by(title=title).first()
    if existing:
        return existing
    category = Category(title=title)
    db.session.add(category)
    db.session.commit()
    return category


def create_item(vendor_id: int, data: dict) -> Item:
    """
    List a new item for vendor_id.

    Initial stock is part of the listing; every later change goes through
    inventory_service.
    """
    name = (data.get("name") or "").strip()
    if not name:
        raise ValidationFailed("name is required")

    price_cents = _non_negative_int(data, "price_cents", required=True)
    stock = _non_negative_int(data, "stock", required=False) or 0

    category_id = data.get("category_id")
    if category_id is not None and db.session.get(Category, category_id) is None:
        raise NotFound(f"Category {category_id} not found")

    item = Item(
        vendor_id=vendor_id,
        category_id=category_id,
        name=name,
        description=data.get("description"),
        price_cents=price_cents,
        stock=stock,
    )
    db.session.add(item)
    db.session.commit()
    return item


def get_item(item_id: int) -> Item:
    item = db.session.get(Item, item_id)
    if item is None:
        raise NotFound(f"Item {item_id} not found")
    return item
