# Overview: Inventory ledger; the only writer of Item.stock.

"""
Inventory Ledger

Invariants:
- Item.stock is never negative (CHECK constraint + conditional updates).
- Only this module writes Item.stock.
- reserve() is all-or-nothing across every line of a checkout, whichever
  vendors the items belong to.
- release() is idempotent per order; the order's own status says whether
  its stock is still held.

Concurrency:
- Every write is "UPDATE items SET stock = stock +/- q WHERE id = ? [AND stock >= q]",
  so two checkouts racing on one item cannot both take the last unit.
- Item rows are locked in id order; checkouts on unrelated items never
  touch each other's rows.
"""

from __future__ import annotations

from typing import Iterable, Protocol

from ..extensions import db
from ..errors import Forbidden, InsufficientStock, NotFound, ValidationFailed
from ..models import Item, Order
from ..models.orders import CONFIRMED, PENDING
from .concurrency import conditional_update, lock_for_update, run_with_retry


# Orders in these states still hold the stock reserved at checkout
HOLDING_STATUSES = {PENDING, CONFIRMED}


class StockLine(Protocol):
    item_id: int
    quantity: int


def _requested_quantities(lines: Iterable[StockLine]) -> dict[int, int]:
    requested: dict[int, int] = {}
    for line in lines:
        if not isinstance(line.quantity, int) or line.quantity <= 0:
            raise ValidationFailed(f"Invalid quantity for item {line.item_id}")
        requested[line.item_id] = requested.get(line.item_id, 0) + line.quantity
    return requested


def get_stock(item_id: int) -> int:
    stock = db.session.query(Item.stock).filter_by(id=item_id).scalar()
    if stock is None:
        raise NotFound(f"Item {item_id} not found")
    return int(stock)


def reserve(lines: Iterable[StockLine]) -> None:
    """
    Take stock for every line of one checkout.

    Pass 1 locks the item rows and collects every shortfall; nothing is written
    unless every line fits. Pass 2 decrements with conditional updates. If a
    concurrent writer slips in between (databases without FOR UPDATE), the
    conditional update fails and InsufficientStock is raised; the caller must
    roll back, which undoes any decrement already made in this batch.

    Does not commit.

    Raises:
        InsufficientStock: details list item_id / requested / available per short item
        NotFound: an item id does not exist
    """
    requested = _requested_quantities(lines)
    item_ids = sorted(requested)
    if not item_ids:
        return

    items = {
        item.id: item
        for item in lock_for_update(
            db.session.query(Item)
            .filter(Item.id.in_(item_ids))
            .order_by(Item.id)
            .populate_existing()
        ).all()
    }

    shortfalls = []
    for item_id in item_ids:
        item = items.get(item_id)
        if item is None:
            raise NotFound(f"Item {item_id} not found")
        if item.stock < requested[item_id]:
            shortfalls.append({
                "item_id": item_id,
                "requested": requested[item_id],
                "available": item.stock,
            })

    if shortfalls:
        raise InsufficientStock(shortfalls)

    for item_id in item_ids:
        qty = requested[item_id]
        taken = conditional_update(
            Item,
            Item.id == item_id,
            Item.stock >= qty,
            values={Item.stock: Item.stock - qty},
        )
        if not taken:
            raise InsufficientStock([{
                "item_id": item_id,
                "requested": qty,
                "available": get_stock(item_id),
            }])


def release(order: Order) -> bool:
    """
    Give back the stock an order reserved at checkout.

    No-op (returns False) unless the order is still PENDING or CONFIRMED, so
    calling it for an already cancelled order never restores twice. The
    caller changes the status in the same transaction.

    Does not commit.
    """
    if order.status not in HOLDING_STATUSES:
        return False

    restored: dict[int, int] = {}
    for line in order.lines:
        restored[line.item_id] = restored.get(line.item_id, 0) + line.quantity

    for item_id in sorted(restored):
        conditional_update(
            Item,
            Item.id == item_id,
            values={Item.stock: Item.stock + restored[item_id]},
        )
    return True


def restock(item_id: int, quantity: int, identity) -> Item:
    """
    Add stock to an item. Vendor owner or admin only.

    Raises:
        ValidationFailed: quantity not a positive integer
        NotFound: item does not exist
        Forbidden: caller is neither the owning vendor nor an admin
    """
    if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity <= 0:
        raise ValidationFailed("quantity must be a positive integer")

    def _op():
        item = lock_for_update(db.session.query(Item).filter_by(id=item_id)).first()
        if not item:
            raise NotFound(f"Item {item_id} not found")
        if not identity.is_admin and item.vendor_id != identity.user_id:
            raise Forbidden("Access denied: item belongs to another vendor")

        conditional_update(
            Item,
            Item.id == item_id,
            values={Item.stock: Item.stock + quantity},
        )
        db.session.commit()
        db.session.refresh(item)
        return item

    try:
        return run_with_retry(_op)
    except (NotFound, Forbidden):
        db.session.rollback()
        raise
