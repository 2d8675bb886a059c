from .users import Role, User, SessionToken, VendorRequest
from .catalog import Category, Item, CartLine, Coupon
from .orders import Order, OrderLine, OrderEvent
from .notifications import Notification
from .security import SecurityEvent

__all__ = [
    'Role', 'User', 'SessionToken', 'VendorRequest',
    'Category', 'Item', 'CartLine', 'Coupon',
    'Order', 'OrderLine', 'OrderEvent',
    'Notification',
    'SecurityEvent',
]
