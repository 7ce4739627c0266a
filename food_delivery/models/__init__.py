# food_delivery/models/__init__.py
from .user import User, Role, ADMIN_ROLES
from .restaurant import Restaurant, MenuItem
from .cart import Cart
from .order import Order, OrderItem, OrderStatus, PaymentMethod, PaymentStatus
from .discount import Discount, DiscountType
from .notification import Notification, NotificationType, NotificationPriority
from .review import Review

# Export all models
__all__ = [
    "ADMIN_ROLES",
    "Cart",
    "Discount",
    "DiscountType",
    "MenuItem",
    "Notification",
    "NotificationPriority",
    "NotificationType",
    "Order",
    "OrderItem",
    "OrderStatus",
    "PaymentMethod",
    "PaymentStatus",
    "Restaurant",
    "Review",
    "Role",
    "User",
]
