from .auth import User, SessionToken
from .menu import Category, MenuItem
from .orders import Order, OrderItem, OrderStatus
from .discounts import Discount, OrderDiscount
from .payments import Payment
from .shifts import CashierShift

__all__ = [
    'User', 'SessionToken',
    'Category', 'MenuItem',
    'Order', 'OrderItem', 'OrderStatus',
    'Discount', 'OrderDiscount',
    'Payment',
    'CashierShift',
]
