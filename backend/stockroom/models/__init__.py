from .inventory import Product, StockTransaction
from .auth import User, SessionToken, ROLE_ADMIN, ROLE_USER, ROLES

__all__ = [
    'Product', 'StockTransaction',
    'User', 'SessionToken', 'ROLE_ADMIN', 'ROLE_USER', 'ROLES',
]
