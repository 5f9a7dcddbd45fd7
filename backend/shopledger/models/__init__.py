from .auth import User, SessionToken
from .inventory import Product
from .sales import Transaction, TransactionLine

__all__ = [
    'User', 'SessionToken',
    'Product',
    'Transaction', 'TransactionLine',
]
