from .business import Business
from .inventory import Product
from .contacts import Contact, ContactProductPrice
from .transactions import Transaction, TransactionLine, TransactionPayment

__all__ = [
    'Business',
    'Product',
    'Contact', 'ContactProductPrice',
    'Transaction', 'TransactionLine', 'TransactionPayment',
]
