from .auth import User, SessionToken
from .inventory import Supplier, Product, StockLog, PriceHistory
from .sales import Sale
from .purchasing import PurchaseOrder, PurchaseOrderItem

__all__ = [
    'User', 'SessionToken',
    'Supplier', 'Product', 'StockLog', 'PriceHistory',
    'Sale',
    'PurchaseOrder', 'PurchaseOrderItem',
]
