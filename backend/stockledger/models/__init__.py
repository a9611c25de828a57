from .tenancy import Business
from .catalog import Category, Supplier
from .inventory import Product, ProductAnalytics
from .orders import Order, ProductOrder

__all__ = [
    'Business',
    'Category', 'Supplier',
    'Product', 'ProductAnalytics',
    'Order', 'ProductOrder',
]
