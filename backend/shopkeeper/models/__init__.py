from .inventory import Category, Product, PriceHistory, DEFAULT_CATEGORIES, DEFAULT_CATEGORY_COLOR
from .customers import Client
from .sales import Sale, SALE_STATUSES, PAYMENT_TYPES

__all__ = [
    'Category', 'Product', 'PriceHistory', 'DEFAULT_CATEGORIES', 'DEFAULT_CATEGORY_COLOR',
    'Client',
    'Sale', 'SALE_STATUSES', 'PAYMENT_TYPES',
]
