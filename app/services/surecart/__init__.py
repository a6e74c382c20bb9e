"""SureCart services package."""

from app.services.surecart.client import SureCartClient, extract_items
from app.services.surecart.products import SureCartStorefront, pair_with_existing
from app.services.surecart.orders import SureCartOrders, normalize_order

__all__ = [
    "SureCartClient",
    "SureCartStorefront",
    "SureCartOrders",
    "extract_items",
    "normalize_order",
    "pair_with_existing",
]
