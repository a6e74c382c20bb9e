"""Read SureCart orders and normalize them for the fulfillment bridge."""

import logging
from typing import Any, Dict, Optional

from app.core.exceptions import OrderNotFoundError, SureCartError
from app.models.order_models import Address, OrderLineItem, StorefrontOrder
from app.services.surecart.client import SureCartClient, extract_items

__logger__ = logging.getLogger(__name__)


def _obj(value: Any) -> Dict[str, Any]:
    """Expanded relations are objects; unexpanded ones are bare ids."""
    return value if isinstance(value, dict) else {}


def normalize_address(raw: Any, customer: Optional[Dict[str, Any]] = None) -> Optional[Address]:
    raw = _obj(raw)
    if not raw:
        return None
    customer = customer or {}
    first_name = raw.get("first_name") or ""
    last_name = raw.get("last_name") or ""
    if not (first_name or last_name) and raw.get("name"):
        first_name, _, last_name = str(raw["name"]).partition(" ")
    return Address(
        first_name=first_name,
        last_name=last_name,
        email=raw.get("email") or customer.get("email") or "",
        phone=raw.get("phone") or customer.get("phone") or "",
        country=raw.get("country") or "",
        region=raw.get("state") or raw.get("region") or "",
        address1=raw.get("line_1") or raw.get("address1") or "",
        address2=raw.get("line_2") or raw.get("address2") or "",
        city=raw.get("city") or "",
        zip=raw.get("postal_code") or raw.get("zip") or "",
    )


def normalize_line_item(raw: Dict[str, Any]) -> OrderLineItem:
    price = _obj(raw.get("price"))
    product = _obj(price.get("product")) or _obj(raw.get("product"))
    variant = _obj(raw.get("variant"))
    return OrderLineItem(
        id=raw.get("id"),
        quantity=int(raw.get("quantity") or 1),
        product_id=product.get("id"),
        product_metadata=product.get("metadata") or {},
        variant_id=variant.get("id"),
        variant_metadata=variant.get("metadata") or {},
    )


def normalize_order(raw: Dict[str, Any]) -> StorefrontOrder:
    checkout = _obj(raw.get("checkout"))
    line_items = extract_items(raw.get("line_items")) or extract_items(checkout.get("line_items"))
    customer_raw = _obj(raw.get("customer")) or _obj(checkout.get("customer"))
    customer = None
    if customer_raw:
        customer = Address(
            first_name=customer_raw.get("first_name") or "",
            last_name=customer_raw.get("last_name") or "",
            email=customer_raw.get("email") or "",
            phone=customer_raw.get("phone") or "",
        )

    return StorefrontOrder(
        id=str(raw["id"]),
        number=str(raw["number"]) if raw.get("number") is not None else None,
        status=str(raw.get("status") or ""),
        line_items=[normalize_line_item(i) for i in line_items if isinstance(i, dict)],
        shipping_address=normalize_address(
            raw.get("shipping_address") or checkout.get("shipping_address"), customer_raw
        ),
        billing_address=normalize_address(
            raw.get("billing_address") or checkout.get("billing_address"), customer_raw
        ),
        customer=customer,
    )


class SureCartOrders:
    """Order side of the storefront port."""

    def __init__(self, client: SureCartClient):
        self.client = client

    def get_order(self, order_id: str) -> StorefrontOrder:
        try:
            raw = self.client.get_order(order_id)
        except SureCartError as e:
            if e.status_code == 404:
                raise OrderNotFoundError(f"SureCart order {order_id} not found") from e
            raise
        if not isinstance(raw, dict) or not raw.get("id"):
            raise OrderNotFoundError(f"SureCart order {order_id} not found")
        return normalize_order(raw)

    def tag_order(self, order_id: str, printify_order_id: str) -> bool:
        """Store the Printify order id on the SureCart order's metadata."""
        try:
            self.client.update_order_metadata(order_id, {"printify_order_id": printify_order_id})
            return True
        except SureCartError as e:
            __logger__.warning(f"Could not tag SureCart order {order_id}: {e}")
            return False
