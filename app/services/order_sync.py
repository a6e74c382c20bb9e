"""
Order bridge: turns paid SureCart orders into Printify fulfillment orders and
keeps their status in step.
"""

import logging
from typing import Any, Dict, Iterable, List, Optional

from app.constants.sync import (
    CREATED_EVENTS,
    META_PRINTIFY_ID,
    META_VARIANT_ID,
    ORDER_STATUS_MAP,
    UPDATED_EVENTS,
)
from app.core.exceptions import (
    NoMatchingProductsError,
    OrderAlreadySyncedError,
    OrderSyncError,
    PrintifyError,
)
from app.models.order_models import Address, StorefrontOrder
from app.repositories.order_sync_repository import OrderSyncRepository
from app.services.product_mapper import is_variant_active

logger = logging.getLogger(__name__)


def map_order_status(status: str) -> Optional[str]:
    """SureCart status to Printify status; None when there is nothing to do."""
    return ORDER_STATUS_MAP.get(status)


class OrderSyncService:
    """
    Args:
        printify: Printify client (orders and product lookups)
        orders: SureCart order reader
        repository: Order cross-reference storage
        sync_statuses: Order statuses that trigger fulfillment
        enabled: When False, webhook events are acknowledged and ignored
    """

    def __init__(
        self,
        printify,
        orders,
        repository: OrderSyncRepository,
        sync_statuses: Iterable[str] = ("paid", "processing"),
        enabled: bool = True,
        shipping_method: int = 1,
        send_shipping_notification: bool = True
    ):
        self.printify = printify
        self.orders = orders
        self.repository = repository
        self.sync_statuses = set(sync_statuses)
        self.enabled = enabled
        self.shipping_method = shipping_method
        self.send_shipping_notification = send_shipping_notification

    # --------------------------------------------------------------- events

    def handle_webhook(self, event: Dict[str, Any]) -> Dict[str, Any]:
        event_type = event.get("type")
        order_ref = (event.get("data") or {}).get("order") or {}
        order_id = order_ref.get("id") if isinstance(order_ref, dict) else None

        if not self.enabled:
            return {"status": "ignored", "reason": "order sync disabled"}
        if event_type not in CREATED_EVENTS and event_type not in UPDATED_EVENTS:
            return {"status": "ignored", "reason": f"unhandled event {event_type}"}
        if not order_id:
            return {"status": "ignored", "reason": "missing order id"}

        order = self.orders.get_order(order_id)
        if event_type in CREATED_EVENTS:
            printify_order_id = self.handle_order_created(order)
        else:
            printify_order_id = self.handle_order_updated(order)
        return {
            "status": "processed",
            "order_id": order_id,
            "printify_order_id": printify_order_id,
        }

    def handle_order_created(self, order: StorefrontOrder) -> Optional[str]:
        if order.status not in self.sync_statuses:
            logger.debug(f"Order {order.id} status {order.status} does not trigger fulfillment")
            return None
        existing = self.repository.get_printify_order_id(order.id)
        if existing:
            logger.info(f"Order {order.id} already synced to Printify, skipping")
            return existing
        return self.sync_order(order)

    def handle_order_updated(self, order: StorefrontOrder) -> Optional[str]:
        if map_order_status(order.status) is None:
            return None

        printify_order_id = self.repository.get_printify_order_id(order.id)
        if printify_order_id:
            self.update_printify_order(printify_order_id, order)
            return printify_order_id
        if order.status in self.sync_statuses:
            return self.sync_order(order)
        return None

    def sync_single_order(self, order_id: str) -> str:
        """Manual trigger; an order can only be sent to Printify once."""
        existing = self.repository.get_printify_order_id(order_id)
        if existing:
            raise OrderAlreadySyncedError(
                f"Order {order_id} is already synced to Printify (ID: {existing})"
            )
        order = self.orders.get_order(order_id)
        return self.sync_order(order)

    # --------------------------------------------------------------- create

    def _default_variant_id(self, printify_product_id: str, cache: Dict[str, Optional[str]]) -> Optional[str]:
        if printify_product_id in cache:
            return cache[printify_product_id]
        variant_id = None
        try:
            product = self.printify.get_product(printify_product_id)
            active = [v for v in product.variants if is_variant_active(v)]
            candidates = active or product.variants
            if candidates:
                variant_id = candidates[0].id
        except PrintifyError as e:
            logger.warning(f"Could not load Printify product {printify_product_id}: {e}")
        cache[printify_product_id] = variant_id
        return variant_id

    def build_line_items(self, order: StorefrontOrder) -> List[Dict[str, Any]]:
        """Line items for products synced from Printify; everything else is skipped."""
        line_items = []
        cache: Dict[str, Optional[str]] = {}
        for item in order.line_items:
            printify_id = item.product_metadata.get(META_PRINTIFY_ID)
            if not printify_id:
                logger.debug(f"Order {order.id}: line item {item.id} is not a Printify product")
                continue
            variant_id = item.variant_metadata.get(META_VARIANT_ID) or \
                self._default_variant_id(str(printify_id), cache)
            if not variant_id:
                logger.warning(f"Order {order.id}: no Printify variant for product {printify_id}")
                continue
            line_items.append({
                "product_id": str(printify_id),
                "variant_id": int(variant_id) if str(variant_id).isdigit() else variant_id,
                "quantity": item.quantity,
            })
        return line_items

    @staticmethod
    def build_address(order: StorefrontOrder) -> Dict[str, str]:
        """Shipping address, else billing address, else whatever the customer record has."""
        for candidate in (order.shipping_address, order.billing_address):
            if candidate and not candidate.is_empty():
                address = candidate
                break
        else:
            address = order.customer or Address()

        payload = address.model_dump()
        customer = order.customer
        if customer:
            payload["email"] = payload["email"] or customer.email
            payload["phone"] = payload["phone"] or customer.phone
            payload["first_name"] = payload["first_name"] or customer.first_name
            payload["last_name"] = payload["last_name"] or customer.last_name
        payload["country"] = payload["country"] or "US"
        return payload

    def build_fulfillment_request(self, order: StorefrontOrder) -> Dict[str, Any]:
        line_items = self.build_line_items(order)
        if not line_items:
            raise NoMatchingProductsError(f"No Printify products found in order {order.id}")
        return {
            "external_id": order.id,
            "label": order.label,
            "line_items": line_items,
            "shipping_method": self.shipping_method,
            "send_shipping_notification": self.send_shipping_notification,
            "address_to": self.build_address(order),
        }

    def sync_order(self, order: StorefrontOrder) -> str:
        """
        Create the Printify order for a SureCart order.

        Raises:
            NoMatchingProductsError: No line item references a Printify product
            PrintifyError: Printify rejected the order
        """
        request = self.build_fulfillment_request(order)
        try:
            response = self.printify.create_order(request)
        except PrintifyError as e:
            self.repository.record_error(order.id, str(e), order_number=order.number)
            self.repository.add_note(order.id, f"Printify order creation failed: {e}")
            raise

        printify_order_id = response.get("id") if isinstance(response, dict) else None
        if not printify_order_id:
            self.repository.record_error(order.id, "Printify returned no order id", order_number=order.number)
            raise OrderSyncError(f"Failed to create Printify order for {order.id}")

        printify_order_id = str(printify_order_id)
        self.repository.set_printify_order_id(
            order.id,
            printify_order_id,
            order_number=order.number,
            storefront_status=order.status,
            printify_status=map_order_status(order.status),
        )
        self.repository.add_note(order.id, f"Order synced to Printify (ID: {printify_order_id})")
        self.orders.tag_order(order.id, printify_order_id)
        logger.info(
            f"Order {order.id} synced to Printify as {printify_order_id} "
            f"with {len(request['line_items'])} line item(s)"
        )
        return printify_order_id

    # --------------------------------------------------------------- update

    def update_printify_order(self, printify_order_id: str, order: StorefrontOrder) -> bool:
        printify_status = map_order_status(order.status)
        if not printify_status:
            return False

        record = self.repository.get_by_order_id(order.id)
        if record and record.printify_status == printify_status:
            logger.debug(f"Printify order {printify_order_id} already {printify_status}")
            return False

        if printify_status == "canceled":
            self.printify.cancel_order(printify_order_id)
        else:
            self.printify.update_order_status(printify_order_id, printify_status)

        self.repository.update_status(
            order.id, storefront_status=order.status, printify_status=printify_status
        )
        self.repository.add_note(order.id, f"Order status updated in Printify to: {printify_status}")
        logger.info(f"Printify order {printify_order_id} set to {printify_status}")
        return True
