"""SureCart product management: the storefront side of the catalog sync."""

import logging
import time
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple

from app.constants.sync import META_PRINTIFY_ID, META_VARIANT_ID, SyncAction
from app.core.exceptions import IntegrationError, SureCartError
from app.models.product_models import (
    PriceData,
    ProductOption,
    ProductSyncResult,
    SureCartProductData,
    VariantData,
)
from app.services.surecart.client import SureCartClient

__logger__ = logging.getLogger(__name__)


def pair_with_existing(
    incoming_ids: Sequence[str],
    existing: Sequence[Dict[str, Any]]
) -> List[Optional[Dict[str, Any]]]:
    """
    Pair incoming prices/variants with existing SureCart records.

    Records are matched on their ``printify_variant_id`` metadata first;
    whatever is left is paired by position. Incoming items without a partner
    get ``None`` (to be created). Unpaired existing records are never returned.
    """
    by_variant_id: Dict[str, Dict[str, Any]] = {}
    for record in existing:
        key = str((record.get("metadata") or {}).get(META_VARIANT_ID) or "")
        if key and key not in by_variant_id:
            by_variant_id[key] = record

    pairs: List[Optional[Dict[str, Any]]] = [None] * len(incoming_ids)
    used = set()
    for i, variant_id in enumerate(incoming_ids):
        record = by_variant_id.get(variant_id) if variant_id else None
        if record is not None and record.get("id") not in used:
            pairs[i] = record
            used.add(record.get("id"))

    leftovers = iter([r for r in existing if r.get("id") not in used])
    for i, record in enumerate(pairs):
        if record is None:
            pairs[i] = next(leftovers, None)
            if pairs[i] is not None:
                used.add(pairs[i].get("id"))
    return pairs


class SureCartStorefront:
    """
    Storefront port over the SureCart API.

    Products are joined to Printify through the ``printify_id`` metadata
    key; prices and variants carry ``printify_variant_id``.
    """

    def __init__(
        self,
        client: SureCartClient,
        media_delay: float = 0.5,
        sleep: Callable[[float], None] = time.sleep
    ):
        self.client = client
        self.media_delay = media_delay
        self._sleep = sleep

    def find_by_upstream_id(self, printify_id: str) -> Optional[Dict[str, Any]]:
        matches = self.client.find_products_by_metadata(META_PRINTIFY_ID, printify_id)
        if not matches:
            return None
        if len(matches) > 1:
            __logger__.warning(
                f"{len(matches)} SureCart products carry printify_id={printify_id}; "
                f"using {matches[0].get('id')}"
            )
        return matches[0]

    def create_product(self, data: SureCartProductData) -> Dict[str, Any]:
        payload = data.product_payload()
        if data.options:
            payload["variant_options"] = [o.model_dump() for o in data.options]
        product = self.client.create_product(payload)
        __logger__.info(f"Created SureCart product {product.get('id')} ({data.name})")
        return product

    def update_product(self, product_id: str, data: SureCartProductData) -> Dict[str, Any]:
        product = self.client.update_product(product_id, data.product_payload())
        __logger__.info(f"Updated SureCart product {product_id} ({data.name})")
        return product

    def upsert_options(self, product_id: str, options: List[ProductOption]) -> Dict[str, Any]:
        return self.client.update_product(
            product_id,
            {"variant_options": [o.model_dump() for o in options]},
        )

    def upsert_price(
        self,
        product_id: str,
        price: PriceData,
        existing: Optional[Dict[str, Any]] = None
    ) -> Dict[str, Any]:
        payload = price.to_payload()
        if existing and existing.get("id"):
            return self.client.update_price(existing["id"], payload)
        payload["product"] = product_id
        return self.client.create_price(payload)

    def upsert_prices(
        self,
        product_id: str,
        prices: List[PriceData],
        existing: Optional[List[Dict[str, Any]]] = None
    ) -> Tuple[int, int]:
        """Returns (created, updated)."""
        if existing is None:
            existing = self.client.list_prices(product_id)
        pairs = pair_with_existing([p.metadata.get(META_VARIANT_ID, "") for p in prices], existing)
        created = updated = 0
        for price, match in zip(prices, pairs):
            self.upsert_price(product_id, price, match)
            if match:
                updated += 1
            else:
                created += 1
        return created, updated

    def upsert_variant(
        self,
        product_id: str,
        variant: VariantData,
        existing: Optional[Dict[str, Any]] = None
    ) -> Dict[str, Any]:
        payload = variant.to_payload()
        if existing and existing.get("id"):
            return self.client.update_variant(existing["id"], payload)
        payload["product"] = product_id
        return self.client.create_variant(payload)

    def upsert_variants(
        self,
        product_id: str,
        variants: List[VariantData],
        existing: Optional[List[Dict[str, Any]]] = None
    ) -> Tuple[int, int]:
        """Returns (created, updated)."""
        if existing is None:
            existing = self.client.list_variants(product_id)
        pairs = pair_with_existing([v.metadata.get(META_VARIANT_ID, "") for v in variants], existing)
        created = updated = 0
        for variant, match in zip(variants, pairs):
            self.upsert_variant(product_id, variant, match)
            if match:
                updated += 1
            else:
                created += 1
        return created, updated

    def attach_media(self, product_id: str, url: str) -> bool:
        try:
            self.client.create_product_media(product_id, url)
            return True
        except SureCartError as e:
            __logger__.warning(f"Could not attach {url} to SureCart product {product_id}: {e}")
            return False

    def attach_images(self, product_id: str, urls: List[str]) -> int:
        """Attach the primary image first, then the rest with a short pause between calls."""
        attached = 0
        for i, url in enumerate(urls):
            if i > 0 and self.media_delay:
                self._sleep(self.media_delay)
            if self.attach_media(product_id, url):
                attached += 1
        return attached

    def create_or_update_product(self, data: SureCartProductData) -> ProductSyncResult:
        """
        Idempotent upsert keyed by the ``printify_id`` metadata join.

        Args:
            data: Mapped product data

        Returns:
            ProductSyncResult with action ``created``, ``updated`` or ``error``
        """
        printify_id = data.metadata.get(META_PRINTIFY_ID)
        result = ProductSyncResult(
            printify_id=printify_id,
            action=SyncAction.SKIPPED,
            success=False,
            message="Not processed"
        )
        try:
            existing = self.find_by_upstream_id(printify_id)
            if existing:
                product_id = existing["id"]
                self.update_product(product_id, data)
                if data.options:
                    self.upsert_options(product_id, data.options)
                result.prices_created, result.prices_updated = self.upsert_prices(product_id, data.prices)
                result.variants_created, result.variants_updated = self.upsert_variants(
                    product_id, data.variants
                )
                result.action = SyncAction.UPDATED
            else:
                product = self.create_product(data)
                product_id = product.get("id")
                if not product_id:
                    raise SureCartError(f"SureCart returned no id for product {data.name}")
                result.prices_created, _ = self.upsert_prices(product_id, data.prices, existing=[])
                result.variants_created, _ = self.upsert_variants(product_id, data.variants, existing=[])
                result.media_attached = self.attach_images(product_id, data.images)
                result.action = SyncAction.CREATED

            result.surecart_id = product_id
            result.success = True
            result.message = f"Product {result.action} in SureCart"
        except IntegrationError as e:
            __logger__.error(f"Error syncing Printify product {printify_id}: {e}")
            result.action = SyncAction.ERROR
            result.success = False
            result.message = f"Failed to sync product {data.name}"
            result.error_details = str(e)
        return result
