"""
In-memory stand-ins for Printify, SureCart and the state store, plus
builders for catalog snapshots.
"""
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional

from app.core.exceptions import PrintifyError, SureCartError
from app.models.sync_models import (
    SyncCompletion,
    SyncProgress,
    UpstreamImage,
    UpstreamOption,
    UpstreamProduct,
    UpstreamVariant,
)
from app.repositories.sync_state_repository import BaseSyncStateRepository


def make_variant(variant_id, title="Black / M", price=25.0, cost=10.0, sku=None, image_ids=None, **flags):
    return UpstreamVariant(
        id=str(variant_id),
        title=title,
        price=price,
        cost=cost,
        sku=sku if sku is not None else f"SKU-{variant_id}",
        image_ids=image_ids or [],
        flags=flags,
    )


def make_product(product_id, title="Classic Tee", variants=None, images=None, detailed=True, **kwargs):
    if variants is None:
        variants = [make_variant(f"{product_id}01"), make_variant(f"{product_id}02", title="White / L")]
    return UpstreamProduct(
        id=str(product_id),
        title=title,
        description=kwargs.pop("description", "<p>Soft cotton</p>"),
        images=images if images is not None else [UpstreamImage(id="img1", src=f"https://img/{product_id}.png")],
        variants=variants,
        options=kwargs.pop("options", [UpstreamOption(name="Color"), UpstreamOption(name="Size")]),
        detailed=detailed,
        **kwargs,
    )


class FakeClock:
    def __init__(self, start: Optional[datetime] = None):
        self.now = start or datetime(2024, 1, 1, 12, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now = self.now + timedelta(seconds=seconds)


class FakeCatalog:
    """Printify stand-in: catalog reads and order writes."""

    def __init__(self, products: List[UpstreamProduct], details: Optional[Dict[str, UpstreamProduct]] = None):
        self.products = list(products)
        self.details = details or {}
        self.reachable = True
        self.list_calls = 0
        self.detail_calls: List[str] = []
        self.orders: List[Dict[str, Any]] = []
        self.status_updates: List[tuple] = []
        self.cancelled: List[str] = []
        self.fail_orders = False
        self.missing = set()

    def check_connection(self) -> bool:
        if not self.reachable:
            raise PrintifyError("Printify API request failed: connection refused")
        return True

    def get_all_products(self, limit: int = 100) -> List[UpstreamProduct]:
        self.list_calls += 1
        return list(self.products)

    def get_product(self, product_id: str) -> UpstreamProduct:
        self.detail_calls.append(product_id)
        if product_id in self.missing:
            raise PrintifyError("Printify API error: Not found (Code: 404)", status_code=404)
        if product_id in self.details:
            return self.details[product_id]
        for product in self.products:
            if product.id == product_id:
                return product
        raise PrintifyError("Printify API error: Not found (Code: 404)", status_code=404)

    def create_order(self, order_data: Dict[str, Any]) -> Dict[str, Any]:
        if self.fail_orders:
            raise PrintifyError("Printify API error: Invalid address (Code: 400)", status_code=400)
        self.orders.append(order_data)
        return {"id": f"pf-order-{len(self.orders)}"}

    def update_order_status(self, order_id: str, status: str) -> Dict[str, Any]:
        self.status_updates.append((order_id, status))
        return {"id": order_id, "status": status}

    def cancel_order(self, order_id: str) -> Dict[str, Any]:
        self.cancelled.append(order_id)
        return {"id": order_id, "status": "canceled"}


class FakeSureCartClient:
    """SureCart API stand-in keeping products, prices, variants and media in memory."""

    def __init__(self):
        self.products: Dict[str, Dict[str, Any]] = {}
        self.prices: List[Dict[str, Any]] = []
        self.variants: List[Dict[str, Any]] = []
        self.media: List[tuple] = []
        self.orders: Dict[str, Dict[str, Any]] = {}
        self.order_metadata: Dict[str, Dict[str, Any]] = {}
        self.fail_on = set()
        self._seq = 0

    def _next_id(self, prefix: str) -> str:
        self._seq += 1
        return f"{prefix}_{self._seq}"

    def _check(self, method: str) -> None:
        if method in self.fail_on:
            raise SureCartError(f"SureCart API error (500): {method} failed", status_code=500)

    def find_products_by_metadata(self, key: str, value: str) -> List[Dict[str, Any]]:
        self._check("find_products_by_metadata")
        return [
            p for p in self.products.values()
            if str((p.get("metadata") or {}).get(key, "")) == str(value)
        ]

    def create_product(self, product: Dict[str, Any]) -> Dict[str, Any]:
        self._check("create_product")
        record = dict(product, id=self._next_id("prod"))
        self.products[record["id"]] = record
        return record

    def update_product(self, product_id: str, product: Dict[str, Any]) -> Dict[str, Any]:
        self._check("update_product")
        self.products[product_id].update(product)
        return self.products[product_id]

    def list_prices(self, product_id: str) -> List[Dict[str, Any]]:
        return [p for p in self.prices if p["product"] == product_id]

    def create_price(self, price: Dict[str, Any]) -> Dict[str, Any]:
        self._check("create_price")
        record = dict(price, id=self._next_id("price"))
        self.prices.append(record)
        return record

    def update_price(self, price_id: str, price: Dict[str, Any]) -> Dict[str, Any]:
        self._check("update_price")
        record = next(p for p in self.prices if p["id"] == price_id)
        record.update(price)
        return record

    def list_variants(self, product_id: str) -> List[Dict[str, Any]]:
        return [v for v in self.variants if v["product"] == product_id]

    def create_variant(self, variant: Dict[str, Any]) -> Dict[str, Any]:
        self._check("create_variant")
        record = dict(variant, id=self._next_id("variant"))
        self.variants.append(record)
        return record

    def update_variant(self, variant_id: str, variant: Dict[str, Any]) -> Dict[str, Any]:
        self._check("update_variant")
        record = next(v for v in self.variants if v["id"] == variant_id)
        record.update(variant)
        return record

    def create_product_media(self, product_id: str, url: str) -> Dict[str, Any]:
        self._check("create_product_media")
        self.media.append((product_id, url))
        return {"id": self._next_id("media"), "product": product_id, "url": url}

    def get_order(self, order_id: str) -> Dict[str, Any]:
        if order_id not in self.orders:
            raise SureCartError("SureCart API error (404): Not found", status_code=404)
        return self.orders[order_id]

    def update_order_metadata(self, order_id: str, metadata: Dict[str, Any]) -> Dict[str, Any]:
        self._check("update_order_metadata")
        self.order_metadata.setdefault(order_id, {}).update(metadata)
        return {"id": order_id, "metadata": self.order_metadata[order_id]}


class InMemoryStateRepository(BaseSyncStateRepository):
    """Stores records serialized, so every load returns a fresh copy like Redis does."""

    def __init__(self):
        self.progress: Dict[str, str] = {}
        self.completions: Dict[str, str] = {}
        self.ttls: Dict[str, int] = {}

    def load(self, shop_id: str) -> Optional[SyncProgress]:
        raw = self.progress.get(shop_id)
        return SyncProgress.model_validate_json(raw) if raw else None

    def save(self, progress: SyncProgress, ttl: int, expected_run_id: Optional[str] = None) -> bool:
        if expected_run_id is not None:
            current = self.load(progress.shop_id)
            if current is None or current.run_id != expected_run_id:
                return False
        self.progress[progress.shop_id] = progress.model_dump_json()
        self.ttls[progress.shop_id] = ttl
        return True

    def clear(self, shop_id: str) -> None:
        self.progress.pop(shop_id, None)

    def save_completion(self, shop_id: str, completion: SyncCompletion, ttl: int) -> None:
        self.completions[shop_id] = completion.model_dump_json()

    def load_completion(self, shop_id: str) -> Optional[SyncCompletion]:
        raw = self.completions.get(shop_id)
        return SyncCompletion.model_validate_json(raw) if raw else None


def surecart_order(order_id="ord_1", status="paid", line_items=None, number="1001"):
    """A SureCart order payload with expanded checkout relations."""
    if line_items is None:
        line_items = [printify_line_item("pf1", "pf101", quantity=2)]
    return {
        "id": order_id,
        "number": number,
        "status": status,
        "checkout": {
            "line_items": {"data": line_items},
            "shipping_address": {
                "name": "Ada Lovelace",
                "line_1": "1 Analytical Way",
                "city": "London",
                "state": "LDN",
                "postal_code": "N1 9GU",
                "country": "GB",
            },
            "customer": {"email": "ada@example.com", "phone": "+440000", "first_name": "Ada", "last_name": "Lovelace"},
        },
    }


def printify_line_item(printify_id, variant_id=None, quantity=1, item_id="li_1"):
    return {
        "id": item_id,
        "quantity": quantity,
        "price": {"product": {"id": "prod_x", "metadata": {"printify_id": printify_id}}},
        "variant": {"id": "var_x", "metadata": {"printify_variant_id": variant_id}} if variant_id else None,
    }
