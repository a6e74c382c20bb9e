"""SureCart REST API client."""

import logging
from typing import Any, Dict, List, Optional

import requests

from app.core.exceptions import SureCartError, SureCartValidationError

__logger__ = logging.getLogger(__name__)


def extract_items(payload: Any) -> List[Dict[str, Any]]:
    """SureCart lists come back as ``{"data": [...]}``; tolerate a bare list too."""
    if isinstance(payload, list):
        return payload
    if isinstance(payload, dict) and isinstance(payload.get("data"), list):
        return payload["data"]
    return []


class SureCartClient:
    """Thin wrapper over the SureCart REST API. Raises SureCartError on failure."""

    def __init__(
        self,
        api_token: str,
        base_url: str = "https://api.surecart.com/v1",
        timeout: int = 30,
        session: Optional[requests.Session] = None
    ):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.session = session or requests.Session()
        self.session.headers.update({
            "Authorization": f"Bearer {api_token}",
            "Content-Type": "application/json",
            "Accept": "application/json",
        })

    def request(
        self,
        method: str,
        path: str,
        params: Optional[Dict[str, Any]] = None,
        payload: Optional[Dict[str, Any]] = None
    ) -> Any:
        url = f"{self.base_url}{path}"
        try:
            response = self.session.request(
                method, url, params=params, json=payload, timeout=self.timeout
            )
        except requests.RequestException as e:
            __logger__.error(f"SureCart {method} {path} failed: {e}")
            raise SureCartError(f"SureCart API request failed: {e}") from e

        try:
            data = response.json() if response.content else {}
        except ValueError:
            data = {}

        if response.status_code == 422:
            field_errors = data.get("validation_errors", []) if isinstance(data, dict) else []
            message = data.get("message", "Validation failed") if isinstance(data, dict) else "Validation failed"
            details = "; ".join(
                f"{e.get('attribute', '?')}: {e.get('message', e.get('code', ''))}"
                for e in field_errors if isinstance(e, dict)
            )
            __logger__.warning(f"SureCart validation error on {path}: {message} {details}")
            raise SureCartValidationError(
                f"SureCart validation error: {message}" + (f" ({details})" if details else ""),
                field_errors={"errors": field_errors},
                status_code=422,
                payload=data if isinstance(data, dict) else {},
            )

        if not response.ok:
            message = data.get("message") if isinstance(data, dict) else None
            __logger__.error(
                f"SureCart {method} error on {path}: {response.status_code} - {message or response.text}"
            )
            raise SureCartError(
                f"SureCart API error ({response.status_code}): {message or 'Unknown error'}",
                status_code=response.status_code,
                payload=data if isinstance(data, dict) else {},
            )
        return data

    # ------------------------------------------------------------- products

    def find_products_by_metadata(self, key: str, value: str) -> List[Dict[str, Any]]:
        data = self.request("GET", "/products", params={f"metadata[{key}]": value, "limit": 10})
        # Not every deployment honours the metadata filter; re-check client side.
        return [
            p for p in extract_items(data)
            if str((p.get("metadata") or {}).get(key, "")) == str(value)
        ]

    def create_product(self, product: Dict[str, Any]) -> Dict[str, Any]:
        return self.request("POST", "/products", payload={"product": product})

    def update_product(self, product_id: str, product: Dict[str, Any]) -> Dict[str, Any]:
        return self.request("PATCH", f"/products/{product_id}", payload={"product": product})

    # --------------------------------------------------------------- prices

    def list_prices(self, product_id: str) -> List[Dict[str, Any]]:
        data = self.request("GET", "/prices", params={"product_ids[]": product_id, "limit": 100})
        return extract_items(data)

    def create_price(self, price: Dict[str, Any]) -> Dict[str, Any]:
        return self.request("POST", "/prices", payload={"price": price})

    def update_price(self, price_id: str, price: Dict[str, Any]) -> Dict[str, Any]:
        return self.request("PATCH", f"/prices/{price_id}", payload={"price": price})

    # ------------------------------------------------------------- variants

    def list_variants(self, product_id: str) -> List[Dict[str, Any]]:
        data = self.request("GET", "/variants", params={"product_ids[]": product_id, "limit": 100})
        return extract_items(data)

    def create_variant(self, variant: Dict[str, Any]) -> Dict[str, Any]:
        return self.request("POST", "/variants", payload={"variant": variant})

    def update_variant(self, variant_id: str, variant: Dict[str, Any]) -> Dict[str, Any]:
        return self.request("PATCH", f"/variants/{variant_id}", payload={"variant": variant})

    # ---------------------------------------------------------------- media

    def create_product_media(self, product_id: str, url: str) -> Dict[str, Any]:
        return self.request(
            "POST",
            "/product_medias",
            payload={"product_media": {"product": product_id, "url": url}},
        )

    # --------------------------------------------------------------- orders

    def get_order(self, order_id: str) -> Dict[str, Any]:
        return self.request(
            "GET",
            f"/orders/{order_id}",
            params={
                "expand[]": [
                    "checkout",
                    "checkout.line_items",
                    "checkout.shipping_address",
                    "checkout.billing_address",
                    "checkout.customer",
                    "line_item.price",
                    "line_item.variant",
                    "price.product",
                ]
            },
        )

    def update_order_metadata(self, order_id: str, metadata: Dict[str, Any]) -> Dict[str, Any]:
        return self.request("PATCH", f"/orders/{order_id}", payload={"order": {"metadata": metadata}})
