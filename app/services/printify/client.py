"""Printify REST API client."""

import logging
from typing import Any, Dict, List, Optional

import requests

from app.core.exceptions import PrintifyError
from app.models.sync_models import UpstreamProduct
from app.services.printify.normalizers import extract_list, normalize_product

__logger__ = logging.getLogger(__name__)


class PrintifyClient:
    """
    Catalog source port backed by the Printify API.

    Every call raises ``PrintifyError`` on transport failures and non-2xx
    responses. Product payloads are normalized before they leave the client.
    """

    def __init__(
        self,
        api_token: str,
        shop_id: str,
        base_url: str = "https://api.printify.com/v1",
        timeout: int = 30,
        session: Optional[requests.Session] = None
    ):
        self.api_token = api_token
        self.shop_id = str(shop_id)
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.session = session or requests.Session()
        self.session.headers.update({
            "Authorization": f"Bearer {api_token}",
            "Content-Type": "application/json",
            "User-Agent": "printify-surecart-sync",
        })

    # ------------------------------------------------------------------ http

    def _send(
        self,
        method: str,
        path: str,
        params: Optional[Dict[str, Any]] = None,
        payload: Optional[Dict[str, Any]] = None
    ) -> requests.Response:
        url = f"{self.base_url}{path}"
        try:
            return self.session.request(
                method, url, params=params, json=payload, timeout=self.timeout
            )
        except requests.RequestException as e:
            __logger__.error(f"Printify {method} {path} failed: {e}")
            raise PrintifyError(f"Printify API request failed: {e}") from e

    @staticmethod
    def _parse(response: requests.Response, method: str, path: str) -> Any:
        try:
            data = response.json() if response.content else {}
        except ValueError:
            data = {}

        if not response.ok:
            message = data.get("message") if isinstance(data, dict) else None
            message = message or "Unknown error"
            __logger__.error(
                f"Printify {method} error on {path}: {response.status_code} - {message}"
            )
            raise PrintifyError(
                f"Printify API error: {message} (Code: {response.status_code})",
                status_code=response.status_code,
                payload=data if isinstance(data, dict) else {},
            )
        return data

    def request(
        self,
        method: str,
        path: str,
        params: Optional[Dict[str, Any]] = None,
        payload: Optional[Dict[str, Any]] = None
    ) -> Any:
        """
        Call an endpoint given in its ``.json`` form.

        A 404 on a ``.json`` path is retried once on the same path without
        the suffix, which some Printify endpoints answer instead.
        """
        response = self._send(method, path, params=params, payload=payload)
        if response.status_code == 404 and path.endswith(".json"):
            alternate = path[: -len(".json")]
            __logger__.info(f"Printify 404 on {path}, retrying as {alternate}")
            response = self._send(method, alternate, params=params, payload=payload)
            return self._parse(response, method, alternate)
        return self._parse(response, method, path)

    # -------------------------------------------------------------- catalog

    def list_products(self, page: int = 1, limit: int = 100) -> List[UpstreamProduct]:
        data = self.request(
            "GET",
            f"/shops/{self.shop_id}/products.json",
            params={"page": page, "limit": limit},
        )
        return [normalize_product(p) for p in extract_list(data) if isinstance(p, dict)]

    def get_all_products(self, limit: int = 100) -> List[UpstreamProduct]:
        """Page from 1 until a page is empty or shorter than ``limit``."""
        page = 1
        products: List[UpstreamProduct] = []
        while True:
            batch = self.list_products(page=page, limit=limit)
            if not batch:
                break
            products.extend(batch)
            if len(batch) < limit:
                break
            page += 1
        __logger__.info(f"Fetched {len(products)} Printify products in {page} page(s)")
        return products

    def get_product(self, product_id: str) -> UpstreamProduct:
        data = self.request("GET", f"/shops/{self.shop_id}/products/{product_id}.json")
        if isinstance(data, dict) and isinstance(data.get("data"), dict):
            data = data["data"]
        if not isinstance(data, dict) or not data.get("id"):
            raise PrintifyError(f"Printify product {product_id} returned an empty payload")
        return normalize_product(data, detailed=True)

    def check_connection(self) -> bool:
        """One lightweight call; raises PrintifyError when the shop is unreachable."""
        self.list_products(page=1, limit=1)
        return True

    # --------------------------------------------------------------- orders

    def create_order(self, order_data: Dict[str, Any]) -> Dict[str, Any]:
        return self.request("POST", f"/shops/{self.shop_id}/orders.json", payload=order_data)

    def get_order(self, order_id: str) -> Dict[str, Any]:
        return self.request("GET", f"/shops/{self.shop_id}/orders/{order_id}.json")

    def list_orders(self, page: int = 1, limit: int = 20) -> List[Dict[str, Any]]:
        data = self.request(
            "GET",
            f"/shops/{self.shop_id}/orders.json",
            params={"page": page, "limit": limit},
        )
        return extract_list(data)

    def update_order_status(self, order_id: str, status: str) -> Dict[str, Any]:
        return self.request(
            "PUT",
            f"/shops/{self.shop_id}/orders/{order_id}.json",
            payload={"status": status},
        )

    def cancel_order(self, order_id: str) -> Dict[str, Any]:
        return self.request("POST", f"/shops/{self.shop_id}/orders/{order_id}/cancel.json")
