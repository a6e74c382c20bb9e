"""
Tests for the SureCart side of the catalog sync.
"""
from unittest.mock import MagicMock

import pytest

from app.constants.sync import SyncAction
from app.core.exceptions import SureCartError, SureCartValidationError
from app.models.product_models import PriceData, VariantData
from app.services.product_mapper import map_product
from app.services.surecart.client import SureCartClient
from app.services.surecart.products import SureCartStorefront, pair_with_existing
from tests.factories import FakeSureCartClient, make_product, make_variant


def _response(status_code, body=None):
    response = MagicMock()
    response.status_code = status_code
    response.ok = 200 <= status_code < 300
    response.content = b"{}" if body is not None else b""
    response.json.return_value = body
    response.text = str(body)
    return response


def test_pair_with_existing_prefers_variant_id_then_position():
    existing = [
        {"id": "a", "metadata": {"printify_variant_id": "v2"}},
        {"id": "b", "metadata": {}},
        {"id": "c", "metadata": {"printify_variant_id": "gone"}},
    ]

    pairs = pair_with_existing(["v1", "v2", "v3", "v4"], existing)

    assert [p["id"] if p else None for p in pairs] == ["b", "a", "c", None]


def test_create_attaches_prices_variants_and_media():
    client = FakeSureCartClient()
    sleeps = []
    storefront = SureCartStorefront(client, media_delay=0.5, sleep=sleeps.append)
    data = map_product(make_product("p1", images=[]), currency="usd")
    data.images = ["https://img/a.png", "https://img/b.png"]

    result = storefront.create_or_update_product(data)

    assert result.success is True
    assert result.action == SyncAction.CREATED
    assert result.prices_created == 2
    assert result.variants_created == 2
    assert result.media_attached == 2
    assert client.media == [(result.surecart_id, "https://img/a.png"), (result.surecart_id, "https://img/b.png")]
    assert sleeps == [0.5]
    product = client.products[result.surecart_id]
    assert product["metadata"]["printify_id"] == "p1"
    assert [o["name"] for o in product["variant_options"]] == ["Color", "Size"]
    assert all(p["product"] == result.surecart_id for p in client.prices)


def test_update_reuses_existing_records_and_skips_media():
    client = FakeSureCartClient()
    storefront = SureCartStorefront(client, media_delay=0)
    storefront.create_or_update_product(map_product(make_product("p1")))
    media_before = list(client.media)

    product = make_product("p1", title="Renamed Tee", variants=[
        make_variant("p102", title="White / L", price=30),
        make_variant("p101", price=20),
        make_variant("p103", title="Red / S"),
    ])
    result = storefront.create_or_update_product(map_product(product))

    assert result.action == SyncAction.UPDATED
    assert (result.prices_created, result.prices_updated) == (1, 2)
    assert (result.variants_created, result.variants_updated) == (1, 2)
    assert client.media == media_before
    assert len(client.products) == 1
    by_variant = {p["metadata"]["printify_variant_id"]: p["amount"] for p in client.prices}
    assert by_variant == {"p101": 2000, "p102": 3000, "p103": 2500}
    assert next(iter(client.products.values()))["name"] == "Renamed Tee"


def test_duplicate_join_matches_use_first(caplog):
    client = FakeSureCartClient()
    client.products = {
        "prod_a": {"id": "prod_a", "metadata": {"printify_id": "p1"}},
        "prod_b": {"id": "prod_b", "metadata": {"printify_id": "p1"}},
    }
    storefront = SureCartStorefront(client, media_delay=0)

    match = storefront.find_by_upstream_id("p1")

    assert match["id"] == "prod_a"
    assert "2 SureCart products carry printify_id=p1" in caplog.text


def test_failed_media_does_not_fail_product():
    client = FakeSureCartClient()
    client.fail_on.add("create_product_media")
    storefront = SureCartStorefront(client, media_delay=0)

    result = storefront.create_or_update_product(map_product(make_product("p1")))

    assert result.success is True
    assert result.media_attached == 0


def test_storefront_error_becomes_error_result():
    client = FakeSureCartClient()
    client.fail_on.add("create_variant")
    storefront = SureCartStorefront(client, media_delay=0)

    result = storefront.create_or_update_product(map_product(make_product("p1")))

    assert result.success is False
    assert result.action == SyncAction.ERROR
    assert "create_variant failed" in result.error_details


def test_upsert_price_sends_product_only_on_create():
    client = MagicMock()
    storefront = SureCartStorefront(client, media_delay=0)
    price = PriceData(name="Black / M", amount=2500, metadata={"printify_variant_id": "v1"})

    storefront.upsert_price("prod_1", price)
    storefront.upsert_price("prod_1", price, existing={"id": "price_9"})

    client.create_price.assert_called_once_with({
        "name": "Black / M",
        "amount": 2500,
        "currency": "usd",
        "metadata": {"printify_variant_id": "v1"},
        "product": "prod_1",
    })
    client.update_price.assert_called_once()
    assert "product" not in client.update_price.call_args[0][1]


def test_variant_payload_carries_option_values():
    variant = VariantData(
        title="Black / M", sku="SKU1", amount=2500, cost=1250, option_values=["Black", "M"]
    )

    payload = variant.to_payload()

    assert payload["title"] == "Black / M"
    assert payload["cost"] == 1250
    assert payload["amount"] == 2500
    assert payload["option_1"] == "Black"
    assert payload["option_2"] == "M"
    assert "option_3" not in payload


def test_client_raises_validation_error_on_422():
    session = MagicMock()
    session.request.return_value = _response(422, {
        "message": "Invalid",
        "validation_errors": [{"attribute": "sku", "message": "is taken"}],
    })
    client = SureCartClient("token", session=session)

    with pytest.raises(SureCartValidationError) as exc_info:
        client.create_variant({"sku": "SKU1"})

    assert "sku: is taken" in str(exc_info.value)
    assert exc_info.value.status_code == 422


def test_client_raises_on_server_error():
    session = MagicMock()
    session.request.return_value = _response(500, {"message": "Boom"})
    client = SureCartClient("token", session=session)

    with pytest.raises(SureCartError) as exc_info:
        client.list_prices("prod_1")

    assert exc_info.value.status_code == 500
    assert "Boom" in str(exc_info.value)


def test_find_by_metadata_rechecks_results():
    session = MagicMock()
    session.request.return_value = _response(200, {"data": [
        {"id": "prod_1", "metadata": {"printify_id": "p1"}},
        {"id": "prod_2", "metadata": {"printify_id": "p2"}},
    ]})
    client = SureCartClient("token", base_url="https://api.surecart.com/v1/", session=session)

    products = client.find_products_by_metadata("printify_id", "p1")

    assert [p["id"] for p in products] == ["prod_1"]
    method, url = session.request.call_args[0]
    assert (method, url) == ("GET", "https://api.surecart.com/v1/products")
    assert session.request.call_args[1]["params"]["metadata[printify_id]"] == "p1"
