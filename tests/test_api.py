"""
Tests for the HTTP trigger surface.
"""
from unittest.mock import MagicMock

import pytest
from fastapi.testclient import TestClient

from app.api.deps import get_order_sync_service, get_orchestrator
from app.api.v1.endpoints import sync as sync_endpoint
from app.api.v1.endpoints import webhook_receiver
from app.main import app
from tests.factories import surecart_order


@pytest.fixture
def enqueued(monkeypatch):
    batch = MagicMock()
    monkeypatch.setattr(sync_endpoint, "run_sync_batch", batch)
    return batch


@pytest.fixture
def client(orchestrator, order_service, enqueued):
    app.dependency_overrides[get_orchestrator] = lambda: orchestrator
    app.dependency_overrides[get_order_sync_service] = lambda: order_service
    yield TestClient(app)
    app.dependency_overrides.clear()


def test_start_sync_returns_accepted_and_enqueues(client, enqueued):
    response = client.post("/api/v1/sync/products")

    assert response.status_code == 202
    body = response.json()
    assert body["status"] == "started"
    assert body["resumed"] is False
    assert body["progress"]["total"] == 7
    enqueued.delay.assert_called_once_with()


def test_start_sync_resumes_existing_run(client, orchestrator):
    orchestrator.start()
    orchestrator.advance()

    body = client.post("/api/v1/sync/products").json()

    assert body["status"] == "resumed"
    assert body["progress"]["processed"] == 3


def test_forced_start_resets_progress(client, orchestrator):
    orchestrator.start()
    orchestrator.advance()

    body = client.post("/api/v1/sync/products", params={"force": True}).json()

    assert body["resumed"] is False
    assert body["progress"]["processed"] == 0
    assert body["progress"]["force_resync"] is True


def test_start_sync_reports_bad_gateway_when_unreachable(client, catalog, enqueued):
    catalog.reachable = False

    response = client.post("/api/v1/sync/products")

    assert response.status_code == 502
    assert "Could not connect to Printify" in response.json()["detail"]
    enqueued.delay.assert_not_called()


def test_status_and_clear(client, orchestrator):
    assert client.get("/api/v1/sync/status").json()["state"] == "not_started"

    orchestrator.start()
    orchestrator.advance()
    status = client.get("/api/v1/sync/status").json()
    assert status["state"] == "running"
    assert status["processed"] == 3
    assert "products" not in status

    assert client.delete("/api/v1/sync/progress").json() == {"status": "cleared"}
    assert client.get("/api/v1/sync/status").json()["state"] == "not_started"


def test_sync_order_endpoint(client, surecart):
    surecart.orders["ord_1"] = surecart_order()

    response = client.post("/api/v1/sync/orders/ord_1")

    assert response.status_code == 200
    assert response.json() == {"order_id": "ord_1", "printify_order_id": "pf-order-1"}

    again = client.post("/api/v1/sync/orders/ord_1")
    assert again.status_code == 409


def test_sync_order_error_codes(client, catalog, surecart):
    assert client.post("/api/v1/sync/orders/missing").status_code == 404

    surecart.orders["ord_2"] = surecart_order(order_id="ord_2", line_items=[])
    assert client.post("/api/v1/sync/orders/ord_2").status_code == 400

    catalog.fail_orders = True
    surecart.orders["ord_3"] = surecart_order(order_id="ord_3")
    assert client.post("/api/v1/sync/orders/ord_3").status_code == 502


def test_list_orders_includes_latest_note(client, surecart):
    surecart.orders["ord_1"] = surecart_order()
    client.post("/api/v1/sync/orders/ord_1")

    records = client.get("/api/v1/sync/orders").json()

    assert len(records) == 1
    assert records[0]["order_id"] == "ord_1"
    assert records[0]["printify_order_id"] == "pf-order-1"
    assert records[0]["last_note"] == "Order synced to Printify (ID: pf-order-1)"


def test_webhook_is_queued(client, monkeypatch):
    task = MagicMock()
    task.delay.return_value.id = "task-123"
    monkeypatch.setattr(webhook_receiver, "process_order_event", task)
    event = {"type": "order.created", "data": {"order": {"id": "ord_1"}}}

    response = client.post("/api/v1/webhooks/surecart", json=event)

    assert response.status_code == 202
    assert response.json() == {"status": "queued", "task_id": "task-123", "event_type": "order.created"}
    task.delay.assert_called_once_with(event)


def test_webhook_rejects_malformed_payload(client, monkeypatch):
    task = MagicMock()
    monkeypatch.setattr(webhook_receiver, "process_order_event", task)

    assert client.post("/api/v1/webhooks/surecart", json={"data": {}}).status_code == 400
    assert client.post(
        "/api/v1/webhooks/surecart",
        content=b"not json",
        headers={"Content-Type": "application/json"},
    ).status_code == 400
    task.delay.assert_not_called()
