# tests/test_routes/test_sync_routes.py
import pytest
from unittest.mock import AsyncMock, MagicMock
from fastapi.testclient import TestClient

from marketsync.core.exceptions import ValidationError
from marketsync.dependencies import (
    get_inventory_worker,
    get_orchestrator,
    get_repricing_engine_builder,
    get_source_registry_builder,
)
from marketsync.main import app
from marketsync.schemas.sync import SyncStatusRead
from marketsync.services.inventory_sync import InventoryPropagationSummary
from marketsync.services.repricing_service import BatchRepricingSummary
from marketsync.services.sync_orchestrator import SyncRunResult

SYNC_BODY = {"user_id": "user-1", "credentials": {"client_id": "id", "client_secret": "secret"}}


@pytest.fixture
def orchestrator():
    return MagicMock()


@pytest.fixture
def engine():
    return MagicMock()


@pytest.fixture
def worker():
    return MagicMock()


@pytest.fixture
def registry():
    return MagicMock()


@pytest.fixture
def client(orchestrator, engine, worker, registry):
    app.dependency_overrides[get_orchestrator] = lambda: orchestrator
    app.dependency_overrides[get_repricing_engine_builder] = lambda: (lambda credentials: engine)
    app.dependency_overrides[get_inventory_worker] = lambda: worker
    app.dependency_overrides[get_source_registry_builder] = lambda: (lambda credentials: registry)
    yield TestClient(app)
    app.dependency_overrides.clear()


def test_run_sync_returns_counts(client, orchestrator):
    orchestrator.run_sync = AsyncMock(return_value=SyncRunResult(
        success=True,
        user_id="user-1",
        marketplace_id="walmart",
        results={"added": 1, "updated": 2, "not_found": 0, "errors": 0},
        total_synced=3,
    ))

    response = client.post("/api/sync/walmart", json=SYNC_BODY)

    assert response.status_code == 200
    body = response.json()
    assert body["success"] is True
    assert body["results"]["updated"] == 2
    assert body["total_synced"] == 3
    called_with = orchestrator.run_sync.await_args.args
    assert called_with[0] == "user-1"
    assert called_with[1] == "walmart"
    assert called_with[2].client_secret == "secret"


def test_run_sync_validation_error_is_400(client, orchestrator):
    orchestrator.run_sync = AsyncMock(side_effect=ValidationError("Marketplace credentials not configured for walmart"))

    response = client.post("/api/sync/walmart", json=SYNC_BODY)

    assert response.status_code == 400
    assert "credentials" in response.json()["detail"]


def test_failed_fetch_is_502_with_partial_counts(client, orchestrator):
    orchestrator.run_sync = AsyncMock(return_value=SyncRunResult(
        success=False,
        user_id="user-1",
        marketplace_id="walmart",
        results={"added": 4, "updated": 0, "not_found": 0, "errors": 0},
        total_synced=4,
        error="Request timed out",
    ))

    response = client.post("/api/sync/walmart", json=SYNC_BODY)

    assert response.status_code == 502
    assert response.json()["error"] == "Request timed out"
    assert response.json()["results"]["added"] == 4


def test_status_endpoint(client, orchestrator):
    orchestrator.get_status = AsyncMock(return_value=SyncStatusRead(
        user_id="user-1", marketplace_id="walmart", status="completed", total_listings=3,
    ))

    response = client.get("/api/sync/walmart/status", params={"user_id": "user-1"})

    assert response.status_code == 200
    assert response.json()["status"] == "completed"
    orchestrator.get_status.assert_awaited_once_with("user-1", "walmart")


def test_batch_repricing_requires_items(client):
    response = client.post("/api/repricing/batch", json={"user_id": "user-1", "credentials": {}, "items": []})

    assert response.status_code == 400


def test_batch_repricing_returns_summary(client, engine):
    engine.batch_reprice = AsyncMock(return_value=BatchRepricingSummary(processed=1, updated=1))
    body = {
        "user_id": "user-1",
        "credentials": {"walmart": {"client_id": "id", "client_secret": "secret"}},
        "settings": {"automated_repricing_enabled": True, "minimum_profit_type": "dollar", "minimum_profit_value": 3},
        "items": [{
            "listing": {"id": 1, "user_id": "user-1", "marketplace_id": "walmart", "external_id": "R1", "price": 15.0},
            "new_source_cost": 10,
            "shipping_cost": 2,
        }],
    }

    response = client.post("/api/repricing/batch", json=body)

    assert response.status_code == 200
    assert response.json()["updated"] == 1
    items, settings = engine.batch_reprice.await_args.args
    assert items[0].listing.external_id == "R1"
    assert settings.automated_repricing_enabled is True
    assert engine.batch_reprice.await_args.kwargs["user_id"] == "user-1"


def test_below_minimum_endpoint(client, engine):
    engine.reprice_below_minimum = AsyncMock(return_value=BatchRepricingSummary(processed=2, skipped=2))

    response = client.post("/api/repricing/below-minimum", json={"user_id": "user-1", "credentials": {}})

    assert response.status_code == 200
    assert response.json()["skipped"] == 2


def test_product_repricing_endpoint(client, engine):
    engine.reprice_product = AsyncMock(return_value=BatchRepricingSummary(processed=2, updated=1, notified=1))
    body = {
        "user_id": "user-1",
        "credentials": {"walmart": {"client_id": "id", "client_secret": "secret"}},
        "new_source_cost": 12.0,
        "shipping_cost": 1.5,
        "settings": {"automated_repricing_enabled": True, "minimum_profit_type": "percentage", "minimum_profit_value": 25},
    }

    response = client.post("/api/repricing/product/42", json=body)

    assert response.status_code == 200
    assert response.json()["product_id"] == 42
    assert response.json()["updated"] == 1
    user_id, product_id, cost, shipping, settings = engine.reprice_product.await_args.args
    assert (user_id, product_id, cost, shipping) == ("user-1", 42, 12.0, 1.5)
    assert settings.minimum_profit_value == 25


def test_product_repricing_rejects_negative_cost(client, engine):
    engine.reprice_product = AsyncMock()

    response = client.post(
        "/api/repricing/product/42",
        json={"user_id": "user-1", "credentials": {}, "new_source_cost": -1},
    )

    assert response.status_code == 422
    engine.reprice_product.assert_not_awaited()


def test_product_inventory_sync_endpoint(client, worker, registry):
    worker.sync_product_inventory = AsyncMock(return_value=InventoryPropagationSummary(processed=2, updated=2))
    body = {
        "user_id": "user-1",
        "credentials": {"walmart": {"client_id": "id", "client_secret": "secret"}},
        "new_stock_level": 0,
        "settings": {"automated_inventory_sync_enabled": True},
    }

    response = client.post("/api/inventory/sync/product/7", json=body)

    assert response.status_code == 200
    assert response.json()["updated"] == 2
    assert response.json()["enabled"] is True
    sources, user_id, product_id, stock, settings = worker.sync_product_inventory.await_args.args
    assert sources is registry
    assert (user_id, product_id, stock) == ("user-1", 7, 0)
    assert settings.automated_inventory_sync_enabled is True


def test_batch_inventory_sync_requires_products(client):
    response = client.post("/api/inventory/sync/batch", json={"user_id": "user-1", "credentials": {}, "products": []})

    assert response.status_code == 400


def test_batch_inventory_sync_endpoint(client, worker):
    worker.batch_sync_inventory = AsyncMock(return_value=InventoryPropagationSummary(processed=2, updated=3))
    body = {
        "user_id": "user-1",
        "credentials": {},
        "settings": {"automated_inventory_sync_enabled": True},
        "products": [{"product_id": 1, "new_stock_level": 4}, {"product_id": 2, "new_stock_level": 0}],
    }

    response = client.post("/api/inventory/sync/batch", json=body)

    assert response.status_code == 200
    assert response.json()["total"] == 2
    assert response.json()["updated"] == 3
    products = worker.batch_sync_inventory.await_args.args[2]
    assert [p.product_id for p in products] == [1, 2]


def test_health(client):
    response = client.get("/health")

    assert response.status_code == 200
    assert response.json()["status"] == "healthy"
