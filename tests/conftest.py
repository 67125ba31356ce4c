# tests/conftest.py
import pytest
from unittest.mock import AsyncMock, MagicMock

from marketsync.integrations.registry import CatalogSourceRegistry
from marketsync.services.inventory_sync import InventorySyncWorker
from marketsync.services.reconciler import Reconciler
from marketsync.services.repricing_service import RepricingEngine
from tests.mocks import (
    FakeCatalogSource,
    InMemoryListingStore,
    RecordingAuditSink,
    RecordingStatusTracker,
)

MARKETPLACE_ID = "walmart"


@pytest.fixture
def store():
    return InMemoryListingStore()


@pytest.fixture
def audit():
    return RecordingAuditSink()


@pytest.fixture
def status_tracker():
    return RecordingStatusTracker()


@pytest.fixture
def source():
    return FakeCatalogSource(marketplace_id=MARKETPLACE_ID)


@pytest.fixture
def reconciler(store, audit):
    return Reconciler(store, audit)


@pytest.fixture
def inventory_worker(store, audit):
    return InventorySyncWorker(store, audit, delay_seconds=0)


@pytest.fixture
def repricing_engine(store, audit, source):
    return RepricingEngine(
        store,
        audit,
        CatalogSourceRegistry({MARKETPLACE_ID: source}),
        default_fee_percentage=15.0,
        price_threshold=0.01,
    )


@pytest.fixture
def mock_session():
    """AsyncMock session usable as `async with session_factory() as session`"""
    session = AsyncMock()
    session.add = MagicMock()
    return session


@pytest.fixture
def session_factory(mock_session):
    factory = MagicMock()
    factory.return_value.__aenter__ = AsyncMock(return_value=mock_session)
    factory.return_value.__aexit__ = AsyncMock(return_value=False)
    return factory
