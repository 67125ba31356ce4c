# marketsync/dependencies.py
from typing import Callable, Dict

from marketsync.integrations.http_source import HttpCatalogSource
from marketsync.integrations.registry import CatalogSourceRegistry
from marketsync.schemas.sync import MarketplaceCredentials
from marketsync.services.inventory_sync import InventorySyncWorker
from marketsync.services.repricing_service import RepricingEngine, get_repricing_engine
from marketsync.services.sync_orchestrator import SyncOrchestrator, get_sync_orchestrator

RepricingEngineBuilder = Callable[[Dict[str, MarketplaceCredentials]], RepricingEngine]
SourceRegistryBuilder = Callable[[Dict[str, MarketplaceCredentials]], CatalogSourceRegistry]


def get_orchestrator() -> SyncOrchestrator:
    """Dependency for the process-wide sync orchestrator."""
    return get_sync_orchestrator()


def get_repricing_engine_builder() -> RepricingEngineBuilder:
    """Dependency returning a builder, since price writes need the request's credentials."""
    return get_repricing_engine


def get_inventory_worker() -> InventorySyncWorker:
    # Shared with the orchestrator so stock columns keep a single writer
    return get_sync_orchestrator().inventory_worker


def build_source_registry(credentials: Dict[str, MarketplaceCredentials]) -> CatalogSourceRegistry:
    return CatalogSourceRegistry.from_credentials(credentials, HttpCatalogSource)


def get_source_registry_builder() -> SourceRegistryBuilder:
    return build_source_registry
