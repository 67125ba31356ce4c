# tests/unit/integrations/test_catalog_registry.py
import pytest

from marketsync.core.exceptions import ValidationError
from marketsync.integrations.registry import CatalogSourceRegistry
from marketsync.schemas.sync import MarketplaceCredentials
from tests.mocks import FakeCatalogSource


def test_incomplete_credentials_are_skipped():
    registry = CatalogSourceRegistry.from_credentials(
        {
            "walmart": MarketplaceCredentials(client_id="id", client_secret="secret"),
            "ebay": MarketplaceCredentials(client_id="id"),
        },
        lambda marketplace_id, credentials: FakeCatalogSource(marketplace_id=marketplace_id),
    )

    assert "walmart" in registry
    assert "ebay" not in registry
    assert registry.get("walmart").marketplace_id == "walmart"


def test_unknown_marketplace_raises_validation_error():
    with pytest.raises(ValidationError):
        CatalogSourceRegistry().get("etsy")
