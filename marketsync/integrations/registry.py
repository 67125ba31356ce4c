"""
Lookup of catalog sources by marketplace for the engines that work across
several marketplaces at once (repricing).
"""

import logging
from typing import Callable, Dict, Optional

from marketsync.core.exceptions import ValidationError
from marketsync.integrations.base import CatalogSource
from marketsync.schemas.sync import MarketplaceCredentials

logger = logging.getLogger(__name__)


class CatalogSourceRegistry:

    def __init__(self, sources: Optional[Dict[str, CatalogSource]] = None):
        self._sources: Dict[str, CatalogSource] = dict(sources or {})

    def register(self, source: CatalogSource) -> None:
        self._sources[source.marketplace_id] = source

    def get(self, marketplace_id: str) -> CatalogSource:
        source = self._sources.get(marketplace_id)
        if source is None:
            raise ValidationError(f"No catalog source configured for marketplace '{marketplace_id}'")
        return source

    def __contains__(self, marketplace_id: str) -> bool:
        return marketplace_id in self._sources

    @classmethod
    def from_credentials(
        cls,
        credentials: Dict[str, MarketplaceCredentials],
        factory: Callable[[str, MarketplaceCredentials], CatalogSource],
    ) -> "CatalogSourceRegistry":
        registry = cls()
        for marketplace_id, creds in credentials.items():
            if not creds.is_complete:
                logger.warning(f"Skipping marketplace {marketplace_id}: incomplete credentials")
                continue
            registry.register(factory(marketplace_id, creds))
        return registry
