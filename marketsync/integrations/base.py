from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import AsyncIterator, Optional

from marketsync.schemas.listing import ExternalListingItem, ListingsPage


@dataclass
class WriteResult:
    """Marketplace answer to a price or inventory write."""
    ok: bool
    error: Optional[str] = None
    error_code: Optional[str] = None


class CatalogSource(ABC):
    """
    One marketplace's listing API for one seller account.

    Transport concerns (token minting, request signing, payload shapes) live
    behind this interface; the sync engine only sees pages, stock counts and
    write results.
    """

    def __init__(self, marketplace_id: str):
        self.marketplace_id = marketplace_id

    @abstractmethod
    async def fetch_listings_page(self, page_token: Optional[str] = None) -> ListingsPage:
        """Fetch one page of current listings. next_page_token is None on the last page."""
        pass

    @abstractmethod
    async def fetch_stock(self, external_id: str) -> int:
        """Read the authoritative stock count for one listing"""
        pass

    @abstractmethod
    async def write_price(self, external_id: str, price: float) -> WriteResult:
        """Push a new price for one listing"""
        pass

    @abstractmethod
    async def write_inventory(self, external_id: str, quantity: int) -> WriteResult:
        """Push a new available quantity for one listing"""
        pass

    async def iter_pages(self) -> AsyncIterator[ListingsPage]:
        """
        Lazily walk every page of the catalog in marketplace order.

        Pages are requested on demand, so a consumer that stops early never
        fetches the rest. Calling it again restarts from the first page.
        """
        page_token = None
        while True:
            page = await self.fetch_listings_page(page_token)
            yield page
            if not page.next_page_token:
                break
            page_token = page.next_page_token

    async def iter_snapshot(self) -> AsyncIterator[ExternalListingItem]:
        """Items of every page, in marketplace order. Rejected records are not yielded."""
        async for page in self.iter_pages():
            for item in page.items:
                yield item
