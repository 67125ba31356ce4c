import logging
import uuid
from typing import Any, Dict, Optional

import httpx
from pydantic import ValidationError as SchemaValidationError

from marketsync.core.config import get_settings
from marketsync.core.enums import ListingStatus
from marketsync.core.exceptions import CatalogSourceError
from marketsync.integrations.base import CatalogSource, WriteResult
from marketsync.schemas.listing import ExternalListingItem, ListingsPage
from marketsync.schemas.sync import MarketplaceCredentials

logger = logging.getLogger(__name__)


def simplify_item(item: Dict[str, Any]) -> ExternalListingItem:
    """
    Flatten a raw gateway item into an ExternalListingItem.

    The gateway mirrors the marketplace item feed: price may come as a bare
    number or as {"amount": ...}, the published state as publishedStatus.
    """
    price = item.get("price")
    if isinstance(price, dict):
        price = price.get("amount")

    published = str(item.get("publishedStatus") or item.get("status") or "").upper()
    status = ListingStatus.ACTIVE if published in ("PUBLISHED", "ACTIVE") else ListingStatus.INACTIVE

    return ExternalListingItem(
        external_id=item.get("sku") or item.get("id"),
        sku=item.get("sku"),
        title=item.get("productName") or item.get("title"),
        price=price,
        quantity=item.get("inventoryCount") or item.get("quantity") or 0,
        status=status,
        upc=item.get("upc") or item.get("gtin"),
        raw=item,
    )


class HttpCatalogSource(CatalogSource):
    """
    Async client for a marketplace gateway speaking plain JSON over HTTP.

    Endpoints:
        GET  /listings?limit=&offset=     -> {"items": [...], "totalItems": N}
        GET  /inventory?sku=              -> {"quantity": {"amount": N}}
        POST /prices {"sku", "price"}     -> 2xx on success, {"message", "code"} otherwise
        PUT  /inventory?sku= {"quantity"} -> 2xx on success, same error shape

    Page tokens are stringified offsets. Every request carries the configured
    timeout; timeouts and network failures surface as CatalogSourceError.
    """

    def __init__(
        self,
        marketplace_id: str,
        credentials: MarketplaceCredentials,
        base_url: Optional[str] = None,
        page_size: Optional[int] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        super().__init__(marketplace_id)
        settings = get_settings()
        self.credentials = credentials
        self.base_url = (base_url or settings.CATALOG_BASE_URL).rstrip("/")
        self.page_size = page_size or settings.CATALOG_PAGE_SIZE
        self.timeout = timeout or settings.CATALOG_REQUEST_TIMEOUT_SECONDS
        self._transport = transport

    def _get_headers(self) -> Dict[str, str]:
        return {
            "X-Marketplace": self.marketplace_id,
            "X-Client-Id": self.credentials.client_id,
            "X-Client-Secret": self.credentials.client_secret,
            "X-Correlation-Id": str(uuid.uuid4()),
            "Accept": "application/json",
            "Content-Type": "application/json",
        }

    async def _make_request(
        self,
        method: str,
        endpoint: str,
        data: Optional[Dict] = None,
        params: Optional[Dict] = None,
    ) -> Dict:
        url = f"{self.base_url}/{endpoint.lstrip('/')}"
        logger.debug(f"Making {method} request to {url} params={params}")

        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                response = await client.request(
                    method=method,
                    url=url,
                    headers=self._get_headers(),
                    json=data,
                    params=params,
                )
        except httpx.TimeoutException as e:
            logger.error(f"Timeout calling {url}: {str(e)}")
            raise CatalogSourceError(f"Request timed out: {str(e)}")
        except httpx.RequestError as e:
            logger.error(f"Network error calling {url}: {str(e)}")
            raise CatalogSourceError(f"Network error: {str(e)}")

        if response.status_code not in (200, 201, 202, 204):
            message, code = self._parse_error(response)
            logger.error(f"Marketplace gateway error {response.status_code} for {url}: {message}")
            raise CatalogSourceError(message, status_code=response.status_code, error_code=code)

        if response.status_code == 204:
            return {}
        return response.json()

    @staticmethod
    def _parse_error(response: httpx.Response):
        try:
            body = response.json()
        except ValueError:
            return response.text or f"HTTP {response.status_code}", None

        errors = body.get("errors") if isinstance(body, dict) else None
        if isinstance(errors, list) and errors:
            first = errors[0]
            return first.get("message") or response.text, first.get("code")
        if isinstance(body, dict):
            return body.get("message") or response.text, body.get("code")
        return response.text, None

    async def fetch_listings_page(self, page_token: Optional[str] = None) -> ListingsPage:
        offset = int(page_token) if page_token else 0
        payload = await self._make_request(
            "GET",
            "/listings",
            params={"limit": self.page_size, "offset": offset},
        )

        raw_items = payload.get("items") or payload.get("ItemResponse") or []
        items = []
        rejected_ids = []
        for item in raw_items:
            identifier = item.get("sku") or item.get("id")
            if not identifier:
                logger.warning(f"Skipping gateway item without an identifier: {item}")
                continue
            try:
                items.append(simplify_item(item))
            except SchemaValidationError as e:
                logger.error(f"Rejecting malformed gateway item {identifier}: {str(e)}")
                rejected_ids.append(str(identifier).strip())

        total = payload.get("totalItems")
        if total is None:
            # Without a total there is no way to know whether more pages exist
            logger.warning(
                f"Gateway response at offset {offset} has no totalItems; treating it as the last page"
            )
            total = 0

        fetched = offset + len(raw_items)
        has_more = len(raw_items) == self.page_size and fetched < total
        logger.debug(f"Fetched {len(items)} listings at offset {offset} (total {total}, more={has_more})")

        return ListingsPage(
            items=items,
            next_page_token=str(fetched) if has_more else None,
            rejected_ids=rejected_ids,
        )

    async def fetch_stock(self, external_id: str) -> int:
        payload = await self._make_request("GET", "/inventory", params={"sku": external_id})
        quantity = payload.get("quantity")
        if isinstance(quantity, dict):
            quantity = quantity.get("amount")
        return int(quantity or 0)

    async def write_price(self, external_id: str, price: float) -> WriteResult:
        try:
            await self._make_request("POST", "/prices", data={"sku": external_id, "price": price})
        except CatalogSourceError as e:
            return WriteResult(ok=False, error=str(e), error_code=e.error_code)
        return WriteResult(ok=True)

    async def write_inventory(self, external_id: str, quantity: int) -> WriteResult:
        try:
            await self._make_request(
                "PUT",
                "/inventory",
                data={"sku": external_id, "quantity": {"unit": "EACH", "amount": quantity}},
                params={"sku": external_id},
            )
        except CatalogSourceError as e:
            return WriteResult(ok=False, error=str(e), error_code=e.error_code)
        return WriteResult(ok=True)
