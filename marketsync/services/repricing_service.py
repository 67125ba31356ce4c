# marketsync/services/repricing_service.py
"""
Minimum-price enforcement for marketplace listings.

The engine computes a floor from source cost, shipping, the user's profit
policy and the marketplace fee, and raises listing prices that sit below it.
It never lowers a price: this is floor enforcement, not price optimisation.

Formula:
    total   = source_cost + shipping
    base    = total + value             (profit type "dollar")
            = total * (1 + value / 100) (profit type "percentage")
            = total                     (no profit policy)
    minimum = base * (1 + fee_percentage / 100), rounded half-up to cents
"""

import logging
from dataclasses import asdict, dataclass, field
from decimal import Decimal, ROUND_HALF_UP
from typing import Any, Dict, Iterable, List, Optional, Tuple

from marketsync.core.config import get_settings
from marketsync.core.enums import AuditEventType, ProfitType, RepricingAction
from marketsync.integrations.http_source import HttpCatalogSource
from marketsync.integrations.registry import CatalogSourceRegistry
from marketsync.schemas.listing import PricingFields, RepricingListing
from marketsync.schemas.sync import BatchRepricingItem, MarketplaceCredentials, RepricingSettings
from marketsync.services.audit_service import AuditService, AuditSink
from marketsync.services.listing_store import ListingStore, SqlListingStore

logger = logging.getLogger(__name__)

CENTS = Decimal("0.01")
REPRICING_REASON = "minimum_profit_threshold"


def calculate_minimum_resell_price(
    source_cost: float,
    settings: Optional[RepricingSettings] = None,
    marketplace_fee_percentage: Optional[float] = None,
    default_fee_percentage: Optional[float] = None,
    shipping_cost: float = 0.0,
) -> float:
    """
    Calculate the minimum resale price for a listing.

    Args:
        source_cost: Product cost
        settings: User repricing settings carrying the profit policy
        marketplace_fee_percentage: Listing-specific fee in percent (15 == 15%)
        default_fee_percentage: Fee used when the listing has none
        shipping_cost: Shipping added to the cost before any margin

    Returns:
        Minimum price rounded to 2 decimal places

    Examples:
        cost 12, profit $3, fee 15%  -> 17.25
        cost 12, profit 25%, fee 15% -> 17.25
        cost 12, no profit, fee 15%  -> 13.80
    """
    total = Decimal(str(source_cost or 0)) + Decimal(str(shipping_cost or 0))
    base = total

    if settings is not None and settings.has_profit_policy:
        value = Decimal(str(settings.minimum_profit_value))
        if settings.minimum_profit_type == ProfitType.DOLLAR:
            base = total + value
        elif settings.minimum_profit_type == ProfitType.PERCENTAGE:
            base = total * (1 + value / 100)

    if marketplace_fee_percentage is None:
        if default_fee_percentage is None:
            default_fee_percentage = get_settings().DEFAULT_MARKETPLACE_FEE_PERCENTAGE
        marketplace_fee_percentage = default_fee_percentage
    fee_rate = Decimal(str(marketplace_fee_percentage)) / 100

    minimum = (base * (1 + fee_rate)).quantize(CENTS, rounding=ROUND_HALF_UP)
    return float(minimum)


def needs_repricing(listing: RepricingListing, minimum_price: float) -> bool:
    return (listing.price or 0.0) < minimum_price


@dataclass
class PriceUpdateOutcome:
    """Per-listing result of a repricing attempt. Logged, never persisted."""
    listing_id: int
    success: bool
    action: RepricingAction
    old_price: Optional[float]
    new_price: Optional[float]
    minimum_price: float
    error: Optional[str] = None
    error_code: Optional[str] = None


@dataclass
class BatchRepricingSummary:
    processed: int = 0
    updated: int = 0
    failed: int = 0
    notified: int = 0
    skipped: int = 0
    errors: List[Dict[str, Any]] = field(default_factory=list)

    def record(self, outcome: PriceUpdateOutcome) -> None:
        self.processed += 1
        if outcome.action == RepricingAction.REPRICED:
            self.updated += 1
        elif outcome.action == RepricingAction.NOTIFY_ONLY:
            self.notified += 1
        elif not outcome.success:
            self.failed += 1
            self.errors.append({"listing_id": outcome.listing_id, "error": outcome.error})

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


class RepricingEngine:
    """Coordinates floor calculation, marketplace price writes and their bookkeeping."""

    def __init__(
        self,
        store: ListingStore,
        audit: AuditSink,
        sources: CatalogSourceRegistry,
        default_fee_percentage: Optional[float] = None,
        price_threshold: Optional[float] = None,
    ):
        settings = get_settings()
        self.store = store
        self.audit = audit
        self.sources = sources
        self.default_fee_percentage = (
            default_fee_percentage if default_fee_percentage is not None
            else settings.DEFAULT_MARKETPLACE_FEE_PERCENTAGE
        )
        self.price_threshold = (
            price_threshold if price_threshold is not None else settings.REPRICING_PRICE_THRESHOLD
        )

    async def reprice(
        self,
        listing: RepricingListing,
        new_source_cost: float,
        shipping_cost: float,
        settings: RepricingSettings,
    ) -> PriceUpdateOutcome:
        """
        Enforce the minimum price on one listing after a source cost change.

        - price >= minimum: nothing is written or logged
        - automation disabled: only minimum_resell_price is stored
        - automation enabled: the marketplace price is written first; price and
          minimum_resell_price are stored only if that write succeeded
        """
        minimum_price = calculate_minimum_resell_price(
            new_source_cost,
            settings,
            listing.marketplace_fee_percentage,
            self.default_fee_percentage,
            shipping_cost=shipping_cost,
        )

        if not needs_repricing(listing, minimum_price):
            return PriceUpdateOutcome(
                listing_id=listing.id,
                success=True,
                action=RepricingAction.NONE,
                old_price=listing.price,
                new_price=listing.price,
                minimum_price=minimum_price,
            )

        if not settings.automated_repricing_enabled:
            return await self._record_minimum_only(listing, minimum_price)

        return await self._push_price(listing, minimum_price, REPRICING_REASON)

    async def _record_minimum_only(self, listing: RepricingListing, minimum_price: float) -> PriceUpdateOutcome:
        try:
            await self.store.update_pricing_fields(listing.id, PricingFields(minimum_resell_price=minimum_price))
        except Exception as e:
            logger.error(f"Failed to store minimum price for listing {listing.id}: {str(e)}")
            return PriceUpdateOutcome(
                listing_id=listing.id,
                success=False,
                action=RepricingAction.FAILED,
                old_price=listing.price,
                new_price=listing.price,
                minimum_price=minimum_price,
                error=str(e),
            )

        logger.info(f"Listing {listing.id} below minimum {minimum_price}; automation disabled, floor recorded")
        return PriceUpdateOutcome(
            listing_id=listing.id,
            success=True,
            action=RepricingAction.NOTIFY_ONLY,
            old_price=listing.price,
            new_price=listing.price,
            minimum_price=minimum_price,
        )

    async def _push_price(
        self,
        listing: RepricingListing,
        new_price: float,
        reason: str,
        event_type: str = AuditEventType.REPRICING_APPLIED.value,
    ) -> PriceUpdateOutcome:
        error = None
        error_code = None
        try:
            source = self.sources.get(listing.marketplace_id)
            write = await source.write_price(listing.external_id, new_price)
            if not write.ok:
                error, error_code = write.error or "Price update rejected", write.error_code
        except Exception as e:
            error = str(e)
            error_code = getattr(e, "error_code", None)

        if error is not None:
            logger.warning(f"Price update for listing {listing.id} on {listing.marketplace_id} failed: {error}")
            await self.audit.log_price_update_error(
                listing.id,
                listing.product_id,
                listing.user_id,
                new_price,
                listing.marketplace_id,
                error,
                error_code,
            )
            return PriceUpdateOutcome(
                listing_id=listing.id,
                success=False,
                action=RepricingAction.FAILED,
                old_price=listing.price,
                new_price=listing.price,
                minimum_price=new_price,
                error=error,
                error_code=error_code,
            )

        try:
            await self.store.update_pricing_fields(
                listing.id, PricingFields(minimum_resell_price=new_price, price=new_price)
            )
        except Exception as e:
            # The marketplace already carries the new price; the next reconciliation brings it back in
            logger.error(f"Listing {listing.id} repriced on {listing.marketplace_id} but local store write failed: {str(e)}")
            return PriceUpdateOutcome(
                listing_id=listing.id,
                success=False,
                action=RepricingAction.FAILED,
                old_price=listing.price,
                new_price=new_price,
                minimum_price=new_price,
                error=str(e),
            )

        await self.audit.log_repricing(
            listing.id,
            listing.product_id,
            listing.user_id,
            listing.price,
            new_price,
            listing.marketplace_id,
            reason,
            event_type=event_type,
        )
        logger.info(f"Repriced listing {listing.id} from {listing.price} to {new_price}")
        return PriceUpdateOutcome(
            listing_id=listing.id,
            success=True,
            action=RepricingAction.REPRICED,
            old_price=listing.price,
            new_price=new_price,
            minimum_price=new_price,
        )

    async def _reprice_many(
        self,
        work: Iterable[Tuple[RepricingListing, float, float]],
        settings: RepricingSettings,
    ) -> BatchRepricingSummary:
        summary = BatchRepricingSummary()
        for listing, source_cost, shipping_cost in work:
            try:
                outcome = await self.reprice(listing, source_cost, shipping_cost, settings)
            except Exception as e:
                logger.error(f"Repricing listing {listing.id} failed: {str(e)}", exc_info=True)
                outcome = PriceUpdateOutcome(
                    listing_id=listing.id,
                    success=False,
                    action=RepricingAction.FAILED,
                    old_price=listing.price,
                    new_price=listing.price,
                    minimum_price=0.0,
                    error=str(e),
                )
            summary.record(outcome)
        return summary

    async def batch_reprice(
        self,
        items: List[BatchRepricingItem],
        settings: RepricingSettings,
        user_id: Optional[str] = None,
    ) -> BatchRepricingSummary:
        """Reprice each item independently and log one bulk_repricing event with the totals."""
        summary = await self._reprice_many(
            ((item.listing, item.new_source_cost, item.shipping_cost) for item in items),
            settings,
        )

        user_id = user_id or (items[0].listing.user_id if items else None)
        if user_id is not None:
            await self.audit.log_bulk_operation(user_id, "repricing", summary.processed, {
                "updated": summary.updated,
                "failed": summary.failed,
                "notified": summary.notified,
                "total": len(items),
            })

        logger.info(
            f"Batch repricing: processed {summary.processed}, updated {summary.updated}, "
            f"failed {summary.failed}"
        )
        return summary

    async def reprice_product(
        self,
        user_id: str,
        product_id: int,
        new_source_cost: float,
        shipping_cost: float,
        settings: RepricingSettings,
    ) -> BatchRepricingSummary:
        """Reprice every active listing sourced from one product after its cost changed."""
        listings = await self.store.get_active_listings_for_product(user_id, product_id)
        logger.info(f"Repricing {len(listings)} active listings for product {product_id}")
        return await self._reprice_many(
            ((listing, new_source_cost, shipping_cost) for listing in listings),
            settings,
        )

    async def reprice_below_minimum(self, user_id: str, settings: RepricingSettings) -> BatchRepricingSummary:
        """
        Daily check: push every active listing still priced under its stored
        minimum_resell_price up to that minimum.

        Listings less than price_threshold below their floor are ignored.
        """
        listings = await self.store.get_listings_below_minimum(user_id, self.price_threshold)
        logger.info(f"[Daily Repricing] Found {len(listings)} listings below minimum price for user {user_id}")

        summary = BatchRepricingSummary()
        for listing in listings:
            summary.processed += 1

            if not settings.automated_repricing_enabled:
                summary.skipped += 1
                await self.audit.log_repricing(
                    listing.id,
                    listing.product_id,
                    user_id,
                    listing.price,
                    listing.minimum_resell_price,
                    listing.marketplace_id,
                    "automated_repricing_disabled",
                    event_type=AuditEventType.DAILY_REPRICING_SKIPPED.value,
                )
                continue

            outcome = await self._push_price(
                listing,
                listing.minimum_resell_price,
                "daily_minimum_check",
                event_type=AuditEventType.DAILY_REPRICING_APPLIED.value,
            )
            if outcome.success:
                summary.updated += 1
            else:
                summary.failed += 1
                summary.errors.append({"listing_id": listing.id, "sku": listing.sku, "error": outcome.error})

        await self.audit.log_bulk_operation(user_id, "daily_repricing", summary.processed, {
            "updated": summary.updated,
            "skipped": summary.skipped,
            "failed": summary.failed,
        })
        logger.info(
            f"[Daily Repricing] User {user_id}: Processed {summary.processed}, Updated {summary.updated}, "
            f"Skipped {summary.skipped}, Failed {summary.failed}"
        )
        return summary


def configured_repricing_settings() -> RepricingSettings:
    """Repricing preferences for unattended runs (scheduler, CLI), read from the environment."""
    settings = get_settings()
    return RepricingSettings(
        automated_repricing_enabled=settings.REPRICING_AUTOMATED,
        minimum_profit_type=settings.REPRICING_PROFIT_TYPE,
        minimum_profit_value=settings.REPRICING_PROFIT_VALUE,
    )


def configured_credentials() -> Dict[str, MarketplaceCredentials]:
    return {
        marketplace_id: MarketplaceCredentials(**values)
        for marketplace_id, values in get_settings().marketplace_credentials.items()
    }


def get_repricing_engine(credentials: Optional[Dict[str, MarketplaceCredentials]] = None) -> RepricingEngine:
    """Build an engine whose price writes go to the marketplaces in `credentials`."""
    if credentials is None:
        credentials = configured_credentials()
    sources = CatalogSourceRegistry.from_credentials(credentials, HttpCatalogSource)
    return RepricingEngine(SqlListingStore(), AuditService(), sources)
