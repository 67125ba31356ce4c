"""
Schemas for the sync and repricing API endpoints.
"""

from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field, NonNegativeInt, field_validator

from marketsync.core.enums import ProfitType
from marketsync.schemas.base import BaseSchema
from marketsync.schemas.listing import RepricingListing


class MarketplaceCredentials(BaseModel):
    """Opaque marketplace credentials; token minting happens in the gateway."""
    client_id: str = ""
    client_secret: str = ""
    extra: Dict[str, Any] = Field(default_factory=dict)

    @property
    def is_complete(self) -> bool:
        return bool(self.client_id.strip()) and bool(self.client_secret.strip())


class RepricingSettings(BaseModel):
    """Per-user repricing preferences."""
    automated_repricing_enabled: bool = False
    minimum_profit_type: Optional[ProfitType] = None
    minimum_profit_value: Optional[float] = None

    @field_validator('minimum_profit_type', mode='before')
    @classmethod
    def validate_profit_type(cls, v):
        if v in (None, ''):
            return None
        return v

    @property
    def has_profit_policy(self) -> bool:
        return self.minimum_profit_type is not None and bool(self.minimum_profit_value)


class InventorySyncSettings(BaseModel):
    """Per-user inventory propagation preferences."""
    automated_inventory_sync_enabled: bool = False


class ProductStockChange(BaseModel):
    """New source stock level of one product."""
    product_id: int
    new_stock_level: NonNegativeInt


class BatchRepricingItem(BaseModel):
    listing: RepricingListing
    new_source_cost: float
    shipping_cost: float = 0.0


class SyncRequest(BaseModel):
    user_id: str
    credentials: MarketplaceCredentials


class BatchRepricingRequest(BaseModel):
    user_id: str
    credentials: Dict[str, MarketplaceCredentials]  # keyed by marketplace_id
    settings: RepricingSettings = Field(default_factory=RepricingSettings)
    items: List[BatchRepricingItem]


class BelowMinimumRequest(BaseModel):
    user_id: str
    credentials: Dict[str, MarketplaceCredentials]  # keyed by marketplace_id
    settings: RepricingSettings = Field(default_factory=RepricingSettings)


class ProductRepricingRequest(BaseModel):
    user_id: str
    credentials: Dict[str, MarketplaceCredentials]  # keyed by marketplace_id
    new_source_cost: float = Field(ge=0)
    shipping_cost: float = Field(default=0.0, ge=0)
    settings: RepricingSettings = Field(default_factory=RepricingSettings)


class ProductInventorySyncRequest(BaseModel):
    user_id: str
    credentials: Dict[str, MarketplaceCredentials]  # keyed by marketplace_id
    new_stock_level: NonNegativeInt
    settings: InventorySyncSettings = Field(default_factory=InventorySyncSettings)


class BatchInventorySyncRequest(BaseModel):
    user_id: str
    credentials: Dict[str, MarketplaceCredentials]  # keyed by marketplace_id
    settings: InventorySyncSettings = Field(default_factory=InventorySyncSettings)
    products: List[ProductStockChange]


class SyncStatusRead(BaseSchema):
    user_id: str
    marketplace_id: str
    status: str
    last_full_sync: Optional[datetime] = None
    total_listings: Optional[int] = None
    error_message: Optional[str] = None
