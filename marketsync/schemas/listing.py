"""
Listing schemas.

The write payloads (NewListing, ReconciledFields, InventoryFields, PricingFields)
are deliberately disjoint: each store write method accepts exactly one of them,
so the reconciliation path has no way to express a stock write and the
inventory path has no way to express a price or title write.
"""

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from marketsync.core.enums import ListingStatus
from marketsync.schemas.base import BaseSchema


class ExternalListingItem(BaseModel):
    """One marketplace record as seen in a single fetch cycle. Never persisted."""
    external_id: str
    sku: Optional[str] = None
    title: Optional[str] = None
    price: Optional[float] = None
    quantity: int = 0
    status: ListingStatus = ListingStatus.ACTIVE
    upc: Optional[str] = None
    raw: Dict[str, Any] = Field(default_factory=dict)

    @field_validator('external_id', mode='before')
    @classmethod
    def validate_external_id(cls, v):
        if v is None or str(v).strip() == '':
            raise ValueError('external_id is required')
        return str(v).strip()

    @field_validator('price', mode='before')
    @classmethod
    def validate_price(cls, v):
        if v is None or v == '':
            return None
        try:
            return float(v)
        except (ValueError, TypeError):
            raise ValueError(f'Price must be a valid number, got: {v}')

    @field_validator('quantity', mode='before')
    @classmethod
    def validate_quantity(cls, v):
        if v is None or v == '':
            return 0
        return int(v)


class ListingsPage(BaseModel):
    items: List[ExternalListingItem] = Field(default_factory=list)
    next_page_token: Optional[str] = None
    # Identifiers of records on this page that could not be parsed
    rejected_ids: List[str] = Field(default_factory=list)


class ExistingListing(BaseSchema):
    """The slice of a stored listing the reconciler needs to diff against."""
    id: int
    external_id: str
    product_id: Optional[int] = None


# --- Write payloads, one per owning subsystem ---

class ReconciledFields(BaseModel):
    """Fields the reconciler may overwrite on an existing listing."""
    model_config = ConfigDict(frozen=True)

    sku: Optional[str] = None
    title: Optional[str] = None
    price: Optional[float] = None
    status: ListingStatus = ListingStatus.ACTIVE
    upc: Optional[str] = None
    external_data: Dict[str, Any] = Field(default_factory=dict)

    @classmethod
    def from_item(cls, item: ExternalListingItem) -> "ReconciledFields":
        return cls(
            sku=item.sku or item.external_id,
            title=item.title,
            price=item.price,
            status=item.status,
            upc=item.upc,
            external_data=item.raw,
        )


class NewListing(BaseModel):
    """
    Insert payload. Stock fields are seeded from the snapshot here because no
    authoritative value exists yet; the inventory worker owns them afterwards.
    """
    model_config = ConfigDict(frozen=True)

    user_id: str
    marketplace_id: str
    external_id: str
    fields: ReconciledFields
    current_stock_level: Optional[int] = 0
    is_available: bool = False
    product_id: Optional[int] = None

    @classmethod
    def from_item(cls, user_id: str, marketplace_id: str, item: ExternalListingItem) -> "NewListing":
        quantity = max(item.quantity, 0)
        return cls(
            user_id=user_id,
            marketplace_id=marketplace_id,
            external_id=item.external_id,
            fields=ReconciledFields.from_item(item),
            current_stock_level=quantity,
            is_available=quantity > 0,
            product_id=None,
        )


class InventoryFields(BaseModel):
    """Fields only the inventory sync worker writes."""
    model_config = ConfigDict(frozen=True)

    current_stock_level: int
    is_available: bool

    @classmethod
    def from_stock(cls, stock_level: int) -> "InventoryFields":
        stock_level = max(int(stock_level or 0), 0)
        return cls(current_stock_level=stock_level, is_available=stock_level > 0)


class PricingFields(BaseModel):
    """Fields only the repricing engine writes. price is left out for notify-only updates."""
    model_config = ConfigDict(frozen=True)

    minimum_resell_price: float
    price: Optional[float] = None


# --- Read models ---

class RepricingListing(BaseSchema):
    """A stored listing as the repricing engine sees it."""
    id: int
    user_id: str
    marketplace_id: str
    external_id: str
    sku: Optional[str] = None
    product_id: Optional[int] = None
    price: Optional[float] = None
    marketplace_fee_percentage: Optional[float] = None
    minimum_resell_price: Optional[float] = None



class InventoryListing(BaseSchema):
    """A stored listing as source-stock propagation sees it."""
    id: int
    user_id: str
    marketplace_id: str
    external_id: str
    product_id: Optional[int] = None
    current_stock_level: Optional[int] = 0
