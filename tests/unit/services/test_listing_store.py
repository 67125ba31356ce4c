# tests/unit/services/test_listing_store.py
import pytest
from unittest.mock import MagicMock
from sqlalchemy.dialects import postgresql
from sqlalchemy.exc import OperationalError

from marketsync.core.enums import ListingStatus, ListingSyncStatus
from marketsync.core.exceptions import DatabaseError
from marketsync.models.listing import Listing
from marketsync.schemas.listing import InventoryFields, NewListing, PricingFields, ReconciledFields
from marketsync.services.listing_store import SqlListingStore, inventory_values, reconciled_values
from tests.mocks import make_item

INVENTORY_COLUMNS = {"current_stock_level", "is_available"}
PRICING_COLUMNS = {"minimum_resell_price", "price", "marketplace_fee_percentage"}


def executed_params(mock_session) -> set:
    """Bind parameter names of the statement passed to session.execute"""
    stmt = mock_session.execute.call_args.args[0]
    return set(stmt.compile(dialect=postgresql.dialect()).params)


def test_reconciled_values_exclude_stock_columns():
    values = reconciled_values(ReconciledFields.from_item(make_item("A1", quantity=9)))

    assert set(values) == {"sku", "title", "price", "status", "upc", "external_data", "sync_status", "last_synced_at"}
    assert values["sync_status"] == ListingSyncStatus.SYNCED.value
    assert values["status"] == ListingStatus.ACTIVE.value


def test_inventory_values_are_stock_only():
    assert inventory_values(InventoryFields.from_stock(-3)) == {"current_stock_level": 0, "is_available": False}


@pytest.mark.asyncio
async def test_reconciled_update_sets_only_reconciled_columns(session_factory, mock_session):
    # 1. Arrange
    store = SqlListingStore(session_factory=session_factory)

    # 2. Act
    await store.update_reconciled_fields(3, ReconciledFields(title="T", price=1.0))

    # 3. Assert
    params = executed_params(mock_session)
    assert {"title", "price", "sync_status"} <= params
    assert not params & (INVENTORY_COLUMNS | PRICING_COLUMNS)
    mock_session.commit.assert_awaited_once()


@pytest.mark.asyncio
async def test_inventory_update_sets_only_stock_columns(session_factory, mock_session):
    result = MagicMock()
    result.first.return_value = MagicMock(id=4, product_id=None)
    mock_session.execute.return_value = result
    store = SqlListingStore(session_factory=session_factory)

    listing = await store.update_inventory_fields("u", "walmart", "A1", InventoryFields.from_stock(2))

    assert listing.id == 4
    assert listing.external_id == "A1"
    params = executed_params(mock_session)
    assert INVENTORY_COLUMNS <= params
    assert not params & {"title", "price", "sync_status", "minimum_resell_price"}


@pytest.mark.asyncio
async def test_inventory_update_without_matching_row_returns_none(session_factory, mock_session):
    result = MagicMock()
    result.first.return_value = None
    mock_session.execute.return_value = result
    store = SqlListingStore(session_factory=session_factory)

    assert await store.update_inventory_fields("u", "walmart", "NOPE", InventoryFields.from_stock(2)) is None


@pytest.mark.asyncio
async def test_notify_only_pricing_update_leaves_price_out(session_factory, mock_session):
    store = SqlListingStore(session_factory=session_factory)

    await store.update_pricing_fields(5, PricingFields(minimum_resell_price=17.25))

    params = executed_params(mock_session)
    assert "minimum_resell_price" in params
    assert "price" not in params
    assert not params & INVENTORY_COLUMNS


@pytest.mark.asyncio
async def test_create_listing_inserts_unlinked_synced_row(session_factory, mock_session):
    # 1. Arrange
    def assign_id():
        mock_session.add.call_args.args[0].id = 11

    mock_session.flush.side_effect = assign_id
    store = SqlListingStore(session_factory=session_factory)
    new = NewListing.from_item("u", "walmart", make_item("X1", quantity=2))

    # 2. Act
    created = await store.create_listing(new)

    # 3. Assert
    assert created.id == 11
    assert created.product_id is None
    listing = mock_session.add.call_args.args[0]
    assert isinstance(listing, Listing)
    assert listing.product_id is None
    assert listing.sync_status == ListingSyncStatus.SYNCED.value
    assert listing.current_stock_level == 2
    mock_session.commit.assert_awaited_once()


@pytest.mark.asyncio
async def test_database_failures_surface_as_database_error(session_factory, mock_session):
    mock_session.execute.side_effect = OperationalError("UPDATE listings", {}, Exception("connection lost"))
    store = SqlListingStore(session_factory=session_factory)

    with pytest.raises(DatabaseError):
        await store.mark_status(1, ListingSyncStatus.NOT_FOUND)
    mock_session.commit.assert_not_awaited()


@pytest.mark.asyncio
async def test_inventory_listings_for_product_carry_stored_stock(session_factory, mock_session):
    result = MagicMock()
    result.scalars.return_value.all.return_value = [
        Listing(id=1, user_id="u", marketplace_id="walmart", external_id="A1", product_id=7, current_stock_level=3),
        Listing(id=2, user_id="u", marketplace_id="ebay", external_id="E1", product_id=7, current_stock_level=None),
    ]
    mock_session.execute.return_value = result
    store = SqlListingStore(session_factory=session_factory)

    listings = await store.get_inventory_listings_for_product("u", 7)

    assert [(listing.external_id, listing.current_stock_level) for listing in listings] == [("A1", 3), ("E1", None)]
    mock_session.commit.assert_not_awaited()
