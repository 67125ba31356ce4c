from .listing import Listing
from .listing_log import ListingLog
from .sync_status import MarketplaceSyncStatus

# This ensures all models are registered with SQLAlchemy
__all__ = [
    'Listing',
    'ListingLog',
    'MarketplaceSyncStatus',
]
