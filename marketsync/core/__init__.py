"""
Core module exports.
"""
from .enums import (
    ListingStatus,
    ListingSyncStatus,
    SyncRunStatus,
    ProfitType,
    RepricingAction,
    AuditEventType,
)

from .exceptions import (
    BaseServiceError,
    PlatformServiceError,
    CatalogSourceError,
    ValidationError,
    DatabaseError,
)
