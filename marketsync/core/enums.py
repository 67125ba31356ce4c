"""
Shared enums and constants used across the application.
"""

from enum import Enum


class ListingStatus(str, Enum):
    """Marketplace-facing listing status, owned by the reconciler"""
    ACTIVE = "active"
    INACTIVE = "inactive"


class ListingSyncStatus(str, Enum):
    """Outcome of the last reconciliation for a single listing."""
    SYNCED = "synced"        # Present in the latest external snapshot
    NOT_FOUND = "not_found"  # Absent from the latest snapshot (soft delete, reversible)


class SyncRunStatus(str, Enum):
    """Per (user, marketplace) sync state machine: idle -> syncing -> completed | error"""
    IDLE = "idle"
    SYNCING = "syncing"
    COMPLETED = "completed"
    ERROR = "error"


class ProfitType(str, Enum):
    DOLLAR = "dollar"
    PERCENTAGE = "percentage"


class RepricingAction(str, Enum):
    NONE = "none"                # Already at or above the floor
    NOTIFY_ONLY = "notify_only"  # Floor recorded, automation disabled
    REPRICED = "repriced"        # Marketplace price pushed and stored
    FAILED = "failed"            # Marketplace write failed, stored price untouched


class AuditEventType(str, Enum):
    LISTING_CREATED = "listing_created"
    LISTING_SYNCED = "listing_synced"
    STOCK_UPDATED = "stock_updated"
    INVENTORY_SYNC = "inventory_sync"
    INVENTORY_UPDATE_ERROR = "inventory_update_error"
    REPRICING_APPLIED = "repricing_applied"
    DAILY_REPRICING_APPLIED = "daily_repricing_applied"
    DAILY_REPRICING_SKIPPED = "daily_repricing_skipped"
    PRICE_UPDATE_ERROR = "price_update_error"
    BULK_REPRICING = "bulk_repricing"
    BULK_DAILY_REPRICING = "bulk_daily_repricing"
    BULK_INVENTORY_SYNC = "bulk_inventory_sync"
