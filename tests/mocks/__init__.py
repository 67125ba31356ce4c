from tests.mocks.fake_marketplace import (
    FakeCatalogSource,
    InMemoryListingStore,
    RecordingAuditSink,
    RecordingStatusTracker,
    make_item,
)

__all__ = [
    'FakeCatalogSource',
    'InMemoryListingStore',
    'RecordingAuditSink',
    'RecordingStatusTracker',
    'make_item',
]
