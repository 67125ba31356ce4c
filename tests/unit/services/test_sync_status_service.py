# tests/unit/services/test_sync_status_service.py
import pytest
from unittest.mock import MagicMock
from sqlalchemy.dialects import postgresql

from marketsync.core.enums import SyncRunStatus
from marketsync.services.sync_status_service import SyncStatusService, status_values


def test_error_message_only_kept_in_error_state():
    assert status_values(SyncRunStatus.ERROR, error_message="boom")["error_message"] == "boom"
    assert status_values(SyncRunStatus.COMPLETED, error_message="boom")["error_message"] is None


def test_unset_counters_are_not_overwritten():
    values = status_values(SyncRunStatus.SYNCING)
    assert "total_listings" not in values
    assert "last_full_sync" not in values


@pytest.mark.asyncio
async def test_update_status_upserts_on_user_and_marketplace(session_factory, mock_session):
    service = SyncStatusService(session_factory=session_factory)

    ok = await service.update_status("user-1", "walmart", SyncRunStatus.COMPLETED, total_listings=12)

    assert ok is True
    stmt = mock_session.execute.call_args.args[0]
    sql = str(stmt.compile(dialect=postgresql.dialect()))
    assert "ON CONFLICT (user_id, marketplace_id) DO UPDATE" in sql
    mock_session.commit.assert_awaited_once()


@pytest.mark.asyncio
async def test_update_status_failure_does_not_raise(session_factory, mock_session):
    mock_session.execute.side_effect = RuntimeError("connection refused")
    service = SyncStatusService(session_factory=session_factory)

    assert await service.update_status("user-1", "walmart", SyncRunStatus.SYNCING) is False


@pytest.mark.asyncio
async def test_missing_record_reads_as_idle(session_factory, mock_session):
    result = MagicMock()
    result.scalar_one_or_none.return_value = None
    mock_session.execute.return_value = result
    service = SyncStatusService(session_factory=session_factory)

    status = await service.get_status("user-1", "walmart")

    assert status.status == SyncRunStatus.IDLE.value
    assert status.user_id == "user-1"
