# tests/unit/test_scheduler.py
import pytest
from unittest.mock import AsyncMock, MagicMock

from marketsync import scheduler as scheduler_module
from marketsync.core.config import Settings
from marketsync.services.repricing_service import BatchRepricingSummary


@pytest.fixture(autouse=True)
def reset_scheduler():
    scheduler_module.scheduler = None
    yield
    scheduler_module.scheduler = None


def test_daily_job_registered_when_enabled(mocker):
    mocker.patch.object(scheduler_module, "get_settings", return_value=Settings(
        REPRICING_SCHEDULE_ENABLED=True, REPRICING_SCHEDULE="30 4 * * *",
    ))

    sched = scheduler_module.create_scheduler()

    job = sched.get_job("daily_repricing")
    assert job is not None
    assert job.max_instances == 1


def test_no_jobs_when_disabled(mocker):
    mocker.patch.object(scheduler_module, "get_settings", return_value=Settings(REPRICING_SCHEDULE_ENABLED=False))

    sched = scheduler_module.create_scheduler()

    assert sched.get_jobs() == []


@pytest.mark.asyncio
async def test_daily_task_runs_every_configured_user(mocker):
    # 1. Arrange
    mocker.patch.object(scheduler_module, "get_settings", return_value=Settings(REPRICING_USER_IDS="u1, u2"))
    engine = MagicMock()
    engine.reprice_below_minimum = AsyncMock(side_effect=[RuntimeError("db down"), BatchRepricingSummary(processed=1)])
    mocker.patch.object(scheduler_module, "get_repricing_engine", return_value=engine)

    # 2. Act
    await scheduler_module.daily_repricing_task()

    # 3. Assert: the first user's failure does not stop the second
    assert [c.args[0] for c in engine.reprice_below_minimum.await_args_list] == ["u1", "u2"]


@pytest.mark.asyncio
async def test_status_before_start():
    assert await scheduler_module.get_scheduler_status() == {"status": "not_initialized", "jobs": []}
