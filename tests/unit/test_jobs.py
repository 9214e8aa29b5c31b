"""
Unit tests for the cron stage plumbing.

Covers the locked stage runner, the sweep actors' error handling and
the scheduler's job table.
"""

from contextlib import asynccontextmanager
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from sqlalchemy.exc import OperationalError

from jobs.scheduler import SCHEDULE, create_scheduler
from jobs.tasks import monthly_volumes as monthly_tasks
from jobs.tasks import sweep as sweep_tasks
from jobs.utils import stage as stage_module


def _lock_factory(acquired: bool):
    lock = MagicMock()
    lock.timeouts = []

    @asynccontextmanager
    async def _lock(key, timeout):
        lock.timeouts.append(timeout)
        yield acquired

    lock.lock = _lock
    return lock


@pytest.fixture
def stage_env(mock_session, mock_redis_client):
    """Patch engine, sessions and Redis used by run_locked_stage."""
    engine = MagicMock()
    engine.dispose = AsyncMock()

    @asynccontextmanager
    async def _maker():
        yield mock_session

    with patch.object(stage_module, "create_task_engine", return_value=engine), \
         patch.object(stage_module, "create_task_session_maker", return_value=_maker), \
         patch.object(stage_module, "get_redis_client",
                      AsyncMock(return_value=mock_redis_client)):
        yield engine


class TestRunLockedStage:
    """Lock, session and cleanup handling."""

    @pytest.mark.asyncio
    async def test_runs_and_commits(self, stage_env, mock_session, mock_redis_client):
        work = AsyncMock(return_value={"processed": 3})

        with patch.object(stage_module, "DistributedLock",
                          return_value=_lock_factory(True)):
            result = await stage_module.run_locked_stage("sweep_fund", work)

        assert result == {"processed": 3}
        work.assert_awaited_once_with(mock_session)
        mock_session.commit.assert_awaited_once()
        mock_redis_client.aclose.assert_awaited_once()
        stage_env.dispose.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_lock_held_elsewhere(self, stage_env, mock_session, mock_redis_client):
        work = AsyncMock()

        with patch.object(stage_module, "DistributedLock",
                          return_value=_lock_factory(False)):
            result = await stage_module.run_locked_stage("sweep_fund", work)

        assert result is None
        work.assert_not_awaited()
        mock_session.commit.assert_not_awaited()
        stage_env.dispose.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_cleanup_on_failure(self, stage_env, mock_session, mock_redis_client):
        work = AsyncMock(side_effect=RuntimeError("boom"))

        with patch.object(stage_module, "DistributedLock",
                          return_value=_lock_factory(True)):
            with pytest.raises(RuntimeError):
                await stage_module.run_locked_stage("sweep_fund", work)

        mock_session.commit.assert_not_awaited()
        mock_redis_client.aclose.assert_awaited_once()
        stage_env.dispose.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_default_lock_timeout(self, stage_env):
        lock = _lock_factory(True)

        with patch.object(stage_module, "DistributedLock", return_value=lock):
            await stage_module.run_locked_stage("sweep_fund", AsyncMock())

        assert lock.timeouts == [stage_module.STAGE_LOCK_TIMEOUT]

    @pytest.mark.asyncio
    async def test_long_stage_holds_lock_for_its_time_limit(self, stage_env):
        lock = _lock_factory(True)

        with patch.object(stage_module, "DistributedLock", return_value=lock):
            await stage_module.run_locked_stage(
                "monthly_volumes", AsyncMock(), lock_timeout=1800
            )

        assert lock.timeouts == [1800]


class TestMonthlyVolumesTask:
    """Lock lifetime of the monthly close."""

    @pytest.mark.asyncio
    async def test_lock_covers_actor_time_limit(self):
        runner = AsyncMock(return_value=[])
        with patch.object(monthly_tasks, "run_locked_stage", runner):
            await monthly_tasks._process_monthly_volumes_async()

        lock_timeout = runner.await_args.kwargs["lock_timeout"]
        time_limit_ms = monthly_tasks.process_monthly_volumes.options["time_limit"]
        assert lock_timeout * 1000 >= time_limit_ms


class TestSweepStageRunner:
    """_run_sweep_stage guards."""

    @pytest.mark.asyncio
    async def test_unknown_stage(self):
        with pytest.raises(ValueError):
            await sweep_tasks._run_sweep_stage("refund")

    @pytest.mark.asyncio
    async def test_emergency_stop(self):
        runner = AsyncMock()
        with patch.object(sweep_tasks, "settings") as patched, \
             patch.object(sweep_tasks, "run_locked_stage", runner):
            patched.emergency_stop_sweeps = True
            assert await sweep_tasks._run_sweep_stage("fund") is None

        runner.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_locked_run(self):
        runner = AsyncMock(return_value={"processed": 2})
        with patch.object(sweep_tasks, "settings") as patched, \
             patch.object(sweep_tasks, "run_locked_stage", runner):
            patched.emergency_stop_sweeps = False
            summary = await sweep_tasks._run_sweep_stage("verify")

        assert summary == {"processed": 2}
        assert runner.await_args.args[0] == "sweep_verify"


class TestSweepActorErrors:
    """Exception categories in the actor wrapper."""

    @pytest.fixture
    def stage_call(self):
        with patch.object(sweep_tasks, "_run_sweep_stage", MagicMock()) as call:
            yield call

    def test_validation_errors_propagate(self, stage_call):
        with patch.object(sweep_tasks, "run_async", side_effect=ValueError("bad")):
            with pytest.raises(ValueError):
                sweep_tasks._run("fund")

    def test_outage_logged(self, stage_call):
        outage = OperationalError("SELECT 1", {}, Exception("connection refused"))
        with patch.object(sweep_tasks, "run_async", side_effect=outage), \
             patch.object(sweep_tasks, "logger") as log:
            sweep_tasks._run("execute")

        log.error.assert_called_once()
        log.exception.assert_not_called()

    def test_unexpected_error_logged_with_traceback(self, stage_call):
        with patch.object(sweep_tasks, "run_async", side_effect=RuntimeError("x")), \
             patch.object(sweep_tasks, "logger") as log:
            sweep_tasks._run("identify")

        log.exception.assert_called_once()


class TestScheduler:
    """Job table."""

    def test_all_stages_registered(self):
        scheduler = create_scheduler()

        job_ids = {job.id for job in scheduler.get_jobs()}

        assert job_ids == {job_id for job_id, _, _ in SCHEDULE}
        assert {"sweep_identify", "sweep_fund", "sweep_execute", "sweep_verify",
                "payout_batches", "subscription_check", "monthly_volumes",
                "gas_tank_check"} == job_ids
