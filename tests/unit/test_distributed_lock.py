"""Unit tests for the Redis distributed lock."""

import pytest

from academy.utils.distributed_lock import DistributedLock


class TestDistributedLock:
    """SET NX EX acquisition and token-checked release."""

    @pytest.mark.asyncio
    async def test_acquire_and_release(self, mock_redis_client):
        lock = DistributedLock(redis_client=mock_redis_client)

        async with lock.lock("sweep_identify", timeout=300) as acquired:
            assert acquired is True

        set_call = mock_redis_client.set.await_args
        assert set_call.args[0] == "lock:sweep_identify"
        assert set_call.kwargs == {"nx": True, "ex": 300}
        token = set_call.args[1]

        eval_args = mock_redis_client.eval.await_args.args
        assert eval_args[1:] == (1, "lock:sweep_identify", token)

    @pytest.mark.asyncio
    async def test_held_lock_yields_false(self, mock_redis_client):
        mock_redis_client.set.return_value = None
        lock = DistributedLock(redis_client=mock_redis_client)

        async with lock.lock("payout_batches", blocking_timeout=0) as acquired:
            assert acquired is False

        mock_redis_client.eval.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_without_redis_runs_unguarded(self):
        lock = DistributedLock(redis_client=None)

        async with lock.lock("monthly_volumes") as acquired:
            assert acquired is True

    @pytest.mark.asyncio
    async def test_release_reports_expired_lock(self, mock_redis_client):
        mock_redis_client.eval.return_value = 0
        lock = DistributedLock(redis_client=mock_redis_client)

        assert await lock.release("gas_tank_check", "token") is False

    @pytest.mark.asyncio
    async def test_lock_released_when_block_raises(self, mock_redis_client):
        lock = DistributedLock(redis_client=mock_redis_client)

        with pytest.raises(RuntimeError):
            async with lock.lock("sweep_fund"):
                raise RuntimeError("stage failed")

        mock_redis_client.eval.assert_awaited_once()
