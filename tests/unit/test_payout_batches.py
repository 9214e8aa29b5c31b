"""Unit tests for payout batch creation, approval and execution."""

from datetime import UTC, datetime
from decimal import Decimal
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from web3.exceptions import Web3RPCError

from academy.models.commission import Commission
from academy.models.enums import (
    CommissionStatus,
    CommissionType,
    PayoutBatchStatus,
    PayoutBatchType,
)
from academy.models.payout_batch import PayoutBatch
from academy.services.payout.batch_approval import PayoutBatchApprovalService
from academy.services.payout.batch_builder import (
    PayoutBatchBuilder,
    group_commissions_by_user,
    make_batch_name,
)
from academy.services.payout.batch_executor import NO_WALLET_ERROR, PayoutBatchExecutor
from academy.utils.exceptions import (
    NotFoundError,
    PayoutBatchStateError,
    PayoutValidationError,
)

WALLET_A = "0x" + "aa" * 20
WALLET_B = "0x" + "bb" * 20


def _commission(cid, referrer_id, amount, net=None, kind=CommissionType.DIRECT_BONUS):
    return Commission(
        id=cid,
        referrer_id=referrer_id,
        referred_id=None,
        commission_type=kind,
        amount=Decimal(amount),
        net_amount_usdc=Decimal(net) if net is not None else None,
        status=CommissionStatus.PENDING,
        retry_count=0,
    )


def _batch(status=PayoutBatchStatus.APPROVED):
    return PayoutBatch(
        id=9,
        batch_name="direct_bonuses_2026-10-19_1792368000",
        batch_type=PayoutBatchType.DIRECT_BONUSES,
        status=status,
        total_amount_usdc=Decimal("0"),
        total_payouts=0,
    )


class TestGrouping:
    """Pure helpers."""

    def test_groups_by_referrer_with_net_amounts(self):
        grouped = group_commissions_by_user([
            _commission(1, 10, "249.50"),
            _commission(2, 10, "19.90", net="19.20"),
            _commission(3, 11, "5"),
        ])

        assert grouped[10].total == Decimal("268.70")
        assert grouped[10].commission_ids == [1, 2]
        assert grouped[11].total == Decimal("5")

    def test_batch_name(self):
        now = datetime(2026, 10, 19, tzinfo=UTC)
        assert make_batch_name("manual", now) == "manual_2026-10-19_1792368000"


class TestPayoutBatchBuilder:
    """Creating pending batches."""

    @pytest.fixture
    def builder(self, mock_session):
        gas_manager = AsyncMock()
        gas_manager.estimate_batch_gas.return_value = {"total_pol": Decimal("0.013")}
        builder = PayoutBatchBuilder(mock_session, gas_manager, min_amount=Decimal("10"))
        builder.commission_repo = AsyncMock()
        builder.batch_repo = AsyncMock()
        builder.batch_repo.create.side_effect = lambda **kw: SimpleNamespace(id=5, **kw)
        builder.user_repo = AsyncMock()
        builder.audit = AsyncMock()
        return builder

    @pytest.mark.asyncio
    async def test_invalid_type_rejected(self, builder):
        with pytest.raises(PayoutValidationError):
            await builder.create_batch("weekly")

    @pytest.mark.asyncio
    async def test_only_payable_users_included(self, builder, make_user):
        builder.commission_repo.find_unbatched_pending.return_value = [
            _commission(1, 10, "249.50"),
            _commission(2, 11, "249.50"),  # no wallet
            _commission(3, 12, "4"),  # below minimum
        ]
        builder.user_repo.find_by_ids.return_value = [
            make_user(id=10, payout_wallet_address=WALLET_A),
            make_user(id=11),
            make_user(id=12, payout_wallet_address=WALLET_B),
        ]

        result = await builder.create_batch(PayoutBatchType.MANUAL, created_by=99)

        batch = result["batch"]
        assert batch.status == PayoutBatchStatus.PENDING
        assert batch.total_amount_usdc == Decimal("249.50")
        assert batch.total_payouts == 1
        assert batch.commission_ids == [1]
        assert batch.batch_name.startswith("manual_")
        builder.commission_repo.assign_to_batch.assert_awaited_once_with([1], 5)
        builder.gas_manager.estimate_batch_gas.assert_awaited_once_with(1)

    @pytest.mark.asyncio
    async def test_nothing_eligible(self, builder):
        builder.commission_repo.find_unbatched_pending.return_value = []

        assert await builder.create_batch(PayoutBatchType.MANUAL) is None
        builder.batch_repo.create.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_scheduled_batches_split_by_type(self, builder, make_user):
        builder.commission_repo.find_unbatched_pending.return_value = [
            _commission(1, 10, "249.50"),
            _commission(2, 10, "40", kind=CommissionType.RESIDUAL_MONTHLY),
        ]
        builder.user_repo.find_by_ids.return_value = [
            make_user(id=10, payout_wallet_address=WALLET_A)
        ]

        batches = await builder.create_scheduled_batches()

        assert [b.batch_type for b in batches] == [
            PayoutBatchType.DIRECT_BONUSES,
            PayoutBatchType.MONTHLY_RESIDUAL,
        ]


class TestPayoutBatchApproval:
    """pending -> approved."""

    @pytest.mark.asyncio
    async def test_approve(self, mock_session):
        service = PayoutBatchApprovalService(mock_session)
        service.batch_repo = AsyncMock()
        service.batch_repo.transition.return_value = _batch(PayoutBatchStatus.APPROVED)

        with patch("academy.services.payout.batch_approval.AuditService") as audit_cls:
            audit_cls.return_value.log = AsyncMock()
            batch = await service.approve_batch(9, admin_id=1)

        assert batch.status == PayoutBatchStatus.APPROVED
        kwargs = service.batch_repo.transition.await_args.kwargs
        assert kwargs["approved_by"] == 1

    @pytest.mark.asyncio
    async def test_approve_twice_conflicts(self, mock_session):
        service = PayoutBatchApprovalService(mock_session)
        service.batch_repo = AsyncMock()
        service.batch_repo.transition.return_value = None
        service.batch_repo.get_by_id.return_value = _batch(PayoutBatchStatus.APPROVED)

        with pytest.raises(PayoutBatchStateError) as exc_info:
            await service.approve_batch(9, admin_id=1)

        assert exc_info.value.current == PayoutBatchStatus.APPROVED

    @pytest.mark.asyncio
    async def test_missing_batch(self, mock_session):
        service = PayoutBatchApprovalService(mock_session)
        service.batch_repo = AsyncMock()
        service.batch_repo.transition.return_value = None
        service.batch_repo.get_by_id.return_value = None

        with pytest.raises(NotFoundError):
            await service.approve_batch(404, admin_id=1)


class TestPayoutBatchExecutor:
    """approved -> processing -> completed."""

    @pytest.fixture
    def executor(self, mock_session, mock_usdc_client):
        treasury = MagicMock()
        treasury.get_payout_wallet_key.return_value = "0x" + "11" * 32
        executor = PayoutBatchExecutor(mock_session, mock_usdc_client, treasury)
        executor.batch_repo = AsyncMock()
        executor.commission_repo = AsyncMock()
        executor.user_repo = AsyncMock()
        executor.tx_repo = AsyncMock()
        executor.tx_repo.create.return_value = SimpleNamespace(id=70)
        return executor

    @pytest.fixture(autouse=True)
    def audit(self):
        with patch("academy.services.payout.batch_executor.AuditService") as audit_cls:
            audit_cls.return_value.log = AsyncMock()
            yield audit_cls.return_value

    @pytest.mark.asyncio
    async def test_pays_and_records_failures(self, executor, mock_usdc_client, make_user):
        batch = _batch(PayoutBatchStatus.PROCESSING)
        paid = [_commission(1, 10, "249.50"), _commission(2, 10, "20")]
        unpaid = _commission(3, 11, "249.50")
        executor.batch_repo.transition.return_value = batch
        executor.commission_repo.find_pending_in_batch.return_value = [*paid, unpaid]
        executor.user_repo.find_by_ids.return_value = [
            make_user(id=10, payout_wallet_address=WALLET_A),
            make_user(id=11),
        ]

        result = await executor.execute_batch(9, admin_id=1)

        # one transfer per member, not per commission
        mock_usdc_client.transfer.assert_awaited_once()
        assert mock_usdc_client.transfer.await_args.kwargs["amount_usdc"] == Decimal("269.50")
        assert result["successful"] == 2
        assert result["failed"] == 1
        assert batch.status == PayoutBatchStatus.COMPLETED
        assert all(c.status == CommissionStatus.PAID for c in paid)
        assert paid[0].usdc_transaction_id == 70
        assert unpaid.status == CommissionStatus.FAILED
        assert unpaid.error_message == NO_WALLET_ERROR
        assert unpaid.retry_count == 1
        assert batch.error_log[0]["commission_id"] == 3

    @pytest.mark.asyncio
    async def test_failed_transfer(self, executor, mock_usdc_client, make_user):
        batch = _batch(PayoutBatchStatus.PROCESSING)
        commission = _commission(1, 10, "249.50")
        executor.batch_repo.transition.return_value = batch
        executor.commission_repo.find_pending_in_batch.return_value = [commission]
        executor.user_repo.find_by_ids.return_value = [
            make_user(id=10, payout_wallet_address=WALLET_A)
        ]
        mock_usdc_client.transfer.return_value = {
            "success": False, "status": "failed", "error": "insufficient funds",
        }

        result = await executor.execute_batch(9)

        assert result["failed"] == 1
        assert commission.status == CommissionStatus.FAILED
        assert commission.error_message == "insufficient funds"
        executor.tx_repo.create.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_unapproved_batch_conflicts(self, executor):
        executor.batch_repo.transition.return_value = None
        executor.batch_repo.get_by_id.return_value = _batch(PayoutBatchStatus.PENDING)

        with pytest.raises(PayoutBatchStateError):
            await executor.execute_batch(9)

    @pytest.mark.asyncio
    async def test_emergency_stop(self, executor):
        with patch("academy.services.payout.batch_executor.settings") as settings:
            settings.emergency_stop_payouts = True
            with pytest.raises(PayoutValidationError):
                await executor.execute_batch(9)
        executor.batch_repo.transition.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_paid_members_survive_crash_mid_batch(
        self, executor, mock_session, mock_usdc_client, make_user
    ):
        """Outcomes already broadcast are committed before the next transfer."""
        batch = _batch(PayoutBatchStatus.PROCESSING)
        first = _commission(1, 10, "100")
        second = _commission(2, 11, "100")
        executor.batch_repo.transition.return_value = batch
        executor.commission_repo.find_pending_in_batch.return_value = [first, second]
        executor.user_repo.find_by_ids.return_value = [
            make_user(id=10, payout_wallet_address=WALLET_A),
            make_user(id=11, payout_wallet_address=WALLET_B),
        ]
        mock_usdc_client.transfer.side_effect = [
            {"success": True, "tx_hash": "0x" + "ab" * 32, "gas_fee_pol": Decimal("0.01")},
            Web3RPCError("nonce too low"),
        ]
        committed = []
        mock_session.commit.side_effect = lambda: committed.append(first.status)

        with pytest.raises(Web3RPCError):
            await executor.execute_batch(9)

        assert first.status == CommissionStatus.PAID
        assert committed[-1] == CommissionStatus.PAID
        # processing transition plus the first member
        assert mock_session.commit.await_count == 2
        assert batch.status == PayoutBatchStatus.PROCESSING
