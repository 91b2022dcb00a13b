"""
Privacy Cash Client Operation Orchestrator Tests
"""

import asyncio
from unittest.mock import AsyncMock, Mock

import pytest

from privacy_cash.client.orchestrator import OperationOrchestrator
from privacy_cash.core.types import CacheRecord, TransferResult, NATIVE
from privacy_cash.errors import (
    EngineError,
    InvalidAmountError,
    OperationCancelledError,
    RetryableSyncError,
)
from privacy_cash.protocol.engine import OperationKind
from privacy_cash.signing.signer import LocalKeypairSigner
from privacy_cash.sync.synchronizer import NoteSynchronizer


@pytest.fixture
def mock_engine():
    engine = Mock()
    engine.deposit = AsyncMock(return_value=TransferResult(amount=10, fee=0, signature="sig"))
    engine.withdraw = AsyncMock(return_value=TransferResult(amount=10, fee=1))
    return engine


@pytest.fixture
def orchestrator(keypair, mock_engine, memory_store, note_source, connection_provider, encryption):
    return OperationOrchestrator(
        keypair.public_key,
        mock_engine,
        NoteSynchronizer(memory_store, note_source),
        connection_provider,
        encryption,
    )


class TestOperationOrchestrator:
    """Tests for OperationOrchestrator."""

    @pytest.mark.asyncio
    async def test_result_passthrough(self, orchestrator, mock_engine, keypair):
        """Test the engine result is returned unchanged."""
        result = await orchestrator.run(
            OperationKind.DEPOSIT, NATIVE, 10, signer=LocalKeypairSigner(keypair)
        )
        assert result is mock_engine.deposit.return_value
        assert not orchestrator.running
        assert orchestrator.phase == ""

    @pytest.mark.asyncio
    async def test_request_contents(self, orchestrator, mock_engine, keypair, pool,
                                    connection_provider, encryption):
        """Test the engine receives synced state and the caller's arguments."""
        pool.emit(NATIVE, b"blob")
        recipient = keypair.public_key

        await orchestrator.run(
            OperationKind.WITHDRAW, NATIVE, 10, recipient=recipient, referrer="ref"
        )

        request = mock_engine.withdraw.call_args.args[0]
        assert request.kind is OperationKind.WITHDRAW
        assert request.cache == CacheRecord(offset=1, encrypted_outputs=(b"blob",))
        assert request.connection is connection_provider.return_value
        assert request.encryption is encryption
        assert request.owner == keypair.public_key
        assert request.recipient == recipient
        assert request.referrer == "ref"
        assert request.signer is None
        mock_engine.deposit.assert_not_called()

    @pytest.mark.asyncio
    async def test_running_during_engine_call(self, orchestrator, mock_engine):
        """Test running flag and phase while the engine works."""
        seen = {}

        async def deposit(request):
            seen["running"] = orchestrator.running
            seen["phase"] = orchestrator.phase
            return TransferResult(amount=request.amount, fee=0)

        mock_engine.deposit = AsyncMock(side_effect=deposit)
        await orchestrator.run(OperationKind.DEPOSIT, NATIVE, 10)

        assert seen == {"running": True, "phase": "generating proof"}

    @pytest.mark.asyncio
    async def test_flag_released_after_engine_error(self, orchestrator, mock_engine):
        """Test an engine failure propagates unchanged and frees the permit."""
        error = EngineError("proof generation failed")
        mock_engine.deposit = AsyncMock(side_effect=error)

        with pytest.raises(EngineError) as exc:
            await orchestrator.run(OperationKind.DEPOSIT, NATIVE, 10)

        assert exc.value is error
        assert not orchestrator.running
        assert orchestrator.phase == ""
        # permit is free again
        await orchestrator.run(OperationKind.WITHDRAW, NATIVE, 10)

    @pytest.mark.asyncio
    async def test_sync_failure(self, orchestrator, mock_engine, note_source):
        """Test sync errors surface before the engine is called."""
        note_source.fail_on_call = 1
        with pytest.raises(RetryableSyncError):
            await orchestrator.run(OperationKind.DEPOSIT, NATIVE, 10)

        mock_engine.deposit.assert_not_called()
        assert not orchestrator.running

    @pytest.mark.asyncio
    @pytest.mark.parametrize("amount", [0, -5, 1.5, True, "10"])
    async def test_invalid_amount(self, orchestrator, mock_engine, amount):
        """Test non-positive or non-integer amounts."""
        with pytest.raises(InvalidAmountError):
            await orchestrator.run(OperationKind.DEPOSIT, NATIVE, amount)
        mock_engine.deposit.assert_not_called()

    @pytest.mark.asyncio
    async def test_cancelled_before_handoff(self, orchestrator, mock_engine):
        """Test a set cancel event stops the operation before the engine."""
        cancel = asyncio.Event()
        cancel.set()

        with pytest.raises(OperationCancelledError):
            await orchestrator.run(OperationKind.DEPOSIT, NATIVE, 10, cancel=cancel)

        mock_engine.deposit.assert_not_called()
        assert not orchestrator.running

    @pytest.mark.asyncio
    @pytest.mark.timeout(5)
    async def test_operations_queue(self, orchestrator, mock_engine):
        """Test concurrent operations run one at a time."""
        active = 0
        peak = 0

        async def deposit(request):
            nonlocal active, peak
            active += 1
            peak = max(peak, active)
            await asyncio.sleep(0.01)
            active -= 1
            return TransferResult(amount=request.amount, fee=0)

        mock_engine.deposit = AsyncMock(side_effect=deposit)
        results = await asyncio.gather(
            *(orchestrator.run(OperationKind.DEPOSIT, NATIVE, n) for n in (1, 2, 3))
        )

        assert peak == 1
        assert [r.amount for r in results] == [1, 2, 3]
        assert not orchestrator.running
