"""
Privacy Cash Client Operation Orchestration

Single-flight coordinator for deposit and withdraw.

State machine per instance: IDLE -> RUNNING -> IDLE. The execution permit is
an asyncio.Lock held for the whole operation and released on every exit
path (success, engine error, cancellation).
"""

from __future__ import annotations
import asyncio
import logging
from typing import Optional

from privacy_cash.client.status import log_owner
from privacy_cash.core.types import (
    PublicKey,
    AssetDescriptor,
    TransferResult,
)
from privacy_cash.crypto.encryption import EncryptionService
from privacy_cash.errors import InvalidAmountError, OperationCancelledError
from privacy_cash.network.rpc import ConnectionProvider
from privacy_cash.protocol.engine import Engine, OperationKind, OperationRequest
from privacy_cash.signing.signer import TransactionSigner
from privacy_cash.sync.synchronizer import NoteSynchronizer

logger = logging.getLogger(__name__)

_START_PHASE = {
    OperationKind.DEPOSIT: "start depositing",
    OperationKind.WITHDRAW: "start withdrawing",
}


class OperationOrchestrator:
    """
    Drives deposit/withdraw for one owner.

    Concurrent calls queue on the permit; `running` is True only while an
    operation holds it.
    """

    def __init__(
        self,
        owner: PublicKey,
        engine: Engine,
        synchronizer: NoteSynchronizer,
        connection_provider: ConnectionProvider,
        encryption: EncryptionService,
    ):
        self.owner = owner
        self.engine = engine
        self.synchronizer = synchronizer
        self.connection_provider = connection_provider
        self.encryption = encryption
        self.phase: str = ""
        self._permit = asyncio.Lock()
        self._running = False

    @property
    def running(self) -> bool:
        return self._running

    def set_phase(self, phase: str) -> None:
        self.phase = phase
        logger.info(phase)

    async def run(
        self,
        kind: OperationKind,
        asset: AssetDescriptor,
        amount: int,
        signer: Optional[TransactionSigner] = None,
        recipient: Optional[PublicKey] = None,
        referrer: Optional[str] = None,
        cancel: Optional[asyncio.Event] = None,
    ) -> TransferResult:
        """
        Run one operation through the engine.

        Returns:
            Engine result, unchanged

        Raises:
            InvalidAmountError: amount is not a positive integer
            OperationCancelledError: cancel was set before hand-off to the engine
            RetryableSyncError: note sync failed
            Exception: any engine error, unchanged
        """
        if isinstance(amount, bool) or not isinstance(amount, int) or amount <= 0:
            raise InvalidAmountError(amount)

        with log_owner(self):
            async with self._permit:
                self._running = True
                try:
                    return await self._execute(kind, asset, amount, signer, recipient, referrer, cancel)
                finally:
                    self._running = False
                    self.phase = ""

    async def _execute(
        self,
        kind: OperationKind,
        asset: AssetDescriptor,
        amount: int,
        signer: Optional[TransactionSigner],
        recipient: Optional[PublicKey],
        referrer: Optional[str],
        cancel: Optional[asyncio.Event],
    ) -> TransferResult:
        self.set_phase(_START_PHASE[kind])

        self.set_phase("syncing notes")
        cache = await self.synchronizer.sync(self.owner, asset, cancel)
        connection = await self.connection_provider()

        if cancel is not None and cancel.is_set():
            raise OperationCancelledError(kind.value)

        request = OperationRequest(
            kind=kind,
            asset=asset,
            amount=amount,
            owner=self.owner,
            cache=cache,
            connection=connection,
            encryption=self.encryption,
            signer=signer,
            recipient=recipient,
            referrer=referrer,
        )

        self.set_phase("generating proof")
        if kind is OperationKind.DEPOSIT:
            result = await self.engine.deposit(request)
        else:
            result = await self.engine.withdraw(request)

        logger.debug(
            f"{kind.value} of {result.amount} {asset} base units done, fee {result.fee}"
        )
        return result
