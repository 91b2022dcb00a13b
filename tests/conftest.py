"""
Privacy Cash Client Test Fixtures
"""

import itertools
from typing import Dict, List, Optional, Sequence, Set
from unittest.mock import AsyncMock, Mock

import pytest

from privacy_cash.client.config import ClientConfig, LedgerConfig
from privacy_cash.core.credentials import Keypair
from privacy_cash.core.types import (
    AssetDescriptor,
    EncryptedOutput,
    Note,
    NotePage,
    Transaction,
    TransferResult,
)
from privacy_cash.crypto.encryption import EncryptionService
from privacy_cash.errors import EngineError, LedgerQueryError, NoteDecodeSkipped
from privacy_cash.network.indexer import NoteSource
from privacy_cash.protocol.engine import Engine, OperationRequest
from privacy_cash.storage.cache import MemoryCacheStore


# =============================================================================
# In-memory pool
# =============================================================================

class FakePool:
    """Shielded pool state: emitted outputs per asset and spent blindings."""

    def __init__(self):
        self.outputs: Dict[str, List[bytes]] = {}
        self.spent: Set[int] = set()

    def emit(self, asset: AssetDescriptor, blob: bytes) -> int:
        blobs = self.outputs.setdefault(asset.key, [])
        blobs.append(blob)
        return len(blobs)

    def count(self, asset: AssetDescriptor) -> int:
        return len(self.outputs.get(asset.key, []))


class FakeNoteSource(NoteSource):
    """Serves pool outputs in pages; can be told to fail on a given call."""

    def __init__(self, pool: FakePool, fail_on_call: Optional[int] = None):
        self.pool = pool
        self.fail_on_call = fail_on_call
        self.calls = 0
        self.closed = False

    async def fetch_notes(self, asset: AssetDescriptor, after: int, limit: int) -> NotePage:
        self.calls += 1
        if self.fail_on_call is not None and self.calls == self.fail_on_call:
            raise LedgerQueryError("indexer unavailable", status_code=503)

        blobs = self.pool.outputs.get(asset.key, [])
        page = blobs[after:after + limit]
        return NotePage(
            outputs=tuple(
                EncryptedOutput(position=after + i + 1, data=blob)
                for i, blob in enumerate(page)
            ),
            has_more=after + limit < len(blobs),
        )

    async def close(self) -> None:
        self.closed = True


class FakeEngine(Engine):
    """
    Engine double: deposits emit a note for the owner, withdrawals spend
    every unspent note and emit the change.
    """

    def __init__(self, pool: FakePool, deposit_fee: int = 0, withdraw_fee: int = 0):
        self.pool = pool
        self.deposit_fee = deposit_fee
        self.withdraw_fee = withdraw_fee
        self.requests: List[OperationRequest] = []
        self._blindings = itertools.count(1000)

    def _emit(self, request: OperationRequest, amount: int) -> None:
        note = Note(
            amount=amount,
            blinding=next(self._blindings),
            index=self.pool.count(request.asset),
            mint=request.asset.mint,
        )
        self.pool.emit(request.asset, request.encryption.encrypt_note(note))

    def _owned_unspent(self, request: OperationRequest) -> List[Note]:
        notes = []
        for blob in request.cache.encrypted_outputs:
            try:
                note = request.encryption.decrypt_note(blob)
            except NoteDecodeSkipped:
                continue
            if note.mint == request.asset.mint and note.blinding not in self.pool.spent:
                notes.append(note)
        return notes

    async def deposit(self, request: OperationRequest) -> TransferResult:
        self.requests.append(request)
        tx = Transaction(message=f"deposit:{request.asset.key}:{request.amount}".encode())
        signed = await request.signer.sign(tx)
        signature = signed.signature_of(request.signer.public_key)
        if signature is None:
            raise EngineError("deposit transaction is not signed")

        self._emit(request, request.amount - self.deposit_fee)
        return TransferResult(amount=request.amount, fee=self.deposit_fee, signature=signature.hex())

    async def withdraw(self, request: OperationRequest) -> TransferResult:
        self.requests.append(request)
        notes = self._owned_unspent(request)
        total = sum(note.amount for note in notes)
        needed = request.amount + self.withdraw_fee
        if total < needed:
            raise EngineError("insufficient private balance", {"available": total})

        self.pool.spent.update(note.blinding for note in notes)
        if total > needed:
            self._emit(request, total - needed)
        return TransferResult(amount=request.amount, fee=self.withdraw_fee)

    async def spent_flags(self, notes: Sequence[Note], asset: AssetDescriptor) -> List[bool]:
        return [note.blinding in self.pool.spent for note in notes]


# =============================================================================
# Fixtures
# =============================================================================

@pytest.fixture
def keypair() -> Keypair:
    """Deterministic owner keypair."""
    return Keypair.from_secret_key(bytes(range(32)))


@pytest.fixture
def other_keypair() -> Keypair:
    """Second, unrelated keypair."""
    return Keypair.from_secret_key(bytes(range(32, 64)))


@pytest.fixture
def encryption(keypair) -> EncryptionService:
    service = EncryptionService()
    service.derive_from_keypair(keypair)
    return service


@pytest.fixture
def other_encryption(other_keypair) -> EncryptionService:
    service = EncryptionService()
    service.derive_from_keypair(other_keypair)
    return service


@pytest.fixture
def memory_store() -> MemoryCacheStore:
    return MemoryCacheStore()


@pytest.fixture
def pool() -> FakePool:
    return FakePool()


@pytest.fixture
def note_source(pool) -> FakeNoteSource:
    return FakeNoteSource(pool)


@pytest.fixture
def engine(pool) -> FakeEngine:
    return FakeEngine(pool, withdraw_fee=35_000)


@pytest.fixture
def connection_provider() -> AsyncMock:
    """Resolves to a stand-in ledger connection."""
    return AsyncMock(return_value=Mock(name="LedgerConnection"))


@pytest.fixture
def client_config(keypair, connection_provider) -> ClientConfig:
    """Debug-mode config with key material and an injected connection."""
    return ClientConfig(
        owner=keypair,
        ledger=LedgerConfig(connection_provider=connection_provider),
        debug_mode=True,
    )


@pytest.fixture
def make_note(encryption):
    """Encrypt a note for the owner."""
    def _make(amount: int, blinding: int, mint: Optional[str] = None, service=None) -> bytes:
        note = Note(amount=amount, blinding=blinding, index=blinding)
        if mint is not None:
            note = Note(amount=amount, blinding=blinding, index=blinding, mint=mint)
        return (service or encryption).encrypt_note(note)
    return _make
