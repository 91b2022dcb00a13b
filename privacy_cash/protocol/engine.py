"""
Privacy Cash Client Engine Contract

The engine builds zero-knowledge proofs, computes nullifiers, assembles and
submits deposit/withdraw transactions. This package only hands it
synchronized state; it never reproduces the engine's cryptography.
"""

from __future__ import annotations
from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, List, Optional, Sequence

from privacy_cash.core.types import (
    PublicKey,
    AssetDescriptor,
    CacheRecord,
    Note,
    TransferResult,
)

if TYPE_CHECKING:
    from privacy_cash.crypto.encryption import EncryptionService
    from privacy_cash.network.rpc import LedgerConnection
    from privacy_cash.signing.signer import TransactionSigner


class OperationKind(Enum):
    """Write-path operations."""
    DEPOSIT = "deposit"
    WITHDRAW = "withdraw"


@dataclass(frozen=True)
class OperationRequest:
    """Everything the engine needs for one deposit or withdraw."""
    kind: OperationKind
    asset: AssetDescriptor
    amount: int
    owner: PublicKey
    cache: CacheRecord
    connection: "LedgerConnection"
    encryption: "EncryptionService"
    signer: Optional["TransactionSigner"] = None
    recipient: Optional[PublicKey] = None
    referrer: Optional[str] = None


class SpentStateProvider(ABC):
    """Source of nullifier / spent-state for decrypted notes."""

    @abstractmethod
    async def spent_flags(self, notes: Sequence[Note], asset: AssetDescriptor) -> List[bool]:
        """One flag per note, True when the note has already been consumed."""


class Engine(SpentStateProvider):
    """
    External proof and transaction engine.

    Errors raised here reach the caller unchanged.
    """

    @abstractmethod
    async def deposit(self, request: OperationRequest) -> TransferResult:
        """Shield request.amount base units from the owner's public balance."""

    @abstractmethod
    async def withdraw(self, request: OperationRequest) -> TransferResult:
        """Unshield request.amount base units to request.recipient."""
