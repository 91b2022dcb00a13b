"""
Privacy Cash Client Transaction Signing

One signing interface, two implementations: a held keypair or an external
wallet callback. Signers keep no mutable state and may sign independent
transactions concurrently.
"""

from __future__ import annotations
import logging
from abc import ABC, abstractmethod
from typing import Awaitable, Callable, Optional

from privacy_cash.core.credentials import Keypair
from privacy_cash.core.types import PublicKey, Transaction
from privacy_cash.errors import MissingSigner

logger = logging.getLogger(__name__)

SignFunction = Callable[[Transaction], Awaitable[Transaction]]


class TransactionSigner(ABC):
    """Unsigned transaction in, signed transaction out."""

    @property
    @abstractmethod
    def public_key(self) -> PublicKey:
        """Fee payer / signing account."""

    @abstractmethod
    async def sign(self, tx: Transaction) -> Transaction:
        """Return a signed copy of tx."""


class LocalKeypairSigner(TransactionSigner):
    """Signs with key material held in this process."""

    def __init__(self, keypair: Keypair):
        self._keypair = keypair

    @property
    def public_key(self) -> PublicKey:
        return self._keypair.public_key

    async def sign(self, tx: Transaction) -> Transaction:
        return tx.with_signature(self.public_key, self._keypair.sign(tx.message))

    def __repr__(self) -> str:
        return f"LocalKeypairSigner({self.public_key})"


class ExternalSigner(TransactionSigner):
    """Delegates to a caller-supplied async signer (hardware or browser wallet)."""

    def __init__(self, public_key: PublicKey, sign_fn: SignFunction):
        self._public_key = public_key
        self._sign_fn = sign_fn

    @property
    def public_key(self) -> PublicKey:
        return self._public_key

    async def sign(self, tx: Transaction) -> Transaction:
        logger.debug(f"Requesting external signature from {self._public_key}")
        return await self._sign_fn(tx)

    def __repr__(self) -> str:
        return f"ExternalSigner({self._public_key})"


def resolve_signer(
    keypair: Optional[Keypair] = None,
    external: Optional[TransactionSigner] = None,
) -> TransactionSigner:
    """
    Pick the signer for an operation.

    An explicitly supplied signer wins over the local keypair.

    Raises:
        MissingSigner: neither is available
    """
    if external is not None:
        return external
    if keypair is not None:
        return LocalKeypairSigner(keypair)
    raise MissingSigner()
