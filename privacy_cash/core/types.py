"""
Privacy Cash Client Core Types

Addresses, asset descriptors, cache records and decrypted notes.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation
from typing import Dict, Optional, Sequence, Tuple, Union

import base58

from privacy_cash.constants import (
    PUBLIC_KEY_SIZE,
    NATIVE_MINT_PLACEHOLDER,
    TOKENS,
    TokenInfo,
)
from privacy_cash.errors import InvalidAddressError, InvalidAmountError


@dataclass(frozen=True, slots=True)
class PublicKey:
    """
    Ledger account address.

    SIZE: 32 bytes
    TEXT FORM: base58
    """
    data: bytes

    def __post_init__(self):
        if len(self.data) != PUBLIC_KEY_SIZE:
            raise InvalidAddressError(
                self.data.hex(),
                f"must be {PUBLIC_KEY_SIZE} bytes, got {len(self.data)}"
            )

    def __bytes__(self) -> bytes:
        return self.data

    def __str__(self) -> str:
        return self.to_base58()

    def __repr__(self) -> str:
        return f"PublicKey({self.to_base58()})"

    def to_base58(self) -> str:
        return base58.b58encode(self.data).decode("ascii")

    @classmethod
    def from_base58(cls, value: str) -> PublicKey:
        try:
            raw = base58.b58decode(value)
        except ValueError as e:
            raise InvalidAddressError(value, str(e)) from e
        return cls(raw)

    @classmethod
    def coerce(cls, value: Union[str, bytes, PublicKey]) -> PublicKey:
        """Accept a PublicKey, base58 string or raw 32 bytes."""
        if isinstance(value, PublicKey):
            return value
        if isinstance(value, str):
            return cls.from_base58(value)
        if isinstance(value, (bytes, bytearray)):
            return cls(bytes(value))
        raise InvalidAddressError(value, "unsupported address type")


# ==============================================================================
# Asset Descriptors
# ==============================================================================

@dataclass(frozen=True, slots=True)
class NativeAsset:
    """The ledger's native asset (SOL, lamports)."""

    @property
    def mint(self) -> str:
        return NATIVE_MINT_PLACEHOLDER

    @property
    def key(self) -> str:
        return "native"

    def __str__(self) -> str:
        return "SOL"


@dataclass(frozen=True, slots=True)
class FungibleToken:
    """A fungible token identified by its mint address."""
    mint_address: PublicKey

    @property
    def mint(self) -> str:
        return self.mint_address.to_base58()

    @property
    def key(self) -> str:
        return self.mint

    def __str__(self) -> str:
        return f"token:{self.mint}"


AssetDescriptor = Union[NativeAsset, FungibleToken]

NATIVE = NativeAsset()


def asset_for_mint(mint: Union[str, PublicKey, None]) -> AssetDescriptor:
    """Map a mint (or None / the native placeholder) to its descriptor."""
    if mint is None:
        return NATIVE
    if isinstance(mint, PublicKey):
        mint = mint.to_base58()
    if mint == NATIVE_MINT_PLACEHOLDER:
        return NATIVE
    return FungibleToken(PublicKey.from_base58(mint))


def token_info(asset: AssetDescriptor) -> Optional[TokenInfo]:
    """Registry entry for a token, None for the native asset or unknown mints."""
    if isinstance(asset, NativeAsset):
        return None
    for token in TOKENS:
        if token.mint == asset.mint:
            return token
    return None


def to_base_units(asset: AssetDescriptor, amount: Union[int, float, str, Decimal]) -> int:
    """
    Convert a whole-token amount (e.g. "1.5" USDC) to base units.

    Uses the registry decimals. Floats are read through their shortest
    repr, so 0.1 converts as "0.1".

    Raises:
        InvalidAmountError: unregistered token, non-positive amount, or more
            precision than the token's decimals
    """
    info = token_info(asset)
    if info is None:
        raise InvalidAmountError(amount, f"No registered decimals for {asset}")
    if isinstance(amount, bool):
        raise InvalidAmountError(amount)

    try:
        value = Decimal(str(amount))
    except InvalidOperation:
        raise InvalidAmountError(amount) from None

    units = value.scaleb(info.decimals)
    if not units.is_finite() or units <= 0 or units != units.to_integral_value():
        raise InvalidAmountError(
            amount, f"Amount must be a positive {info.name} amount with at most {info.decimals} decimals"
        )
    return int(units)


# ==============================================================================
# Cache Records
# ==============================================================================

@dataclass(frozen=True, slots=True)
class CacheRecord:
    """
    Cached encrypted outputs for one (address, asset) key.

    offset: highest ledger position already incorporated
    encrypted_outputs: opaque blobs in emission order
    """
    offset: int = 0
    encrypted_outputs: Tuple[bytes, ...] = ()

    def __post_init__(self):
        if self.offset < 0:
            raise ValueError(f"offset must be non-negative, got {self.offset}")

    def __len__(self) -> int:
        return len(self.encrypted_outputs)

    def extend(self, outputs: Sequence[bytes], offset: int) -> CacheRecord:
        """Return a new record with outputs appended and offset advanced."""
        if offset < self.offset:
            raise ValueError(f"offset cannot move backwards: {offset} < {self.offset}")
        return CacheRecord(
            offset=offset,
            encrypted_outputs=self.encrypted_outputs + tuple(outputs),
        )


@dataclass(frozen=True, slots=True)
class EncryptedOutput:
    """Encrypted note as emitted by the ledger, with its 1-based position."""
    position: int
    data: bytes


@dataclass(frozen=True)
class NotePage:
    """One batch returned by a note source."""
    outputs: Tuple[EncryptedOutput, ...] = ()
    has_more: bool = False


# ==============================================================================
# Notes & Transactions
# ==============================================================================

@dataclass(frozen=True, slots=True)
class Note:
    """Decrypted note."""
    amount: int
    blinding: int
    index: int
    mint: str = NATIVE_MINT_PLACEHOLDER

    @property
    def asset(self) -> AssetDescriptor:
        return asset_for_mint(self.mint)


@dataclass(frozen=True)
class Transaction:
    """
    Transaction message plus collected signatures.

    Immutable: signing returns a new instance.
    """
    message: bytes
    signatures: Dict[str, bytes] = field(default_factory=dict)

    def with_signature(self, signer: PublicKey, signature: bytes) -> Transaction:
        sigs = dict(self.signatures)
        sigs[signer.to_base58()] = signature
        return Transaction(message=self.message, signatures=sigs)

    def signature_of(self, signer: PublicKey) -> Optional[bytes]:
        return self.signatures.get(signer.to_base58())


@dataclass(frozen=True)
class TransferResult:
    """Outcome of a deposit or withdraw as reported by the engine."""
    amount: int
    fee: int
    signature: Optional[str] = None
