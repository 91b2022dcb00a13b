"""
Privacy Cash Client Address Derivation

Program derived addresses and associated token accounts, computed exactly
as the ledger runtime does so cache keys line up with on-chain accounts.
"""

from __future__ import annotations
import hashlib
import logging
from functools import lru_cache
from typing import Sequence, Tuple

from Crypto.Signature import eddsa

from privacy_cash.constants import (
    MAX_SEED_LENGTH,
    MAX_SEEDS,
    PDA_MARKER,
    TOKEN_PROGRAM_ID,
    ASSOCIATED_TOKEN_PROGRAM_ID,
)
from privacy_cash.core.types import PublicKey, AssetDescriptor, FungibleToken
from privacy_cash.errors import InvalidAddressError

logger = logging.getLogger(__name__)


def is_on_curve(data: bytes) -> bool:
    """Check whether 32 bytes decode to a point on the ed25519 curve."""
    try:
        eddsa.import_public_key(data)
    except ValueError:
        return False
    return True


def create_program_address(seeds: Sequence[bytes], program_id: PublicKey) -> PublicKey:
    """
    Hash seeds into a program address.

    Raises:
        InvalidAddressError: seeds too long, or the result lies on the curve
    """
    if len(seeds) > MAX_SEEDS:
        raise InvalidAddressError(len(seeds), f"at most {MAX_SEEDS} seeds allowed")

    hasher = hashlib.sha256()
    for seed in seeds:
        if len(seed) > MAX_SEED_LENGTH:
            raise InvalidAddressError(seed.hex(), f"seed longer than {MAX_SEED_LENGTH} bytes")
        hasher.update(seed)
    hasher.update(program_id.data)
    hasher.update(PDA_MARKER)
    digest = hasher.digest()

    if is_on_curve(digest):
        raise InvalidAddressError(digest.hex(), "program address lies on the ed25519 curve")
    return PublicKey(digest)


def find_program_address(seeds: Sequence[bytes], program_id: PublicKey) -> Tuple[PublicKey, int]:
    """
    Search bump seeds from 255 down to 0 for the first off-curve address.

    Returns:
        (address, bump)
    """
    for bump in range(255, -1, -1):
        try:
            address = create_program_address(list(seeds) + [bytes([bump])], program_id)
        except InvalidAddressError:
            continue
        return address, bump
    raise InvalidAddressError(program_id.to_base58(), "no viable bump seed")


@lru_cache(maxsize=1024)
def associated_token_address(owner: PublicKey, mint: PublicKey) -> PublicKey:
    """Associated token account of owner for mint."""
    address, _ = find_program_address(
        [owner.data, PublicKey.from_base58(TOKEN_PROGRAM_ID).data, mint.data],
        PublicKey.from_base58(ASSOCIATED_TOKEN_PROGRAM_ID),
    )
    return address


def cache_address(owner: PublicKey, asset: AssetDescriptor) -> PublicKey:
    """
    Address that keys the note cache for (owner, asset).

    Native asset: the owner itself. Token: the owner's associated token account.
    """
    if isinstance(asset, FungibleToken):
        return associated_token_address(owner, asset.mint_address)
    return owner
