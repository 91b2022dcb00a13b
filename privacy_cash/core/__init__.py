"""
Privacy Cash Client Core
Data types and owner credentials.
"""

from privacy_cash.core.types import (
    PublicKey,
    NativeAsset,
    FungibleToken,
    AssetDescriptor,
    NATIVE,
    asset_for_mint,
    token_info,
    to_base_units,
    CacheRecord,
    EncryptedOutput,
    NotePage,
    Note,
    Transaction,
    TransferResult,
)
from privacy_cash.core.credentials import (
    Keypair,
    RawKeyBytes,
    EncodedKeyString,
    KeypairHandle,
    Credential,
    to_credential,
    parse_keypair,
    load_keyfile,
)

__all__ = [
    "PublicKey",
    "NativeAsset",
    "FungibleToken",
    "AssetDescriptor",
    "NATIVE",
    "asset_for_mint",
    "token_info",
    "to_base_units",
    "CacheRecord",
    "EncryptedOutput",
    "NotePage",
    "Note",
    "Transaction",
    "TransferResult",
    "Keypair",
    "RawKeyBytes",
    "EncodedKeyString",
    "KeypairHandle",
    "Credential",
    "to_credential",
    "parse_keypair",
    "load_keyfile",
]
