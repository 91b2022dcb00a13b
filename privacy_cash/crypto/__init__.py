"""
Privacy Cash Client Cryptography
Note encryption and ledger address derivation.
"""

from privacy_cash.crypto.encryption import (
    EncryptionService,
    keccak256,
    derive_key_from_signature,
)
from privacy_cash.crypto.address import (
    is_on_curve,
    create_program_address,
    find_program_address,
    associated_token_address,
    cache_address,
)

__all__ = [
    "EncryptionService",
    "keccak256",
    "derive_key_from_signature",
    "is_on_curve",
    "create_program_address",
    "find_program_address",
    "associated_token_address",
    "cache_address",
]
