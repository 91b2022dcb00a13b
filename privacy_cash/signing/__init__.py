"""
Privacy Cash Client Signing
"""

from privacy_cash.signing.signer import (
    TransactionSigner,
    LocalKeypairSigner,
    ExternalSigner,
    resolve_signer,
)

__all__ = [
    "TransactionSigner",
    "LocalKeypairSigner",
    "ExternalSigner",
    "resolve_signer",
]
