"""
Privacy Cash Client
Private deposits, withdrawals and balances against the Privacy Cash pool.

Notes are encrypted to a key derived from the owner's wallet and cached
locally; the ledger stays the source of truth.
"""

__version__ = "0.3.0"
__author__ = "Privacy Cash"

from privacy_cash.client import ClientConfig, PrivacyCash
from privacy_cash.errors import ErrorCode, PrivacyCashError

__all__ = [
    "ClientConfig",
    "PrivacyCash",
    "ErrorCode",
    "PrivacyCashError",
    "__version__",
]
