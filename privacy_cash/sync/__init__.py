"""
Privacy Cash Client Sync
Incremental note synchronization and balance aggregation.
"""

from privacy_cash.sync.synchronizer import NoteSynchronizer, SyncResult
from privacy_cash.sync.balance import BalanceAggregator, NoteDecryptor

__all__ = [
    "NoteSynchronizer",
    "SyncResult",
    "BalanceAggregator",
    "NoteDecryptor",
]
