"""
Privacy Cash Client Network
Indexer and ledger RPC access.
"""

from privacy_cash.network.indexer import NoteSource, RelayerNoteSource
from privacy_cash.network.rpc import LedgerConnection, ConnectionProvider, static_provider

__all__ = [
    "NoteSource",
    "RelayerNoteSource",
    "LedgerConnection",
    "ConnectionProvider",
    "static_provider",
]
