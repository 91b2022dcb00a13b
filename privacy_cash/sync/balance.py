"""
Privacy Cash Client Balance Aggregation

Decrypts cached outputs and sums the unspent notes of one asset.
"""

from __future__ import annotations
import logging
from typing import List, Protocol

from privacy_cash.core.types import AssetDescriptor, CacheRecord, Note
from privacy_cash.errors import NoteDecodeSkipped
from privacy_cash.protocol.engine import SpentStateProvider

logger = logging.getLogger(__name__)


class NoteDecryptor(Protocol):
    """Per-note decryption capability."""

    def decrypt_note(self, blob: bytes) -> Note:
        ...


class BalanceAggregator:
    """Private balance from a cache record."""

    def __init__(self, decryptor: NoteDecryptor, spent_state: SpentStateProvider):
        self.decryptor = decryptor
        self.spent_state = spent_state

    def decrypt_notes(self, record: CacheRecord, asset: AssetDescriptor) -> List[Note]:
        """
        Decrypt every blob, keeping notes of this asset with a non-zero amount.

        Blobs that fail to decrypt belong to other wallets or are malformed;
        they are skipped, never reported.
        """
        notes = []
        skipped = 0
        for blob in record.encrypted_outputs:
            try:
                note = self.decryptor.decrypt_note(blob)
            except NoteDecodeSkipped:
                skipped += 1
                continue
            if note.amount == 0 or note.mint != asset.mint:
                continue
            notes.append(note)

        logger.debug(
            f"Decrypted {len(notes)} {asset} notes, skipped {skipped} of "
            f"{len(record.encrypted_outputs)} outputs"
        )
        return notes

    async def unspent_notes(self, record: CacheRecord, asset: AssetDescriptor) -> List[Note]:
        notes = self.decrypt_notes(record, asset)
        if not notes:
            return []
        flags = await self.spent_state.spent_flags(notes, asset)
        if len(flags) != len(notes):
            raise ValueError(f"spent_flags returned {len(flags)} flags for {len(notes)} notes")
        return [note for note, spent in zip(notes, flags) if not spent]

    async def balance(self, record: CacheRecord, asset: AssetDescriptor) -> int:
        """Sum of unspent note amounts, in the asset's base units."""
        unspent = await self.unspent_notes(record, asset)
        total = sum(note.amount for note in unspent)
        logger.debug(f"{asset} balance {total} from {len(unspent)} unspent notes")
        return total
