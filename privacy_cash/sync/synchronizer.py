"""
Privacy Cash Client Note Synchronization

Incremental download of encrypted outputs into the note cache.

Guarantees per cache key:
- outputs are appended in emission order
- offset and outputs are committed together, once per successful sync
- a failed or cancelled sync leaves the committed record untouched
- concurrent syncs of the same key are serialized
"""

from __future__ import annotations
import asyncio
import logging
from dataclasses import dataclass
from typing import Dict, List, Optional

import httpx

from privacy_cash.constants import FETCH_BATCH_SIZE, TOKENS
from privacy_cash.core.types import (
    PublicKey,
    AssetDescriptor,
    CacheRecord,
    FungibleToken,
    NotePage,
    NATIVE,
)
from privacy_cash.errors import LedgerQueryError, RetryableSyncError
from privacy_cash.network.indexer import NoteSource
from privacy_cash.storage.cache import CacheStore, cache_key

logger = logging.getLogger(__name__)

_TRANSPORT_ERRORS = (LedgerQueryError, httpx.HTTPError, OSError, asyncio.TimeoutError)


@dataclass
class SyncResult:
    """Outcome of one sync call."""
    record: CacheRecord
    pages: int = 0
    new_outputs: int = 0
    duplicates: int = 0
    cancelled: bool = False


class NoteSynchronizer:
    """
    Keeps note caches in step with the ledger.

    Starting offsets let a fresh cache skip history known to hold no notes
    for this wallet; they only apply while no record exists.
    """

    def __init__(
        self,
        store: CacheStore,
        source: NoteSource,
        batch_size: int = FETCH_BATCH_SIZE,
        starting_offsets: Optional[Dict[str, int]] = None,
    ):
        if batch_size < 1:
            raise ValueError("batch_size must be at least 1")
        self.store = store
        self.source = source
        self.batch_size = batch_size
        self.starting_offsets = dict(starting_offsets or {})
        self._locks: Dict[str, asyncio.Lock] = {}

    def _lock_for(self, key: str) -> asyncio.Lock:
        lock = self._locks.get(key)
        if lock is None:
            lock = self._locks[key] = asyncio.Lock()
        return lock

    def starting_offset(self, asset: AssetDescriptor) -> int:
        return self.starting_offsets.get(asset.key, 0)

    async def load(self, owner: PublicKey, asset: AssetDescriptor) -> CacheRecord:
        """Committed record, or the empty record when none exists."""
        return await self._load(cache_key(owner, asset), asset)

    async def _load(self, key: str, asset: AssetDescriptor) -> CacheRecord:
        record = await self.store.load(key)
        if record is None:
            return CacheRecord(offset=self.starting_offset(asset))
        return record

    async def sync(
        self,
        owner: PublicKey,
        asset: AssetDescriptor,
        cancel: Optional[asyncio.Event] = None,
    ) -> CacheRecord:
        """
        Fetch outputs emitted after the cached offset and commit them.

        Args:
            owner: Wallet public key
            asset: Asset whose cache is synchronized
            cancel: Optional event; once set, the in-flight page is discarded
                and the last committed record is returned

        Returns:
            Committed CacheRecord after this sync

        Raises:
            RetryableSyncError: transport failure or malformed page (cache untouched)
        """
        result = await self.sync_detailed(owner, asset, cancel)
        return result.record

    async def sync_detailed(
        self,
        owner: PublicKey,
        asset: AssetDescriptor,
        cancel: Optional[asyncio.Event] = None,
    ) -> SyncResult:
        key = cache_key(owner, asset)

        async with self._lock_for(key):
            committed = await self._load(key, asset)
            result = SyncResult(record=committed)
            offset = committed.offset
            pending: List[bytes] = []

            logger.info(f"Syncing {asset} notes from offset {offset}")

            while True:
                page = await self._fetch_page(key, asset, offset, cancel)
                if page is None:
                    logger.info(
                        f"Sync of {key} cancelled, keeping committed offset {committed.offset}"
                    )
                    result.cancelled = True
                    return result

                result.pages += 1
                previous = None
                fresh = 0
                for output in page.outputs:
                    if previous is not None and output.position <= previous:
                        raise RetryableSyncError(
                            key,
                            f"out-of-order position {output.position} after {previous}"
                        )
                    previous = output.position
                    if output.position <= offset:
                        result.duplicates += 1
                        continue
                    pending.append(output.data)
                    offset = output.position
                    fresh += 1

                logger.debug(f"Page {result.pages} for {key}: {fresh} new, offset {offset}")

                if not page.has_more or not page.outputs:
                    break
                if fresh == 0:
                    logger.warning(f"Indexer reported more outputs for {key} but sent none new")
                    break

            if not pending:
                logger.info(f"No new {asset} notes (offset {committed.offset})")
                return result

            updated = committed.extend(pending, offset)
            await self.store.save(key, updated)

            result.record = updated
            result.new_outputs = len(pending)
            logger.info(f"Cached {len(pending)} new {asset} outputs, offset {offset}")
            return result

    async def _fetch_page(
        self,
        key: str,
        asset: AssetDescriptor,
        after: int,
        cancel: Optional[asyncio.Event],
    ) -> Optional[NotePage]:
        """Fetch one page, or None when cancelled first."""
        if cancel is not None and cancel.is_set():
            return None

        try:
            if cancel is None:
                return await self.source.fetch_notes(asset, after, self.batch_size)
            return await self._race_cancel(asset, after, cancel)
        except _TRANSPORT_ERRORS as e:
            logger.warning(f"Sync of {key} failed at offset {after}: {e}")
            raise RetryableSyncError(key, str(e)) from e

    async def _race_cancel(
        self,
        asset: AssetDescriptor,
        after: int,
        cancel: asyncio.Event,
    ) -> Optional[NotePage]:
        fetch_task = asyncio.ensure_future(self.source.fetch_notes(asset, after, self.batch_size))
        cancel_task = asyncio.ensure_future(cancel.wait())
        try:
            await asyncio.wait({fetch_task, cancel_task}, return_when=asyncio.FIRST_COMPLETED)
        finally:
            for task in (fetch_task, cancel_task):
                if not task.done():
                    task.cancel()
            await asyncio.gather(fetch_task, cancel_task, return_exceptions=True)

        if cancel.is_set():
            return None
        return fetch_task.result()

    # =========================================================================
    # Cache clearing
    # =========================================================================

    async def clear_cache(self, owner: PublicKey) -> List[str]:
        """
        Remove cached notes for the native asset and the registered tokens.

        Only mints in TOKENS are cleared; caches for other mints stay.

        Returns:
            Cache keys that were cleared
        """
        assets: List[AssetDescriptor] = [NATIVE]
        assets.extend(FungibleToken(PublicKey.from_base58(t.mint)) for t in TOKENS)

        cleared = []
        for asset in assets:
            key = cache_key(owner, asset)
            async with self._lock_for(key):
                await self.store.delete(key)
            cleared.append(key)

        logger.info(f"Cleared {len(cleared)} note caches for {owner}")
        return cleared
