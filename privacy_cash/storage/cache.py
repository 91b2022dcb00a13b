"""
Privacy Cash Client Note Cache Storage

Per-key persistence of (offset, encrypted outputs). The cache only speeds up
sync; deleting it and syncing again reproduces the same state.

Layout: two entries per cache key
    fetch_offset<key>       -> integer offset
    encrypted_outputs<key>  -> JSON list of hex blobs, emission order
"""

from __future__ import annotations
import asyncio
import json
import logging
from abc import ABC, abstractmethod
from typing import Dict, List, Optional, Tuple

from privacy_cash.constants import (
    PROGRAM_ID,
    LSK_FETCH_OFFSET,
    LSK_ENCRYPTED_OUTPUTS,
    STORAGE_KEY_PREFIX_LEN,
)
from privacy_cash.core.types import PublicKey, AssetDescriptor, CacheRecord
from privacy_cash.crypto.address import cache_address

logger = logging.getLogger(__name__)


def storage_key(address: PublicKey) -> str:
    """Stable string key for an address."""
    return PROGRAM_ID[:STORAGE_KEY_PREFIX_LEN] + address.to_base58()


def cache_key(owner: PublicKey, asset: AssetDescriptor) -> str:
    """Cache key for (owner, asset)."""
    return storage_key(cache_address(owner, asset))


def entry_names(key: str) -> Tuple[str, str]:
    """Names of the offset and outputs entries for a cache key."""
    return LSK_FETCH_OFFSET + key, LSK_ENCRYPTED_OUTPUTS + key


def encode_outputs(outputs: Tuple[bytes, ...]) -> str:
    return json.dumps([blob.hex() for blob in outputs])


def decode_outputs(value: str) -> Tuple[bytes, ...]:
    return tuple(bytes.fromhex(item) for item in json.loads(value))


class CacheStore(ABC):
    """
    Injected persistence for note caches.

    save() must write offset and outputs together or not at all.
    """

    @abstractmethod
    async def load(self, key: str) -> Optional[CacheRecord]:
        """Return the record for key, or None when absent."""

    @abstractmethod
    async def save(self, key: str, record: CacheRecord) -> None:
        """Atomically replace both entries for key."""

    @abstractmethod
    async def delete(self, key: str) -> None:
        """Remove both entries for key (no-op when absent)."""

    async def close(self) -> None:
        """Release resources."""


class MemoryCacheStore(CacheStore):
    """In-process store; one instance per client, no sharing between instances."""

    def __init__(self):
        self._entries: Dict[str, str] = {}
        self._lock = asyncio.Lock()

    async def load(self, key: str) -> Optional[CacheRecord]:
        offset_name, outputs_name = entry_names(key)
        async with self._lock:
            offset = self._entries.get(offset_name)
            outputs = self._entries.get(outputs_name)
        if offset is None or outputs is None:
            return None
        return CacheRecord(offset=int(offset), encrypted_outputs=decode_outputs(outputs))

    async def save(self, key: str, record: CacheRecord) -> None:
        offset_name, outputs_name = entry_names(key)
        encoded = encode_outputs(record.encrypted_outputs)
        async with self._lock:
            self._entries.update({offset_name: str(record.offset), outputs_name: encoded})

    async def delete(self, key: str) -> None:
        offset_name, outputs_name = entry_names(key)
        async with self._lock:
            self._entries.pop(offset_name, None)
            self._entries.pop(outputs_name, None)

    def keys(self) -> List[str]:
        """Raw entry names currently stored."""
        return sorted(self._entries)
