"""
Privacy Cash Client Storage Tests
"""

import asyncio

import aiosqlite
import pytest

from privacy_cash.constants import PROGRAM_ID, USDC_MINT
from privacy_cash.core.types import CacheRecord, NATIVE, asset_for_mint
from privacy_cash.crypto.address import associated_token_address
from privacy_cash.storage.cache import MemoryCacheStore, cache_key, entry_names, storage_key
from privacy_cash.storage.sqlite import SQLiteCacheStore


class TestCacheKeys:
    """Tests for cache key layout."""

    def test_native_key(self, keypair):
        """Test native key is the program prefix plus the owner."""
        key = cache_key(keypair.public_key, NATIVE)
        assert key == PROGRAM_ID[:6] + keypair.public_key.to_base58()

    def test_token_key(self, keypair):
        """Test token key uses the associated token account."""
        usdc = asset_for_mint(USDC_MINT)
        ata = associated_token_address(keypair.public_key, usdc.mint_address)
        assert cache_key(keypair.public_key, usdc) == storage_key(ata)
        assert cache_key(keypair.public_key, usdc) != cache_key(keypair.public_key, NATIVE)

    def test_entry_names(self):
        """Test the two persisted entry names."""
        assert entry_names("k") == ("fetch_offsetk", "encrypted_outputsk")


class TestMemoryCacheStore:
    """Tests for MemoryCacheStore."""

    @pytest.mark.asyncio
    async def test_absent(self, memory_store):
        """Test missing key loads as None."""
        assert await memory_store.load("missing") is None

    @pytest.mark.asyncio
    async def test_save_load_delete(self, memory_store):
        """Test both entries are written and removed together."""
        record = CacheRecord(offset=2, encrypted_outputs=(b"\x01", b"\x02\x03"))
        await memory_store.save("k", record)

        assert await memory_store.load("k") == record
        assert memory_store.keys() == ["encrypted_outputsk", "fetch_offsetk"]

        await memory_store.delete("k")
        assert await memory_store.load("k") is None
        assert memory_store.keys() == []

    @pytest.mark.asyncio
    async def test_instances_do_not_share(self, memory_store):
        """Test two stores are independent."""
        await memory_store.save("k", CacheRecord(offset=1, encrypted_outputs=(b"x",)))
        assert await MemoryCacheStore().load("k") is None


class TestSQLiteCacheStore:
    """Tests for SQLiteCacheStore."""

    @pytest.mark.asyncio
    async def test_save_load(self, tmp_path):
        """Test a record survives reopening the database."""
        path = str(tmp_path / "cache" / "notes.db")
        record = CacheRecord(offset=7, encrypted_outputs=(b"\xaa", b"\xbb"))

        async with SQLiteCacheStore(path) as store:
            await store.save("k", record)

        async with SQLiteCacheStore(path) as store:
            assert await store.load("k") == record
            stats = await store.get_statistics()
            assert stats["entry_count"] == 2
            assert stats["schema_version"] == 1

    @pytest.mark.asyncio
    async def test_overwrite_and_delete(self, tmp_path):
        """Test save replaces both entries, delete removes both."""
        async with SQLiteCacheStore(str(tmp_path / "notes.db")) as store:
            await store.save("k", CacheRecord(offset=1, encrypted_outputs=(b"a",)))
            await store.save("k", CacheRecord(offset=2, encrypted_outputs=(b"a", b"b")))
            assert (await store.load("k")).offset == 2

            await store.delete("k")
            assert await store.load("k") is None
            assert (await store.get_statistics())["entry_count"] == 0

    @pytest.mark.asyncio
    async def test_failed_transaction_rolls_back(self, tmp_path):
        """Test a write interrupted mid-transaction leaves nothing behind."""
        async with SQLiteCacheStore(str(tmp_path / "notes.db")) as store:
            with pytest.raises(RuntimeError):
                async with store._transaction() as conn:
                    await conn.execute(
                        "INSERT INTO cache_entries (name, value) VALUES (?, ?)",
                        ("fetch_offsetk", "5"),
                    )
                    raise RuntimeError("crash between entries")

            assert await store.load("k") is None
            assert (await store.get_statistics())["entry_count"] == 0

    @pytest.mark.asyncio
    async def test_lazy_connect(self, tmp_path):
        """Test operations open the database on first use."""
        store = SQLiteCacheStore(str(tmp_path / "notes.db"))
        try:
            assert await store.load("k") is None
        finally:
            await store.close()

    @pytest.mark.asyncio
    async def test_concurrent_first_use_opens_one_connection(self, tmp_path, monkeypatch):
        """Test parallel loads on a fresh store share a single connection."""
        opened = []
        real_connect = aiosqlite.connect

        def counting_connect(*args, **kwargs):
            conn = real_connect(*args, **kwargs)
            opened.append(conn)
            return conn

        monkeypatch.setattr(aiosqlite, "connect", counting_connect)

        store = SQLiteCacheStore(str(tmp_path / "notes.db"))
        try:
            results = await asyncio.gather(*(store.load(f"k{i}") for i in range(3)))
            assert results == [None, None, None]
            assert len(opened) == 1
            assert store._conn is opened[0]
        finally:
            await store.close()
        assert store._conn is None
