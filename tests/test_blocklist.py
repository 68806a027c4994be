"""Tests for blocklist storage."""

import asyncio

import pytest

from fakes import SOL_ADDRESS, SOL_ADDRESS_2, FailingBlocklistStore, FakeRedis
from walletguard.blocklist.memory import MemoryBlocklistStore
from walletguard.blocklist.redis import RedisBlocklistStore
from walletguard.constants import BlocklistSource
from walletguard.core.exceptions import AddressAlreadyBlocked, BlocklistStorageError


class TestMemoryBlocklistStore:
    """Tests for MemoryBlocklistStore."""

    @pytest.mark.asyncio
    async def test_add_and_lookup(self, blocklist_store: MemoryBlocklistStore) -> None:
        """Test adding an entry makes it blocked."""
        entry = await blocklist_store.add_entry("alice", SOL_ADDRESS, "scammer")

        assert entry.address == SOL_ADDRESS
        assert entry.reason == "scammer"
        assert entry.added_by == BlocklistSource.MANUAL
        assert await blocklist_store.is_blocked("alice", SOL_ADDRESS)

    @pytest.mark.asyncio
    async def test_blocklists_are_per_user(self, blocklist_store: MemoryBlocklistStore) -> None:
        """Test that one user's entry does not affect another."""
        await blocklist_store.add_entry("alice", SOL_ADDRESS)

        assert not await blocklist_store.is_blocked("bob", SOL_ADDRESS)
        assert await blocklist_store.list_entries("bob") == []

    @pytest.mark.asyncio
    async def test_duplicate_rejected(self, blocklist_store: MemoryBlocklistStore) -> None:
        """Test that an address can be stored only once per user."""
        await blocklist_store.add_entry("alice", SOL_ADDRESS)

        with pytest.raises(AddressAlreadyBlocked):
            await blocklist_store.add_entry("alice", SOL_ADDRESS, "again")

        assert len(await blocklist_store.list_entries("alice")) == 1

    @pytest.mark.asyncio
    async def test_concurrent_duplicates(self, blocklist_store: MemoryBlocklistStore) -> None:
        """Test that racing inserts still keep one entry."""
        results = await asyncio.gather(
            blocklist_store.add_entry("alice", SOL_ADDRESS),
            blocklist_store.add_entry("alice", SOL_ADDRESS),
            return_exceptions=True,
        )

        assert sum(isinstance(r, AddressAlreadyBlocked) for r in results) == 1
        assert len(await blocklist_store.list_entries("alice")) == 1

    @pytest.mark.asyncio
    async def test_remove_is_idempotent(self, blocklist_store: MemoryBlocklistStore) -> None:
        """Test removing present and absent entries."""
        await blocklist_store.add_entry("alice", SOL_ADDRESS)

        await blocklist_store.remove_entry("alice", SOL_ADDRESS)
        await blocklist_store.remove_entry("alice", SOL_ADDRESS)
        await blocklist_store.remove_entry("nobody", SOL_ADDRESS)

        assert not await blocklist_store.is_blocked("alice", SOL_ADDRESS)

    @pytest.mark.asyncio
    async def test_last_updated_advances(self, blocklist_store: MemoryBlocklistStore) -> None:
        """Test that mutations touch the record timestamp."""
        assert await blocklist_store.get_last_updated("alice") is None

        first = await blocklist_store.add_entry("alice", SOL_ADDRESS)
        after_add = await blocklist_store.get_last_updated("alice")
        await blocklist_store.add_entry("alice", SOL_ADDRESS_2)
        after_second = await blocklist_store.get_last_updated("alice")

        assert after_add == first.blocked_at
        assert after_second >= after_add

    @pytest.mark.asyncio
    async def test_removing_absent_entry_keeps_timestamp(
        self, blocklist_store: MemoryBlocklistStore
    ) -> None:
        """Test that unblocking an address that is not blocked changes nothing."""
        await blocklist_store.add_entry("alice", SOL_ADDRESS)
        before = await blocklist_store.get_last_updated("alice")
        await asyncio.sleep(0.001)

        await blocklist_store.remove_entry("alice", SOL_ADDRESS_2)
        await blocklist_store.remove_entry("nobody", SOL_ADDRESS)

        assert await blocklist_store.get_last_updated("alice") == before
        assert await blocklist_store.get_record("nobody") is None

    @pytest.mark.asyncio
    async def test_list_preserves_insertion_order(
        self, blocklist_store: MemoryBlocklistStore
    ) -> None:
        """Test entry ordering."""
        await blocklist_store.add_entry("alice", SOL_ADDRESS)
        await blocklist_store.add_entry("alice", SOL_ADDRESS_2)

        entries = await blocklist_store.list_entries("alice")
        assert [e.address for e in entries] == [SOL_ADDRESS, SOL_ADDRESS_2]

    @pytest.mark.asyncio
    async def test_returned_records_are_copies(
        self, blocklist_store: MemoryBlocklistStore
    ) -> None:
        """Test that callers cannot mutate stored state."""
        await blocklist_store.add_entry("alice", SOL_ADDRESS)

        entries = await blocklist_store.list_entries("alice")
        entries.clear()

        assert await blocklist_store.is_blocked("alice", SOL_ADDRESS)


class TestBlocklistStorageFailure:
    """Tests for behavior when the backend fails."""

    @pytest.mark.asyncio
    async def test_lookup_reports_error(self) -> None:
        """Test that lookups return the error instead of raising."""
        store = FailingBlocklistStore()

        lookup = await store.lookup("alice", SOL_ADDRESS)

        assert not lookup.blocked
        assert lookup.degraded
        assert "connection refused" in lookup.error

    @pytest.mark.asyncio
    async def test_is_blocked_fails_open(self) -> None:
        """Test that storage errors do not block transfers by themselves."""
        store = FailingBlocklistStore()

        assert await store.is_blocked("alice", SOL_ADDRESS) is False


class TestRedisBlocklistStore:
    """Tests for RedisBlocklistStore against an in-memory client."""

    @pytest.mark.asyncio
    async def test_roundtrip(self) -> None:
        """Test add, lookup, list and remove."""
        store = RedisBlocklistStore("redis://test", client=FakeRedis())

        await store.add_entry("alice", SOL_ADDRESS, "scam")
        await store.add_entry("alice", SOL_ADDRESS_2)

        entries = await store.list_entries("alice")
        assert [e.address for e in entries] == [SOL_ADDRESS, SOL_ADDRESS_2]
        assert (await store.get_entry("alice", SOL_ADDRESS)).reason == "scam"

        await store.remove_entry("alice", SOL_ADDRESS)
        assert not await store.is_blocked("alice", SOL_ADDRESS)
        assert await store.ping()

    @pytest.mark.asyncio
    async def test_duplicate_rejected(self) -> None:
        """Test that HSETNX rejects a second insert."""
        store = RedisBlocklistStore("redis://test", client=FakeRedis())
        await store.add_entry("alice", SOL_ADDRESS)

        with pytest.raises(AddressAlreadyBlocked):
            await store.add_entry("alice", SOL_ADDRESS)

    @pytest.mark.asyncio
    async def test_connection_failure(self) -> None:
        """Test that client errors surface as storage errors."""
        client = FakeRedis()
        client.fail = True
        store = RedisBlocklistStore("redis://test", client=client)

        with pytest.raises(BlocklistStorageError):
            await store.add_entry("alice", SOL_ADDRESS)
        assert (await store.lookup("alice", SOL_ADDRESS)).degraded
        assert not await store.ping()

    @pytest.mark.asyncio
    async def test_failed_meta_write_leaves_nothing_behind(self) -> None:
        """Test that an insert is all or nothing when the timestamp hash write fails."""
        client = FakeRedis(failing_prefixes=("walletguard:user:",))
        store = RedisBlocklistStore("redis://test", client=client)

        with pytest.raises(BlocklistStorageError):
            await store.add_entry("alice", SOL_ADDRESS)

        assert client.hashes.get("walletguard:blocklist:alice", {}) == {}
        assert await store.get_record("alice") is None

    @pytest.mark.asyncio
    async def test_entries_without_timestamps_still_block(self) -> None:
        """Test that entries whose timestamp hash is missing still veto the address."""
        client = FakeRedis()
        store = RedisBlocklistStore("redis://test", client=client)
        await store.add_entry("alice", SOL_ADDRESS, "scam")
        del client.hashes["walletguard:user:alice"]

        record = await store.get_record("alice")

        assert record is not None
        assert record.created_at == record.blocklist[0].blocked_at
        assert await store.is_blocked("alice", SOL_ADDRESS)
        assert (await store.lookup("alice", SOL_ADDRESS)).blocked

    @pytest.mark.asyncio
    async def test_removing_absent_entry_keeps_timestamp(self) -> None:
        """Test that unblocking an unknown address does not touch last_updated."""
        client = FakeRedis()
        store = RedisBlocklistStore("redis://test", client=client)
        await store.add_entry("alice", SOL_ADDRESS)
        before = dict(client.hashes["walletguard:user:alice"])

        await store.remove_entry("alice", SOL_ADDRESS_2)
        await store.remove_entry("nobody", SOL_ADDRESS)

        assert client.hashes["walletguard:user:alice"] == before
        assert "walletguard:user:nobody" not in client.hashes
