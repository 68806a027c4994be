"""Redis blocklist store implementation."""

import logging
from datetime import datetime
from typing import Any

import redis.asyncio as redis

from walletguard.core.blocklist import BlocklistStore
from walletguard.core.exceptions import AddressAlreadyBlocked, BlocklistStorageError
from walletguard.models.blocklist import BlocklistEntry, UserRecord

logger = logging.getLogger(__name__)


class RedisBlocklistStore(BlocklistStore):
    """
    Redis-based blocklist store.

    Each user owns two hashes: one mapping address to the serialized entry
    and one holding the record timestamps.
    """

    def __init__(self, redis_url: str, client: Any = None) -> None:
        """
        Initialize Redis blocklist store.

        Args:
            redis_url: Redis connection URL.
            client: Optional pre-built async client.
        """
        self._redis_url = redis_url
        self._client: Any = client

    async def _get_client(self) -> Any:
        """Get or create Redis client."""
        if self._client is None:
            try:
                self._client = redis.from_url(
                    self._redis_url,
                    encoding="utf-8",
                    decode_responses=True,
                )
            except Exception as e:
                raise BlocklistStorageError(f"Failed to connect to Redis: {e}", "connect") from e
        return self._client

    @staticmethod
    def _entries_key(user_id: str) -> str:
        return f"walletguard:blocklist:{user_id}"

    @staticmethod
    def _meta_key(user_id: str) -> str:
        return f"walletguard:user:{user_id}"

    async def get_record(self, user_id: str) -> UserRecord | None:
        """Load the user's hashes from Redis."""
        try:
            client = await self._get_client()
            meta = await client.hgetall(self._meta_key(user_id))
            raw_entries = await client.hgetall(self._entries_key(user_id))
        except Exception as e:
            raise BlocklistStorageError(f"Redis read failed: {e}", "get") from e

        if not meta and not raw_entries:
            return None

        entries = sorted(
            (BlocklistEntry.model_validate_json(value) for value in raw_entries.values()),
            key=lambda entry: entry.blocked_at,
        )
        # Entries without timestamps still veto; derive them from the entries.
        created_at = meta.get("created_at") or entries[0].blocked_at.isoformat()
        last_updated = meta.get("last_updated") or created_at
        return UserRecord(
            user_id=user_id,
            blocklist=entries,
            created_at=datetime.fromisoformat(created_at),
            last_updated=datetime.fromisoformat(last_updated),
        )

    async def insert_entry(
        self, user_id: str, entry: BlocklistEntry, updated_at: datetime
    ) -> None:
        """Store the entry and the record timestamps in one MULTI/EXEC."""
        meta_key = self._meta_key(user_id)
        try:
            client = await self._get_client()
            async with client.pipeline(transaction=True) as pipe:
                pipe.hsetnx(self._entries_key(user_id), entry.address, entry.model_dump_json())
                pipe.hsetnx(meta_key, "created_at", updated_at.isoformat())
                pipe.hset(meta_key, "last_updated", updated_at.isoformat())
                created, _, _ = await pipe.execute()
        except Exception as e:
            raise BlocklistStorageError(f"Redis insert failed: {e}", "insert") from e

        if not created:
            raise AddressAlreadyBlocked(entry.address)

    async def delete_entry(
        self, user_id: str, address: str, updated_at: datetime
    ) -> bool:
        """Delete an entry; the record is touched only when one was removed."""
        try:
            client = await self._get_client()
            removed = await client.hdel(self._entries_key(user_id), address)
            if removed:
                await client.hset(self._meta_key(user_id), "last_updated", updated_at.isoformat())
            return bool(removed)
        except Exception as e:
            raise BlocklistStorageError(f"Redis delete failed: {e}", "delete") from e

    async def close(self) -> None:
        """Close Redis connection."""
        if self._client:
            await self._client.aclose()
            self._client = None

    async def ping(self) -> bool:
        """Check Redis connectivity."""
        try:
            client = await self._get_client()
            return await client.ping()
        except Exception as e:
            logger.warning(f"Redis ping failed: {e}")
            return False
