"""Redis trusted contact store implementation."""

import logging
from typing import Any

import redis.asyncio as redis

from walletguard.core.contacts import TrustedContactStore
from walletguard.core.exceptions import ContactAlreadyExists, StorageError
from walletguard.models.contacts import TrustedContact

logger = logging.getLogger(__name__)


class RedisContactStore(TrustedContactStore):
    """Redis-based contact store: one hash per user, address to contact JSON."""

    def __init__(self, redis_url: str, client: Any = None) -> None:
        """
        Initialize Redis contact store.

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
                raise StorageError(f"Failed to connect to Redis: {e}", "connect") from e
        return self._client

    @staticmethod
    def _key(user_id: str) -> str:
        return f"walletguard:contacts:{user_id}"

    async def list_contacts(self, user_id: str) -> list[TrustedContact]:
        try:
            client = await self._get_client()
            raw = await client.hgetall(self._key(user_id))
        except Exception as e:
            raise StorageError(f"Redis read failed: {e}", "get") from e
        return sorted(
            (TrustedContact.model_validate_json(value) for value in raw.values()),
            key=lambda contact: contact.added_at,
        )

    async def insert_contact(self, user_id: str, contact: TrustedContact) -> None:
        try:
            client = await self._get_client()
            created = await client.hsetnx(
                self._key(user_id), contact.address, contact.model_dump_json()
            )
        except Exception as e:
            raise StorageError(f"Redis insert failed: {e}", "insert") from e
        if not created:
            raise ContactAlreadyExists(contact.address)

    async def replace_contact(self, user_id: str, contact: TrustedContact) -> bool:
        key = self._key(user_id)
        try:
            client = await self._get_client()
            if not await client.hexists(key, contact.address):
                return False
            await client.hset(key, contact.address, contact.model_dump_json())
            return True
        except Exception as e:
            raise StorageError(f"Redis update failed: {e}", "update") from e

    async def delete_contact(self, user_id: str, address: str) -> bool:
        try:
            client = await self._get_client()
            return bool(await client.hdel(self._key(user_id), address))
        except Exception as e:
            raise StorageError(f"Redis delete failed: {e}", "delete") from e

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
