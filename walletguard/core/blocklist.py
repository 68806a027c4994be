"""Abstract blocklist store interface."""

import logging
from abc import ABC, abstractmethod
from datetime import datetime

from walletguard.constants import BlocklistSource
from walletguard.core.exceptions import AddressAlreadyBlocked, BlocklistStorageError
from walletguard.models.blocklist import (
    BlocklistEntry,
    BlocklistLookup,
    UserRecord,
    utcnow,
)

logger = logging.getLogger(__name__)


class BlocklistStore(ABC):
    """
    Abstract base class for per-user blocklist persistence.

    Backends implement the storage primitives; the blocklist contract
    (lookup, uniqueness, idempotent removal) is built on top of them here.
    Primitives raise BlocklistStorageError when the backend fails.
    """

    @abstractmethod
    async def get_record(self, user_id: str) -> UserRecord | None:
        """
        Load the user's record.

        Args:
            user_id: Owner of the blocklist.

        Returns:
            The record, or None if the user has no record yet.
        """
        ...

    @abstractmethod
    async def insert_entry(
        self, user_id: str, entry: BlocklistEntry, updated_at: datetime
    ) -> None:
        """
        Insert an entry, creating the user record when missing.

        Raises:
            AddressAlreadyBlocked: If the address is already stored.
        """
        ...

    @abstractmethod
    async def delete_entry(
        self, user_id: str, address: str, updated_at: datetime
    ) -> bool:
        """
        Delete an entry and touch the user record if it exists.

        Returns:
            True if an entry was removed.
        """
        ...

    @abstractmethod
    async def close(self) -> None:
        """Close the storage connection."""
        ...

    @abstractmethod
    async def ping(self) -> bool:
        """Check if the backend is reachable."""
        ...

    async def lookup(self, user_id: str, address: str) -> BlocklistLookup:
        """Check an address, reporting storage failures instead of raising."""
        try:
            entry = await self.get_entry(user_id, address)
        except BlocklistStorageError as e:
            logger.warning(f"[Blocklist] Lookup failed for user {user_id}: {e.message}")
            return BlocklistLookup(blocked=False, error=e.message)
        return BlocklistLookup(blocked=entry is not None, entry=entry)

    async def is_blocked(self, user_id: str, address: str) -> bool:
        """Check if an address is blocked. Fails open on storage errors."""
        result = await self.lookup(user_id, address)
        return result.blocked

    async def get_entry(self, user_id: str, address: str) -> BlocklistEntry | None:
        """Get the blocklist entry for an address."""
        record = await self.get_record(user_id)
        if record is None:
            return None
        return record.find(address)

    async def list_entries(self, user_id: str) -> list[BlocklistEntry]:
        """Get all blocked addresses of a user."""
        record = await self.get_record(user_id)
        if record is None:
            return []
        return list(record.blocklist)

    async def get_last_updated(self, user_id: str) -> datetime | None:
        """When the user's record was last modified."""
        record = await self.get_record(user_id)
        return record.last_updated if record else None

    async def add_entry(
        self,
        user_id: str,
        address: str,
        reason: str = "",
        added_by: BlocklistSource = BlocklistSource.MANUAL,
    ) -> BlocklistEntry:
        """
        Add an address to a user's blocklist.

        Raises:
            AddressAlreadyBlocked: If the address is already blocked.
        """
        if await self.get_entry(user_id, address) is not None:
            raise AddressAlreadyBlocked(address)

        now = utcnow()
        entry = BlocklistEntry(
            address=address, reason=reason, blocked_at=now, added_by=added_by
        )
        await self.insert_entry(user_id, entry, now)
        logger.info(f"[Blocklist] {address[:8]}... blocked by user {user_id}")
        return entry

    async def remove_entry(self, user_id: str, address: str) -> None:
        """Remove an address from a user's blocklist. Absent entries are ignored."""
        removed = await self.delete_entry(user_id, address, utcnow())
        if removed:
            logger.info(f"[Blocklist] {address[:8]}... unblocked by user {user_id}")
