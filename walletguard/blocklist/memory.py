"""In-memory blocklist store implementation."""

import asyncio
import logging
from datetime import datetime

from walletguard.core.blocklist import BlocklistStore
from walletguard.core.exceptions import AddressAlreadyBlocked
from walletguard.models.blocklist import BlocklistEntry, UserRecord

logger = logging.getLogger(__name__)


class MemoryBlocklistStore(BlocklistStore):
    """In-memory blocklist store. For development/testing only."""

    def __init__(self) -> None:
        self._records: dict[str, UserRecord] = {}
        self._lock = asyncio.Lock()

    async def get_record(self, user_id: str) -> UserRecord | None:
        """Return a copy of the user's record."""
        async with self._lock:
            record = self._records.get(user_id)
            return record.model_copy(deep=True) if record else None

    async def insert_entry(
        self, user_id: str, entry: BlocklistEntry, updated_at: datetime
    ) -> None:
        """Insert an entry, creating the record on first use."""
        async with self._lock:
            record = self._records.get(user_id)
            if record is None:
                record = UserRecord(
                    user_id=user_id, created_at=updated_at, last_updated=updated_at
                )
                self._records[user_id] = record
            if record.find(entry.address) is not None:
                raise AddressAlreadyBlocked(entry.address)
            record.blocklist.append(entry)
            record.last_updated = updated_at

    async def delete_entry(
        self, user_id: str, address: str, updated_at: datetime
    ) -> bool:
        """Remove an entry from memory."""
        async with self._lock:
            record = self._records.get(user_id)
            if record is None:
                return False
            remaining = [e for e in record.blocklist if e.address != address]
            if len(remaining) == len(record.blocklist):
                return False
            record.blocklist = remaining
            record.last_updated = updated_at
            return True

    async def close(self) -> None:
        """Clear the in-memory store."""
        async with self._lock:
            self._records.clear()

    async def ping(self) -> bool:
        """Memory store is always available."""
        return True
