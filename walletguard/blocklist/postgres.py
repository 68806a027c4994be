"""PostgreSQL blocklist store implementation."""

import logging
from datetime import datetime
from typing import Any

import asyncpg

from walletguard.core.blocklist import BlocklistStore
from walletguard.core.exceptions import AddressAlreadyBlocked, BlocklistStorageError
from walletguard.models.blocklist import BlocklistEntry, UserRecord

logger = logging.getLogger(__name__)

CREATE_TABLES_SQL = """
CREATE TABLE IF NOT EXISTS blocklist_users (
    user_id VARCHAR(255) PRIMARY KEY,
    created_at TIMESTAMP WITH TIME ZONE DEFAULT NOW(),
    last_updated TIMESTAMP WITH TIME ZONE DEFAULT NOW()
);

CREATE TABLE IF NOT EXISTS blocklist_entries (
    user_id VARCHAR(255) NOT NULL REFERENCES blocklist_users(user_id) ON DELETE CASCADE,
    address VARCHAR(128) NOT NULL,
    reason TEXT NOT NULL DEFAULT '',
    blocked_at TIMESTAMP WITH TIME ZONE NOT NULL,
    added_by VARCHAR(16) NOT NULL DEFAULT 'manual',
    PRIMARY KEY (user_id, address)
);

CREATE INDEX IF NOT EXISTS idx_blocklist_entries_user ON blocklist_entries(user_id);
"""


class PostgresBlocklistStore(BlocklistStore):
    """PostgreSQL-based blocklist store."""

    def __init__(self, dsn: str) -> None:
        """
        Initialize PostgreSQL blocklist store.

        Args:
            dsn: PostgreSQL connection string.
        """
        self._dsn = dsn
        self._pool: Any = None

    async def _get_pool(self) -> Any:
        """Get or create connection pool."""
        if self._pool is None:
            try:
                self._pool = await asyncpg.create_pool(self._dsn, min_size=2, max_size=10)
                async with self._pool.acquire() as conn:
                    await conn.execute(CREATE_TABLES_SQL)
            except Exception as e:
                raise BlocklistStorageError(
                    f"Failed to connect to PostgreSQL: {e}", "connect"
                ) from e
        return self._pool

    async def get_record(self, user_id: str) -> UserRecord | None:
        """Load the user row and its entries."""
        try:
            pool = await self._get_pool()
            async with pool.acquire() as conn:
                user_row = await conn.fetchrow(
                    "SELECT user_id, created_at, last_updated FROM blocklist_users WHERE user_id = $1",
                    user_id,
                )
                if user_row is None:
                    return None
                rows = await conn.fetch(
                    """
                    SELECT address, reason, blocked_at, added_by
                    FROM blocklist_entries
                    WHERE user_id = $1
                    ORDER BY blocked_at
                    """,
                    user_id,
                )
        except BlocklistStorageError:
            raise
        except Exception as e:
            raise BlocklistStorageError(f"PostgreSQL read failed: {e}", "get") from e

        return UserRecord(
            user_id=user_row["user_id"],
            created_at=user_row["created_at"],
            last_updated=user_row["last_updated"],
            blocklist=[BlocklistEntry(**dict(row)) for row in rows],
        )

    async def insert_entry(
        self, user_id: str, entry: BlocklistEntry, updated_at: datetime
    ) -> None:
        """Insert an entry and touch the user row in one transaction."""
        try:
            pool = await self._get_pool()
            async with pool.acquire() as conn:
                async with conn.transaction():
                    await conn.execute(
                        """
                        INSERT INTO blocklist_users (user_id, created_at, last_updated)
                        VALUES ($1, $2, $2)
                        ON CONFLICT (user_id) DO UPDATE SET last_updated = EXCLUDED.last_updated
                        """,
                        user_id,
                        updated_at,
                    )
                    await conn.execute(
                        """
                        INSERT INTO blocklist_entries (user_id, address, reason, blocked_at, added_by)
                        VALUES ($1, $2, $3, $4, $5)
                        """,
                        user_id,
                        entry.address,
                        entry.reason,
                        entry.blocked_at,
                        entry.added_by.value,
                    )
        except asyncpg.UniqueViolationError as e:
            raise AddressAlreadyBlocked(entry.address) from e
        except BlocklistStorageError:
            raise
        except Exception as e:
            raise BlocklistStorageError(f"PostgreSQL insert failed: {e}", "insert") from e

    async def delete_entry(
        self, user_id: str, address: str, updated_at: datetime
    ) -> bool:
        """Delete an entry and touch the user row if present."""
        try:
            pool = await self._get_pool()
            async with pool.acquire() as conn:
                async with conn.transaction():
                    result = await conn.execute(
                        "DELETE FROM blocklist_entries WHERE user_id = $1 AND address = $2",
                        user_id,
                        address,
                    )
                    removed = result.split()[-1] != "0"
                    if removed:
                        await conn.execute(
                            "UPDATE blocklist_users SET last_updated = $2 WHERE user_id = $1",
                            user_id,
                            updated_at,
                        )
            return removed
        except BlocklistStorageError:
            raise
        except Exception as e:
            raise BlocklistStorageError(f"PostgreSQL delete failed: {e}", "delete") from e

    async def close(self) -> None:
        """Close the connection pool."""
        if self._pool:
            await self._pool.close()
            self._pool = None

    async def ping(self) -> bool:
        """Check PostgreSQL connectivity."""
        try:
            pool = await self._get_pool()
            async with pool.acquire() as conn:
                await conn.fetchval("SELECT 1")
            return True
        except Exception as e:
            logger.warning(f"PostgreSQL ping failed: {e}")
            return False
