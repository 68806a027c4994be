"""PostgreSQL trusted contact store implementation."""

import logging
from typing import Any

import asyncpg

from walletguard.core.contacts import TrustedContactStore
from walletguard.core.exceptions import ContactAlreadyExists, StorageError
from walletguard.models.contacts import TrustedContact

logger = logging.getLogger(__name__)

CREATE_TABLES_SQL = """
CREATE TABLE IF NOT EXISTS trusted_contacts (
    user_id VARCHAR(255) NOT NULL,
    address VARCHAR(128) NOT NULL,
    name VARCHAR(100) NOT NULL,
    notes TEXT NOT NULL DEFAULT '',
    added_at TIMESTAMP WITH TIME ZONE NOT NULL,
    updated_at TIMESTAMP WITH TIME ZONE,
    PRIMARY KEY (user_id, address)
);
"""


class PostgresContactStore(TrustedContactStore):
    """PostgreSQL-based trusted contact store."""

    def __init__(self, dsn: str) -> None:
        """
        Initialize PostgreSQL contact store.

        Args:
            dsn: PostgreSQL connection string.
        """
        self._dsn = dsn
        self._pool: Any = None

    async def _get_pool(self) -> Any:
        """Get or create connection pool."""
        if self._pool is None:
            try:
                self._pool = await asyncpg.create_pool(self._dsn, min_size=1, max_size=5)
                async with self._pool.acquire() as conn:
                    await conn.execute(CREATE_TABLES_SQL)
            except Exception as e:
                raise StorageError(f"Failed to connect to PostgreSQL: {e}", "connect") from e
        return self._pool

    async def list_contacts(self, user_id: str) -> list[TrustedContact]:
        try:
            pool = await self._get_pool()
            async with pool.acquire() as conn:
                rows = await conn.fetch(
                    """
                    SELECT address, name, notes, added_at, updated_at
                    FROM trusted_contacts
                    WHERE user_id = $1
                    ORDER BY added_at
                    """,
                    user_id,
                )
        except StorageError:
            raise
        except Exception as e:
            raise StorageError(f"PostgreSQL read failed: {e}", "get") from e
        return [TrustedContact(**dict(row)) for row in rows]

    async def insert_contact(self, user_id: str, contact: TrustedContact) -> None:
        try:
            pool = await self._get_pool()
            async with pool.acquire() as conn:
                await conn.execute(
                    """
                    INSERT INTO trusted_contacts (user_id, address, name, notes, added_at)
                    VALUES ($1, $2, $3, $4, $5)
                    """,
                    user_id,
                    contact.address,
                    contact.name,
                    contact.notes,
                    contact.added_at,
                )
        except asyncpg.UniqueViolationError as e:
            raise ContactAlreadyExists(contact.address) from e
        except StorageError:
            raise
        except Exception as e:
            raise StorageError(f"PostgreSQL insert failed: {e}", "insert") from e

    async def replace_contact(self, user_id: str, contact: TrustedContact) -> bool:
        try:
            pool = await self._get_pool()
            async with pool.acquire() as conn:
                result = await conn.execute(
                    """
                    UPDATE trusted_contacts
                    SET name = $3, notes = $4, updated_at = $5
                    WHERE user_id = $1 AND address = $2
                    """,
                    user_id,
                    contact.address,
                    contact.name,
                    contact.notes,
                    contact.updated_at,
                )
        except StorageError:
            raise
        except Exception as e:
            raise StorageError(f"PostgreSQL update failed: {e}", "update") from e
        return result.split()[-1] != "0"

    async def delete_contact(self, user_id: str, address: str) -> bool:
        try:
            pool = await self._get_pool()
            async with pool.acquire() as conn:
                result = await conn.execute(
                    "DELETE FROM trusted_contacts WHERE user_id = $1 AND address = $2",
                    user_id,
                    address,
                )
        except StorageError:
            raise
        except Exception as e:
            raise StorageError(f"PostgreSQL delete failed: {e}", "delete") from e
        return result.split()[-1] != "0"

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
