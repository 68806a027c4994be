"""PostgreSQL community fraud report store implementation."""

import logging
from datetime import datetime
from typing import Any

import asyncpg

from walletguard.constants import ReportCategory
from walletguard.core.exceptions import AlreadyReported, StorageError
from walletguard.core.reports import FraudReportStore
from walletguard.models.reports import CommunityReport, ReportNote

logger = logging.getLogger(__name__)

CREATE_TABLES_SQL = """
CREATE TABLE IF NOT EXISTS community_reports (
    address VARCHAR(128) PRIMARY KEY,
    categories TEXT[] NOT NULL DEFAULT '{}',
    frequency INTEGER NOT NULL DEFAULT 0,
    created_at TIMESTAMP WITH TIME ZONE NOT NULL,
    updated_at TIMESTAMP WITH TIME ZONE NOT NULL
);

CREATE TABLE IF NOT EXISTS community_report_reporters (
    address VARCHAR(128) NOT NULL REFERENCES community_reports(address) ON DELETE CASCADE,
    reporter VARCHAR(255) NOT NULL,
    reported_at TIMESTAMP WITH TIME ZONE NOT NULL,
    PRIMARY KEY (address, reporter)
);

CREATE TABLE IF NOT EXISTS community_report_notes (
    id BIGSERIAL PRIMARY KEY,
    address VARCHAR(128) NOT NULL REFERENCES community_reports(address) ON DELETE CASCADE,
    reporter VARCHAR(255) NOT NULL,
    note TEXT NOT NULL,
    created_at TIMESTAMP WITH TIME ZONE NOT NULL
);

CREATE INDEX IF NOT EXISTS idx_community_reports_frequency ON community_reports(frequency DESC);
"""

UPSERT_REPORT_SQL = """
INSERT INTO community_reports (address, categories, frequency, created_at, updated_at)
VALUES ($1, ARRAY[$2::text], 1, $3, $3)
ON CONFLICT (address) DO UPDATE SET
    frequency = community_reports.frequency + 1,
    updated_at = EXCLUDED.updated_at,
    categories = CASE
        WHEN $2::text = ANY(community_reports.categories) THEN community_reports.categories
        ELSE array_append(community_reports.categories, $2::text)
    END
"""


class PostgresReportStore(FraudReportStore):
    """
    PostgreSQL-based report store.

    A report is one transaction: the aggregate row is upserted, then the
    reporter row is inserted. A duplicate reporter violates the primary key
    and rolls the upsert back.
    """

    def __init__(self, dsn: str) -> None:
        """
        Initialize PostgreSQL report store.

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

    @staticmethod
    async def _load(conn: Any, address: str) -> CommunityReport | None:
        row = await conn.fetchrow(
            "SELECT address, categories, frequency, created_at, updated_at "
            "FROM community_reports WHERE address = $1",
            address,
        )
        if row is None:
            return None
        reporters = await conn.fetch(
            "SELECT reporter FROM community_report_reporters WHERE address = $1 ORDER BY reported_at",
            address,
        )
        notes = await conn.fetch(
            "SELECT reporter, note, created_at FROM community_report_notes WHERE address = $1 ORDER BY id",
            address,
        )
        return CommunityReport(
            address=row["address"],
            categories=list(row["categories"]),
            reporters=[r["reporter"] for r in reporters],
            frequency=row["frequency"],
            notes=[ReportNote(**dict(n)) for n in notes],
            created_at=row["created_at"],
            updated_at=row["updated_at"],
        )

    async def get_report(self, address: str) -> CommunityReport | None:
        try:
            pool = await self._get_pool()
            async with pool.acquire() as conn:
                return await self._load(conn, address)
        except StorageError:
            raise
        except Exception as e:
            raise StorageError(f"PostgreSQL read failed: {e}", "get") from e

    async def record_report(
        self,
        address: str,
        reporter: str,
        category: ReportCategory,
        note: ReportNote | None,
        reported_at: datetime,
    ) -> CommunityReport:
        try:
            pool = await self._get_pool()
            async with pool.acquire() as conn:
                async with conn.transaction():
                    await conn.execute(UPSERT_REPORT_SQL, address, category.value, reported_at)
                    await conn.execute(
                        """
                        INSERT INTO community_report_reporters (address, reporter, reported_at)
                        VALUES ($1, $2, $3)
                        """,
                        address,
                        reporter,
                        reported_at,
                    )
                    if note is not None:
                        await conn.execute(
                            """
                            INSERT INTO community_report_notes (address, reporter, note, created_at)
                            VALUES ($1, $2, $3, $4)
                            """,
                            address,
                            note.reporter,
                            note.note,
                            note.created_at,
                        )
                    report = await self._load(conn, address)
        except asyncpg.UniqueViolationError as e:
            raise AlreadyReported(address, reporter) from e
        except StorageError:
            raise
        except Exception as e:
            raise StorageError(f"PostgreSQL insert failed: {e}", "insert") from e
        return report

    async def top_reports(self, limit: int) -> list[CommunityReport]:
        if limit <= 0:
            return []
        try:
            pool = await self._get_pool()
            async with pool.acquire() as conn:
                rows = await conn.fetch(
                    "SELECT address FROM community_reports ORDER BY frequency DESC, updated_at DESC LIMIT $1",
                    limit,
                )
                reports = [await self._load(conn, row["address"]) for row in rows]
        except StorageError:
            raise
        except Exception as e:
            raise StorageError(f"PostgreSQL read failed: {e}", "list") from e
        return [report for report in reports if report is not None]

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
