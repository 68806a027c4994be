"""Redis community fraud report store implementation."""

import logging
from datetime import datetime
from typing import Any

import redis.asyncio as redis
from redis.exceptions import WatchError

from walletguard.constants import ReportCategory
from walletguard.core.exceptions import AlreadyReported, StorageError
from walletguard.core.reports import FraudReportStore
from walletguard.models.reports import CommunityReport, ReportNote

logger = logging.getLogger(__name__)

INDEX_KEY = "walletguard:reports:index"
MAX_WATCH_RETRIES = 5


class RedisReportStore(FraudReportStore):
    """
    Redis-based report store.

    Per address: a meta hash, a reporters sorted set, a categories sorted
    set scored by first report time and a notes list. A global sorted set
    ranks addresses by frequency. Reports are applied under WATCH on the
    reporters set so a duplicate reporter is detected atomically.
    """

    def __init__(self, redis_url: str, client: Any = None) -> None:
        """
        Initialize Redis report store.

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
    def _keys(address: str) -> tuple[str, str, str, str]:
        base = f"walletguard:report:{address}"
        return base, f"{base}:reporters", f"{base}:categories", f"{base}:notes"

    async def _load(self, client: Any, address: str) -> CommunityReport | None:
        meta_key, reporters_key, categories_key, notes_key = self._keys(address)
        reporters = await client.zrange(reporters_key, 0, -1)
        if not reporters:
            return None
        meta = await client.hgetall(meta_key)
        categories = await client.zrange(categories_key, 0, -1)
        notes = await client.lrange(notes_key, 0, -1)
        return CommunityReport(
            address=address,
            categories=categories,
            reporters=reporters,
            frequency=len(reporters),
            notes=[ReportNote.model_validate_json(n) for n in notes],
            created_at=meta.get("created_at"),
            updated_at=meta.get("updated_at") or meta.get("created_at"),
        )

    async def get_report(self, address: str) -> CommunityReport | None:
        try:
            client = await self._get_client()
            return await self._load(client, address)
        except StorageError:
            raise
        except Exception as e:
            raise StorageError(f"Redis read failed: {e}", "get") from e

    async def _apply(
        self,
        client: Any,
        address: str,
        reporter: str,
        category: ReportCategory,
        note: ReportNote | None,
        reported_at: datetime,
    ) -> None:
        meta_key, reporters_key, categories_key, notes_key = self._keys(address)
        timestamp = reported_at.timestamp()
        async with client.pipeline(transaction=True) as pipe:
            await pipe.watch(reporters_key)
            if await pipe.zscore(reporters_key, reporter) is not None:
                raise AlreadyReported(address, reporter)
            pipe.multi()
            pipe.zadd(reporters_key, {reporter: timestamp})
            pipe.zadd(categories_key, {category.value: timestamp}, nx=True)
            pipe.hsetnx(meta_key, "created_at", reported_at.isoformat())
            pipe.hset(meta_key, "updated_at", reported_at.isoformat())
            if note is not None:
                pipe.rpush(notes_key, note.model_dump_json())
            pipe.zincrby(INDEX_KEY, 1, address)
            await pipe.execute()

    async def record_report(
        self,
        address: str,
        reporter: str,
        category: ReportCategory,
        note: ReportNote | None,
        reported_at: datetime,
    ) -> CommunityReport:
        for _ in range(MAX_WATCH_RETRIES):
            try:
                client = await self._get_client()
                await self._apply(client, address, reporter, category, note, reported_at)
            except WatchError:
                logger.debug(f"[Reports] Concurrent report on {address[:8]}..., retrying")
                continue
            except (AlreadyReported, StorageError):
                raise
            except Exception as e:
                raise StorageError(f"Redis insert failed: {e}", "insert") from e
            report = await self.get_report(address)
            if report is None:
                raise StorageError("Report vanished after write", "insert")
            return report
        raise StorageError("Too many concurrent reports, try again", "insert")

    async def top_reports(self, limit: int) -> list[CommunityReport]:
        if limit <= 0:
            return []
        try:
            client = await self._get_client()
            addresses = await client.zrevrange(INDEX_KEY, 0, limit - 1)
            reports = [await self._load(client, address) for address in addresses]
        except StorageError:
            raise
        except Exception as e:
            raise StorageError(f"Redis read failed: {e}", "list") from e
        return [report for report in reports if report is not None]

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
