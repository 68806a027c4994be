"""Community fraud report store implementations package."""

from walletguard.reports.memory import MemoryReportStore
from walletguard.reports.postgres import PostgresReportStore
from walletguard.reports.redis import RedisReportStore

__all__ = [
    "MemoryReportStore",
    "PostgresReportStore",
    "RedisReportStore",
]
