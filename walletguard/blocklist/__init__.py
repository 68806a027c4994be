"""Blocklist store implementations package."""

from walletguard.blocklist.memory import MemoryBlocklistStore
from walletguard.blocklist.postgres import PostgresBlocklistStore
from walletguard.blocklist.redis import RedisBlocklistStore

__all__ = [
    "MemoryBlocklistStore",
    "PostgresBlocklistStore",
    "RedisBlocklistStore",
]
