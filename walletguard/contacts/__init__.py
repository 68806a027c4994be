"""Trusted contact store implementations package."""

from walletguard.contacts.memory import MemoryContactStore
from walletguard.contacts.postgres import PostgresContactStore
from walletguard.contacts.redis import RedisContactStore

__all__ = [
    "MemoryContactStore",
    "PostgresContactStore",
    "RedisContactStore",
]
