"""Scripted stand-ins for the registry, ledgers and blocklist storage."""

import asyncio
from decimal import Decimal
from typing import Any

from walletguard.blocklist.memory import MemoryBlocklistStore
from walletguard.core.blocklist import BlocklistStore
from walletguard.core.exceptions import BlocklistStorageError, RPCUnavailable, TransferFailed
from walletguard.core.ledger import LedgerClient
from walletguard.models.blocklist import UserRecord
from walletguard.models.risk import AbuseQueryResult, AbuseReport
from walletguard.models.workflow import DecodedTransfer
from walletguard.services.chain_activity import ChainActivityAnalyzer
from walletguard.services.risk_aggregator import RiskAggregatorService

# Well-known Solana program ids: valid base58 encodings of 32 bytes.
SOL_ADDRESS = "So11111111111111111111111111111111111111112"
SOL_ADDRESS_2 = "Vote111111111111111111111111111111111111111"
SOL_ADDRESS_3 = "Stake11111111111111111111111111111111111111"
EVM_ADDRESS = "0x742d35Cc6634C0532925a3b844Bc454e4438f44e"


def signed_payload(sender: str, recipient: str, amount: str) -> str:
    """Payload understood by FakeLedger.decode_transfer."""
    return f"{sender}:{recipient}:{amount}"


class FakeRegistry:
    """Abuse registry stand-in with a scripted answer."""

    def __init__(
        self,
        result: AbuseQueryResult | None = None,
        delay: float = 0.0,
        error: Exception | None = None,
    ) -> None:
        self.result = result or clean_registry_result()
        self.delay = delay
        self.error = error
        self.calls: list[tuple[str, str]] = []

    async def query(self, address: str, chain: str = "solana") -> AbuseQueryResult:
        self.calls.append((address, chain))
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error is not None:
            raise self.error
        return self.result

    async def close(self) -> None:
        pass


class FakeLedger(LedgerClient):
    """Ledger stand-in returning fixed balances and activity."""

    def __init__(
        self,
        chain: str = "solana",
        balance: Decimal = Decimal("1"),
        signatures: list[str] | None = None,
        unavailable: bool = False,
        delay: float = 0.0,
        send_result: str = "5igSignature",
        send_error: Exception | None = None,
    ) -> None:
        self._chain = chain
        self.balance = balance
        self.signatures = signatures if signatures is not None else ["sig1", "sig2"]
        self.unavailable = unavailable
        self.delay = delay
        self.send_result = send_result
        self.send_error = send_error
        self.sent: list[str] = []
        self.calls = 0

    @property
    def name(self) -> str:
        return "fake"

    @property
    def chain(self) -> str:
        return self._chain

    @property
    def last_endpoint(self) -> str | None:
        return "https://rpc.test"

    async def get_balance(self, address: str) -> Decimal:
        self.calls += 1
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.unavailable:
            raise RPCUnavailable("getBalance", ["https://rpc.test: timeout"])
        return self.balance

    async def get_recent_signatures(self, address: str, limit: int) -> list[str]:
        self.calls += 1
        if self.unavailable:
            raise RPCUnavailable("getSignaturesForAddress")
        return self.signatures[:limit]

    async def send_raw_transaction(self, signed_transaction: str) -> str:
        self.sent.append(signed_transaction)
        if self.send_error is not None:
            raise self.send_error
        return self.send_result

    def decode_transfer(self, signed_transaction: str) -> DecodedTransfer:
        try:
            sender, recipient, amount = signed_transaction.split(":")
            return DecodedTransfer(sender=sender, recipient=recipient, amount=Decimal(amount))
        except Exception as e:
            raise TransferFailed(f"Malformed transaction: {e}") from e

    async def health_check(self) -> dict[str, Any]:
        return {"status": "healthy", "provider": self.name}

    async def close(self) -> None:
        pass


class FailingBlocklistStore(MemoryBlocklistStore):
    """Memory store whose reads fail."""

    async def get_record(self, user_id: str) -> UserRecord | None:
        raise BlocklistStorageError("connection refused", "get_record")


def clean_registry_result() -> AbuseQueryResult:
    return AbuseQueryResult(checked=True, safe=True, message="No fraud reports found")


def reported_registry_result(category: str = "phishing", total: int = 3) -> AbuseQueryResult:
    return AbuseQueryResult(
        checked=True,
        safe=False,
        reports=[
            AbuseReport(
                category=category,
                description="Fake airdrop site",
                reported_at="2024-01-01T00:00:00Z",
            )
        ],
        total_reports=total,
        message=f"Found {total} fraud report(s)",
    )


def build_aggregator(
    store: BlocklistStore,
    registry: FakeRegistry | None = None,
    ledger: FakeLedger | None = None,
    registry_timeout: float = 1.0,
    analyzer_timeout: float = 1.0,
) -> RiskAggregatorService:
    ledger = ledger or FakeLedger()
    return RiskAggregatorService(
        blocklist=store,
        registry=registry or FakeRegistry(),
        analyzers={ledger.chain: ChainActivityAnalyzer(ledger)},
        registry_timeout=registry_timeout,
        analyzer_timeout=analyzer_timeout,
    )




class FakePipeline:
    """MULTI/EXEC pipeline over FakeRedis: queued writes apply all or nothing."""

    def __init__(self, redis: "FakeRedis") -> None:
        self._redis = redis
        self._queue: list[tuple[str, tuple, dict]] = []
        self._immediate = False

    async def __aenter__(self) -> "FakePipeline":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        self._queue.clear()

    async def watch(self, *keys: str) -> None:
        self._redis._check()
        self._immediate = True

    def multi(self) -> None:
        self._immediate = False

    def __getattr__(self, name: str) -> Any:
        command = getattr(self._redis, name)
        if self._immediate:
            return command

        def queue(*args: Any, **kwargs: Any) -> "FakePipeline":
            self._queue.append((name, args, kwargs))
            return self

        return queue

    async def execute(self) -> list[Any]:
        queued, self._queue = self._queue, []
        for _, args, _ in queued:
            self._redis._check_write(args[0])
        return [await getattr(self._redis, name)(*args, **kwargs) for name, args, kwargs in queued]


class FakeRedis:
    """Subset of an async Redis client with decode_responses=True."""

    def __init__(self, failing_prefixes: tuple[str, ...] = ()) -> None:
        self.hashes: dict[str, dict[str, str]] = {}
        self.zsets: dict[str, dict[str, float]] = {}
        self.lists: dict[str, list[str]] = {}
        self.fail = False
        self.failing_prefixes = failing_prefixes

    def _check(self) -> None:
        if self.fail:
            raise ConnectionError("Connection refused")

    def _check_write(self, key: str) -> None:
        self._check()
        if key.startswith(self.failing_prefixes):
            raise ConnectionError(f"Write to {key} refused")

    def pipeline(self, transaction: bool = True) -> FakePipeline:
        return FakePipeline(self)

    async def hgetall(self, key: str) -> dict[str, str]:
        self._check()
        return dict(self.hashes.get(key, {}))

    async def hsetnx(self, key: str, field: str, value: str) -> int:
        self._check_write(key)
        bucket = self.hashes.setdefault(key, {})
        if field in bucket:
            return 0
        bucket[field] = value
        return 1

    async def hset(self, key: str, field: str, value: str) -> int:
        self._check_write(key)
        self.hashes.setdefault(key, {})[field] = value
        return 1

    async def hdel(self, key: str, field: str) -> int:
        self._check_write(key)
        return 1 if self.hashes.get(key, {}).pop(field, None) is not None else 0

    async def hexists(self, key: str, field: str) -> bool:
        self._check()
        return field in self.hashes.get(key, {})

    async def exists(self, key: str) -> int:
        self._check()
        return int(key in self.hashes or key in self.zsets or key in self.lists)

    async def zadd(self, key: str, mapping: dict[str, float], nx: bool = False) -> int:
        self._check_write(key)
        zset = self.zsets.setdefault(key, {})
        added = 0
        for member, score in mapping.items():
            if member not in zset:
                added += 1
            elif nx:
                continue
            zset[member] = score
        return added

    async def zscore(self, key: str, member: str) -> float | None:
        self._check()
        return self.zsets.get(key, {}).get(member)

    async def zincrby(self, key: str, amount: float, member: str) -> float:
        self._check_write(key)
        zset = self.zsets.setdefault(key, {})
        zset[member] = zset.get(member, 0) + amount
        return zset[member]

    def _ranked(self, key: str, reverse: bool) -> list[str]:
        items = sorted(self.zsets.get(key, {}).items(), key=lambda kv: (kv[1], kv[0]), reverse=reverse)
        return [member for member, _ in items]

    @staticmethod
    def _slice(items: list[str], start: int, end: int) -> list[str]:
        return items[start:] if end == -1 else items[start : end + 1]

    async def zrange(self, key: str, start: int, end: int) -> list[str]:
        self._check()
        return self._slice(self._ranked(key, reverse=False), start, end)

    async def zrevrange(self, key: str, start: int, end: int) -> list[str]:
        self._check()
        return self._slice(self._ranked(key, reverse=True), start, end)

    async def rpush(self, key: str, *values: str) -> int:
        self._check_write(key)
        items = self.lists.setdefault(key, [])
        items.extend(values)
        return len(items)

    async def lrange(self, key: str, start: int, end: int) -> list[str]:
        self._check()
        return self._slice(list(self.lists.get(key, [])), start, end)

    async def ping(self) -> bool:
        self._check()
        return True

    async def aclose(self) -> None:
        pass
