"""Test configuration and fixtures."""

from typing import AsyncGenerator

import pytest
import pytest_asyncio

from fakes import FakeLedger, FakeRegistry, build_aggregator
from walletguard.blocklist.memory import MemoryBlocklistStore
from walletguard.services.risk_aggregator import RiskAggregatorService


@pytest_asyncio.fixture
async def blocklist_store() -> AsyncGenerator[MemoryBlocklistStore, None]:
    """Provide a memory blocklist store for tests."""
    store = MemoryBlocklistStore()
    yield store
    await store.close()


@pytest.fixture
def registry() -> FakeRegistry:
    """Provide a registry that reports nothing."""
    return FakeRegistry()


@pytest.fixture
def ledger() -> FakeLedger:
    """Provide a funded, active Solana ledger."""
    return FakeLedger()


@pytest.fixture
def aggregator(
    blocklist_store: MemoryBlocklistStore, registry: FakeRegistry, ledger: FakeLedger
) -> RiskAggregatorService:
    """Provide a risk aggregator wired to fakes."""
    return build_aggregator(blocklist_store, registry, ledger)
