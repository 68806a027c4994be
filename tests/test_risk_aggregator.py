"""Tests for risk aggregation."""

import asyncio
from decimal import Decimal
from itertools import combinations

import pytest

from fakes import (
    SOL_ADDRESS,
    FailingBlocklistStore,
    FakeLedger,
    FakeRegistry,
    build_aggregator,
    clean_registry_result,
    reported_registry_result,
)
from walletguard.blocklist.memory import MemoryBlocklistStore
from walletguard.constants import RiskLevel, Severity
from walletguard.models.risk import AbuseQueryResult, ChainActivityResult
from walletguard.services.risk_aggregator import (
    RiskAggregatorService,
    get_risk_level,
    is_safe_score,
    score_signals,
)


class TestRiskLevels:
    """Tests for score to level mapping."""

    @pytest.mark.parametrize(
        ("score", "level", "safe"),
        [
            (0, RiskLevel.LOW, True),
            (19, RiskLevel.LOW, True),
            (20, RiskLevel.MEDIUM, True),
            (49, RiskLevel.MEDIUM, True),
            (50, RiskLevel.HIGH, False),
            (79, RiskLevel.HIGH, False),
            (80, RiskLevel.CRITICAL, False),
            (100, RiskLevel.CRITICAL, False),
        ],
    )
    def test_thresholds(self, score: int, level: RiskLevel, safe: bool) -> None:
        """Test level and safe flag at each boundary."""
        assert get_risk_level(score) == level
        assert is_safe_score(score) is safe


class TestScoreSignals:
    """Tests for score_signals."""

    def test_clean(self) -> None:
        """Test that clean signals score zero."""
        score, factors = score_signals(
            clean_registry_result(), ChainActivityResult(analyzed=True, has_balance=True, transaction_count=3)
        )

        assert score == 0
        assert factors == []

    def test_reported_address(self) -> None:
        """Test that registry reports dominate the score."""
        score, factors = score_signals(
            reported_registry_result("phishing", total=3),
            ChainActivityResult(analyzed=True, has_balance=True, transaction_count=3),
        )

        assert score == 80
        assert factors[0].severity == Severity.CRITICAL
        assert factors[0].reason == "Reported for fraud/scam: phishing"
        assert factors[0].details["total_reports"] == 3
        assert factors[0].details["reporter"] == "Anonymous"

    def test_unverified_registry_adds_factor_only(self) -> None:
        """Test that an unreachable registry is flagged without score."""
        score, factors = score_signals(
            AbuseQueryResult.unavailable("down"),
            ChainActivityResult(analyzed=True, has_balance=True, transaction_count=3),
        )

        assert score == 0
        assert len(factors) == 1
        assert factors[0].severity == Severity.MEDIUM
        assert factors[0].details["unverified"] is True

    def test_all_signals_capped(self) -> None:
        """Test that the score never exceeds 100."""
        score, factors = score_signals(
            reported_registry_result(),
            ChainActivityResult(
                analyzed=True, is_new_wallet=True, suspicious_pattern=True, transaction_count=0
            ),
        )

        assert score == 100
        assert [f.severity for f in factors] == [Severity.CRITICAL, Severity.MEDIUM, Severity.LOW]

    def test_adding_signals_never_lowers_score(self) -> None:
        """Test monotonicity over every combination of signals."""
        flags = ["reported", "suspicious", "new_empty"]

        def score_for(active: set[str]) -> int:
            registry = reported_registry_result() if "reported" in active else clean_registry_result()
            activity = ChainActivityResult(
                analyzed=True,
                suspicious_pattern="suspicious" in active,
                is_new_wallet="new_empty" in active,
                has_balance="new_empty" not in active,
            )
            return score_signals(registry, activity)[0]

        subsets = [set(c) for n in range(len(flags) + 1) for c in combinations(flags, n)]
        for smaller in subsets:
            for larger in subsets:
                if smaller <= larger:
                    assert score_for(smaller) <= score_for(larger)


class TestRiskAggregatorService:
    """Tests for RiskAggregatorService."""

    @pytest.mark.asyncio
    async def test_clean_address(self, aggregator: RiskAggregatorService) -> None:
        """Test a clean, funded, active address."""
        verdict = await aggregator.assess("alice", SOL_ADDRESS)

        assert verdict.safe
        assert verdict.risk_score == 0
        assert verdict.risk_level == RiskLevel.LOW
        assert verdict.recommendation == "Transaction can proceed"
        assert verdict.abuse_registry_result.checked
        assert verdict.chain_activity_result.analyzed

    @pytest.mark.asyncio
    async def test_blocklist_veto_short_circuits(
        self,
        blocklist_store: MemoryBlocklistStore,
        aggregator: RiskAggregatorService,
        registry: FakeRegistry,
        ledger: FakeLedger,
    ) -> None:
        """Test that a blocked address is vetoed without consulting anything else."""
        await blocklist_store.add_entry("alice", SOL_ADDRESS, "known scammer")

        verdict = await aggregator.assess("alice", SOL_ADDRESS)

        assert verdict.is_blocked
        assert not verdict.safe
        assert verdict.risk_score == 100
        assert verdict.risk_level == RiskLevel.BLOCKED
        assert verdict.risk_factors[0].reason == "Address is in your blocklist"
        assert verdict.risk_factors[0].details["reason"] == "known scammer"
        assert verdict.blocklist_entry.reason == "known scammer"
        assert registry.calls == []
        assert ledger.calls == 0

    @pytest.mark.asyncio
    async def test_blocklist_is_per_user(
        self, blocklist_store: MemoryBlocklistStore, aggregator: RiskAggregatorService
    ) -> None:
        """Test that another user's blocklist does not veto."""
        await blocklist_store.add_entry("alice", SOL_ADDRESS)

        verdict = await aggregator.assess("bob", SOL_ADDRESS)

        assert not verdict.is_blocked
        assert verdict.safe

    @pytest.mark.asyncio
    async def test_reported_address(self, blocklist_store: MemoryBlocklistStore) -> None:
        """Test that a reported address is critical."""
        aggregator = build_aggregator(blocklist_store, FakeRegistry(reported_registry_result()))

        verdict = await aggregator.assess("alice", SOL_ADDRESS)

        assert not verdict.safe
        assert verdict.risk_score == 80
        assert verdict.risk_level == RiskLevel.CRITICAL
        assert verdict.recommendation == "Transaction should be blocked"

    @pytest.mark.asyncio
    async def test_new_empty_wallet_is_low(self, blocklist_store: MemoryBlocklistStore) -> None:
        """Test the mild signal of an unused wallet."""
        aggregator = build_aggregator(
            blocklist_store, ledger=FakeLedger(balance=Decimal("0"), signatures=[])
        )

        verdict = await aggregator.assess("alice", SOL_ADDRESS)

        assert verdict.safe
        assert verdict.risk_score == 10
        assert verdict.risk_level == RiskLevel.LOW
        assert verdict.risk_factors[0].reason == "New wallet with no activity"

    @pytest.mark.asyncio
    async def test_registry_unavailable_stays_safe_but_flagged(
        self, blocklist_store: MemoryBlocklistStore
    ) -> None:
        """Test degraded registry answers."""
        registry = FakeRegistry(AbuseQueryResult.unavailable("registry down"))
        aggregator = build_aggregator(blocklist_store, registry)

        verdict = await aggregator.assess("alice", SOL_ADDRESS)

        assert verdict.safe
        assert verdict.risk_score == 0
        assert verdict.has_unverified_factor()
        assert verdict.risk_factors[0].reason == "Unable to verify address against fraud database"

    @pytest.mark.asyncio
    async def test_registry_timeout_degrades(self, blocklist_store: MemoryBlocklistStore) -> None:
        """Test that a slow registry is cut off by its own timeout."""
        aggregator = build_aggregator(
            blocklist_store, FakeRegistry(delay=1.0), registry_timeout=0.05
        )

        verdict = await aggregator.assess("alice", SOL_ADDRESS)

        assert verdict.has_unverified_factor()
        assert not verdict.abuse_registry_result.checked
        assert verdict.chain_activity_result.analyzed

    @pytest.mark.asyncio
    async def test_registry_timeout_with_new_empty_wallet(
        self, blocklist_store: MemoryBlocklistStore
    ) -> None:
        """Test a timed out registry combined with an unused, empty recipient."""
        aggregator = build_aggregator(
            blocklist_store,
            FakeRegistry(delay=1.0),
            FakeLedger(balance=Decimal("0"), signatures=[]),
            registry_timeout=0.05,
        )

        verdict = await aggregator.assess("alice", SOL_ADDRESS)

        assert verdict.safe
        assert verdict.risk_score == 10
        assert verdict.risk_level == RiskLevel.LOW
        assert [factor.reason for factor in verdict.risk_factors] == [
            "Unable to verify address against fraud database",
            "New wallet with no activity",
        ]
        assert verdict.has_unverified_factor()

    @pytest.mark.asyncio
    async def test_checks_run_concurrently(self, blocklist_store: MemoryBlocklistStore) -> None:
        """Test that registry and ledger latencies overlap."""
        aggregator = build_aggregator(
            blocklist_store,
            FakeRegistry(delay=0.2),
            FakeLedger(delay=0.2),
        )
        loop = asyncio.get_running_loop()

        started = loop.time()
        await aggregator.assess("alice", SOL_ADDRESS)

        assert loop.time() - started < 0.35

    @pytest.mark.asyncio
    async def test_ledger_down_adds_no_factor(self, blocklist_store: MemoryBlocklistStore) -> None:
        """Test that missing chain data is not evidence against the address."""
        aggregator = build_aggregator(blocklist_store, ledger=FakeLedger(unavailable=True))

        verdict = await aggregator.assess("alice", SOL_ADDRESS)

        assert verdict.safe
        assert verdict.risk_factors == ()
        assert not verdict.chain_activity_result.analyzed

    @pytest.mark.asyncio
    async def test_blocklist_failure_flagged(self) -> None:
        """Test that an unreadable blocklist is surfaced."""
        aggregator = build_aggregator(FailingBlocklistStore())

        verdict = await aggregator.assess("alice", SOL_ADDRESS)

        assert not verdict.is_blocked
        assert verdict.has_unverified_factor()
        assert verdict.risk_factors[0].reason == "Unable to check your blocklist"

    @pytest.mark.asyncio
    async def test_internal_error_fails_closed(self, blocklist_store: MemoryBlocklistStore) -> None:
        """Test that unexpected faults produce an unsafe unknown verdict."""
        aggregator = build_aggregator(blocklist_store, FakeRegistry(error=RuntimeError("boom")))

        verdict = await aggregator.assess("alice", SOL_ADDRESS)

        assert not verdict.safe
        assert verdict.risk_level == RiskLevel.UNKNOWN
        assert verdict.risk_score == 50
        assert "boom" in verdict.risk_factors[0].details["error"]

    @pytest.mark.asyncio
    async def test_unknown_chain_analyzer(self, blocklist_store: MemoryBlocklistStore) -> None:
        """Test a chain without a configured ledger."""
        aggregator = build_aggregator(blocklist_store)

        verdict = await aggregator.assess("alice", "0x" + "ab" * 20, "ethereum")

        assert verdict.safe
        assert not verdict.chain_activity_result.analyzed
